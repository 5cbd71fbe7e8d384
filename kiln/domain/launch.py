# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# DOMAIN MODELS - LAUNCH DESCRIPTOR
# -----------------------------------------------------------------------------
# The runtime image declares no start command. The deployment descriptor
# supplies it, together with the environment and the exposed port.
# -----------------------------------------------------------------------------

from pydantic import BaseModel, Field, field_validator


class LaunchSpec(BaseModel):
    """
    Deployment descriptor for a built image.

    Fields:
    - app: Application name on the hosting platform
    - image: Image reference to run (normally the tag produced by the Foundry)
    - cmd: Start command, argv style
    - env: Environment passed to the process
    - internal_port: Port the server listens on inside the container
    """

    app: str = Field(..., min_length=1, pattern=r"^[a-z0-9][a-z0-9-]*$")
    image: str = Field(..., min_length=1)
    cmd: list[str] = Field(..., min_length=1)
    env: dict[str, str] = Field(default_factory=dict)
    internal_port: int = Field(8080, ge=1, le=65535)
    primary_region: str | None = None

    @field_validator("cmd")
    @classmethod
    def _no_blank_args(cls, cmd: list[str]) -> list[str]:
        if not cmd[0].strip():
            raise ValueError("start command must name an executable")
        return cmd
