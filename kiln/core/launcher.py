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
# THE LAUNCHER - DEFERRED START COMMAND
# -----------------------------------------------------------------------------
# Responsibility: Supply the start command and environment that the image
# deliberately leaves out.
#
# Two outlets for the same LaunchSpec:
# - fly.toml for the hosting platform (``[experimental] cmd`` override)
# - A local container through the Docker SDK
# -----------------------------------------------------------------------------

import json
import re

from docker import DockerClient
from docker.errors import APIError, ImageNotFound
from docker.models.containers import Container
from rich.console import Console

from kiln.domain.launch import LaunchSpec

console = Console()

_BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


class LaunchError(Exception):
    """Raised when an image cannot be started from its launch descriptor."""

    pass


def _toml_string(value: str) -> str:
    return json.dumps(value)


def _toml_key(key: str) -> str:
    return key if _BARE_KEY.match(key) else _toml_string(key)


def render_fly_toml(spec: LaunchSpec) -> str:
    """Render the descriptor as a fly.toml document."""
    lines = [f"app = {_toml_string(spec.app)}"]
    if spec.primary_region:
        lines.append(f"primary_region = {_toml_string(spec.primary_region)}")

    lines += ["", "[build]", f"  image = {_toml_string(spec.image)}"]

    if spec.env:
        lines += ["", "[env]"]
        lines += [f"  {_toml_key(k)} = {_toml_string(v)}" for k, v in sorted(spec.env.items())]

    cmd = ", ".join(_toml_string(arg) for arg in spec.cmd)
    lines += ["", "[experimental]", f"  cmd = [{cmd}]"]

    lines += [
        "",
        "[http_service]",
        f"  internal_port = {spec.internal_port}",
        "  force_https = true",
    ]
    return "\n".join(lines) + "\n"


class Launcher:
    """Starts built images with the command from a LaunchSpec."""

    def __init__(self, client: DockerClient) -> None:
        self._client = client

    def run_local(self, spec: LaunchSpec, host_port: int | None = None) -> Container:
        """
        Start the image detached, publishing the internal port.

        Raises:
            LaunchError: If the image is missing or the engine refuses the container.
        """
        port = host_port or spec.internal_port
        console.print(
            f"[cyan][LAUNCH] {spec.image}: {' '.join(spec.cmd)} "
            f"(port {port} -> {spec.internal_port})[/cyan]"
        )
        try:
            container = self._client.containers.run(
                spec.image,
                command=spec.cmd,
                environment=spec.env,
                ports={f"{spec.internal_port}/tcp": port},
                name=f"kiln-{spec.app}",
                detach=True,
            )
        except ImageNotFound as e:
            console.print(f"[red][LAUNCH] Image not found: {spec.image}[/red]")
            raise LaunchError(f"Image {spec.image} not found; build it first") from e
        except APIError as e:
            console.print(f"[red][LAUNCH] Engine refused container: {e}[/red]")
            raise LaunchError(f"Could not start {spec.image}: {e}") from e

        console.print(f"[green][LAUNCH] Running: {container.short_id}[/green]")
        return container
