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
# DOMAIN MODELS - BUILD RECIPE
# -----------------------------------------------------------------------------
# A build recipe is an ordered list of container stages. The builder stage
# compiles the binary; the runtime stage copies only the declared artifacts.
#
# The Composer produces these; the Gate checks them; the Foundry runs them.
# -----------------------------------------------------------------------------

import posixpath
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class InstructionKind(str, Enum):
    """Container build instructions understood by the renderer."""

    FROM = "FROM"
    RUN = "RUN"
    COPY = "COPY"
    WORKDIR = "WORKDIR"
    USER = "USER"
    ENV = "ENV"
    CMD = "CMD"
    ENTRYPOINT = "ENTRYPOINT"


class ArtifactKind(str, Enum):
    EXECUTABLE = "executable"
    DIRECTORY = "directory"


class CacheMount(BaseModel):
    """
    A BuildKit cache mount attached to a RUN instruction.

    The mounted directory persists across build invocations but never ends
    up in an image layer.
    """

    model_config = ConfigDict(frozen=True)

    target: str = Field(..., min_length=1, description="Absolute path inside the stage")
    id: str | None = None
    sharing: Literal["shared", "private", "locked"] = "shared"

    def render(self) -> str:
        parts = ["type=cache", f"target={self.target}"]
        if self.id:
            parts.append(f"id={self.id}")
        if self.sharing != "shared":
            parts.append(f"sharing={self.sharing}")
        return "--mount=" + ",".join(parts)


class Instruction(BaseModel):
    """One line of a stage. ``from_stage`` only applies to COPY."""

    model_config = ConfigDict(frozen=True)

    kind: InstructionKind
    args: str = Field(..., min_length=1)
    mounts: list[CacheMount] = Field(default_factory=list)
    from_stage: str | None = None
    comment: str | None = None

    @model_validator(mode="after")
    def _check_flags(self) -> "Instruction":
        if self.mounts and self.kind != InstructionKind.RUN:
            raise ValueError("cache mounts are only valid on RUN instructions")
        if self.from_stage and self.kind != InstructionKind.COPY:
            raise ValueError("from_stage is only valid on COPY instructions")
        return self

    @property
    def copy_paths(self) -> tuple[list[str], str]:
        """Split COPY args into (sources, destination)."""
        parts = self.args.split()
        return parts[:-1], parts[-1]


class Artifact(BaseModel):
    """Something one stage produces for the next stage to copy."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ArtifactKind
    source: str = Field(..., description="Path inside the producing stage")
    destination: str = Field(..., description="Path inside the consuming stage")


class BuildStage(BaseModel):
    """One container stage: base image, ordered instructions, produced artifacts."""

    name: str = Field(..., pattern=r"^[a-z][a-z0-9_-]*$")
    base_image: str = Field(..., min_length=1)
    instructions: list[Instruction] = Field(default_factory=list)
    produces: list[Artifact] = Field(default_factory=list)

    def of_kind(self, kind: InstructionKind) -> list[Instruction]:
        return [i for i in self.instructions if i.kind == kind]


class BuildRecipe(BaseModel):
    """An ordered multi-stage build. First stage builds, last stage runs."""

    stages: list[BuildStage] = Field(..., min_length=1)

    @field_validator("stages")
    @classmethod
    def _unique_names(cls, stages: list[BuildStage]) -> list[BuildStage]:
        names = [s.name for s in stages]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate stage names: {names}")
        return stages

    @property
    def builder(self) -> BuildStage:
        return self.stages[0]

    @property
    def runtime(self) -> BuildStage:
        return self.stages[-1]


class ToolchainProfile(BaseModel):
    """
    How a language toolchain scaffolds, fetches, compiles and installs.

    Command templates accept ``{project}`` and ``{binary}`` placeholders.
    ``forbidden_paths`` and ``forbidden_commands`` must be absent from the
    runtime image.
    """

    name: str = "rust"
    builder_image: str = "rust:latest"
    registry_dir: str = "/usr/local/cargo/registry"
    install_dir: str = "/usr/local/cargo/bin"
    target_dir: str = "target"
    manifest_files: list[str] = Field(default_factory=lambda: ["Cargo.toml", "Cargo.lock"])
    scaffold_command: str = "USER=root cargo new {project}"
    fetch_command: str = "cargo fetch"
    build_command: str = "cargo build --release"
    install_command: str = "cargo install --bin {binary} --path ."
    forbidden_paths: list[str] = Field(
        default_factory=lambda: ["/usr/local/cargo", "/usr/local/rustup"]
    )
    forbidden_commands: list[str] = Field(default_factory=lambda: ["cargo", "rustc"])


RUST_TOOLCHAIN = ToolchainProfile()


class PipelineConfig(BaseModel):
    """Inputs to recipe composition."""

    binary_name: str = Field(
        "htmx-gallery",
        pattern=r"^[A-Za-z][A-Za-z0-9_-]*$",
        description="Executable selected explicitly at install time",
    )
    project_dir: str = "/usr/src/app"
    toolchain: ToolchainProfile = Field(
        default_factory=lambda: RUST_TOOLCHAIN.model_copy(deep=True)
    )
    runtime_image: str = "debian:bullseye-slim"
    app_user: str = "app"
    app_dir: str = "/app"
    user_shell: str = "/bin/bash"
    static_source: str = Field("src/static", description="Relative to project_dir")
    static_dest: str = "static"
    builder_stage: str = "builder"
    runtime_stage: str = "runtime"

    @field_validator("project_dir", "app_dir")
    @classmethod
    def _absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"'{value}' must be an absolute path")
        return value.rstrip("/") or "/"

    @field_validator("app_user")
    @classmethod
    def _non_root(cls, value: str) -> str:
        if value in ("root", "0"):
            raise ValueError("runtime user must not be root")
        return value

    @property
    def project_name(self) -> str:
        return posixpath.basename(self.project_dir)
