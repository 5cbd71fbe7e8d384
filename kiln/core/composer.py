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
# THE COMPOSER - RECIPE ASSEMBLY
# -----------------------------------------------------------------------------
# Responsibility: Turn a PipelineConfig into a two-stage BuildRecipe and
# render it as a Dockerfile.
#
# Builder stage:  scaffold -> manifest copy -> prefetch -> source copy
#                 -> release build -> install named binary
# Runtime stage:  useradd -> USER -> WORKDIR -> copy binary + static assets
#
# The recipe never declares CMD or ENTRYPOINT. The launch descriptor
# supplies the start command.
# -----------------------------------------------------------------------------

import posixpath

from kiln.domain.recipe import (
    Artifact,
    ArtifactKind,
    BuildRecipe,
    BuildStage,
    CacheMount,
    Instruction,
    InstructionKind,
    PipelineConfig,
)

SYNTAX_HEADER = "# syntax=docker/dockerfile:1"
DEFERRED_COMMAND_NOTE = (
    "# No CMD or ENTRYPOINT: the start command comes from the launch descriptor."
)


def _artifacts(config: PipelineConfig) -> list[Artifact]:
    toolchain = config.toolchain
    return [
        Artifact(
            name=config.binary_name,
            kind=ArtifactKind.EXECUTABLE,
            source=posixpath.join(toolchain.install_dir, config.binary_name),
            destination=posixpath.join(config.app_dir, config.binary_name),
        ),
        Artifact(
            name="static",
            kind=ArtifactKind.DIRECTORY,
            source=posixpath.join(config.project_dir, config.static_source),
            destination=posixpath.join(config.app_dir, config.static_dest),
        ),
    ]


def compose_builder(config: PipelineConfig) -> BuildStage:
    """Builder stage: dependency-cached release compile and binary install."""
    toolchain = config.toolchain
    fmt = {"project": config.project_name, "binary": config.binary_name}

    registry = CacheMount(target=toolchain.registry_dir)
    target = CacheMount(target=posixpath.join(config.project_dir, toolchain.target_dir))

    instructions = [
        Instruction(
            kind=InstructionKind.WORKDIR,
            args=posixpath.dirname(config.project_dir) or "/",
            comment="Empty placeholder project keeps dependency layers apart from the source",
        ),
        Instruction(kind=InstructionKind.RUN, args=toolchain.scaffold_command.format(**fmt)),
        Instruction(kind=InstructionKind.WORKDIR, args=config.project_dir),
        Instruction(
            kind=InstructionKind.COPY,
            args=" ".join(toolchain.manifest_files) + " ./",
            comment="Dependency manifest and lock file only",
        ),
        Instruction(
            kind=InstructionKind.RUN,
            args=toolchain.fetch_command.format(**fmt),
            mounts=[registry],
            comment="Resolve dependencies before the real source is introduced",
        ),
        Instruction(kind=InstructionKind.COPY, args=". .", comment="Overlay the full source tree"),
        Instruction(
            kind=InstructionKind.RUN,
            args=toolchain.build_command.format(**fmt),
            mounts=[registry, target],
            comment="Release build, reusing registry and compile output across invocations",
        ),
        Instruction(
            kind=InstructionKind.RUN,
            args=toolchain.install_command.format(**fmt),
            mounts=[registry, target],
            comment=f"Install only the {config.binary_name} binary",
        ),
    ]

    return BuildStage(
        name=config.builder_stage,
        base_image=toolchain.builder_image,
        instructions=instructions,
        produces=_artifacts(config),
    )


def compose_runtime(config: PipelineConfig, builder: BuildStage) -> BuildStage:
    """Runtime stage: slim base, unprivileged user, and the builder's artifacts."""
    instructions = [
        Instruction(
            kind=InstructionKind.RUN,
            args=f"useradd -ms {config.user_shell} {config.app_user}",
            comment=f'Run as "{config.app_user}" user',
        ),
        Instruction(kind=InstructionKind.USER, args=config.app_user),
        Instruction(kind=InstructionKind.WORKDIR, args=config.app_dir),
    ]
    for index, artifact in enumerate(builder.produces):
        instructions.append(
            Instruction(
                kind=InstructionKind.COPY,
                args=f"{artifact.source} {artifact.destination}",
                from_stage=builder.name,
                comment="Compiled binary and static assets from the builder" if index == 0 else None,
            )
        )

    return BuildStage(
        name=config.runtime_stage,
        base_image=config.runtime_image,
        instructions=instructions,
    )


def compose_recipe(config: PipelineConfig) -> BuildRecipe:
    """Build the two-stage recipe for ``config``."""
    builder = compose_builder(config)
    return BuildRecipe(stages=[builder, compose_runtime(config, builder)])


def _render_instruction(instruction: Instruction) -> str:
    kind = instruction.kind.value
    if instruction.mounts:
        flags = [m.render() for m in instruction.mounts]
        lines = [f"{kind} {flags[0]}"] + [f"    {flag}" for flag in flags[1:]]
        lines.append(f"    {instruction.args}")
        return " \\\n".join(lines)
    if instruction.from_stage:
        return f"{kind} --from={instruction.from_stage} {instruction.args}"
    return f"{kind} {instruction.args}"


def render_dockerfile(recipe: BuildRecipe) -> str:
    """Render the recipe in Dockerfile syntax (BuildKit frontend)."""
    lines = [SYNTAX_HEADER]
    for stage in recipe.stages:
        lines.append("")
        lines.append(f"FROM {stage.base_image} AS {stage.name}")
        for instruction in stage.instructions:
            if instruction.comment:
                lines.append("")
                lines.append(f"# {instruction.comment}")
            lines.append(_render_instruction(instruction))

    deferred = not any(
        i.kind in (InstructionKind.CMD, InstructionKind.ENTRYPOINT)
        for stage in recipe.stages
        for i in stage.instructions
    )
    if deferred:
        lines.append("")
        lines.append(DEFERRED_COMMAND_NOTE)
    return "\n".join(lines) + "\n"
