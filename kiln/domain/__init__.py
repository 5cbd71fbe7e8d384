# -----------------------------------------------------------------------------
# DOMAIN LAYER
# -----------------------------------------------------------------------------
# Pydantic records shared by every other layer:
# - ThemeConfig: Content globs and design tokens for the style build
# - BuildRecipe / BuildStage / PipelineConfig: The container build contract
# - LaunchSpec: The deferred start command and environment
# -----------------------------------------------------------------------------

from .launch import LaunchSpec
from .recipe import (
    RUST_TOOLCHAIN,
    Artifact,
    ArtifactKind,
    BuildRecipe,
    BuildStage,
    CacheMount,
    Instruction,
    InstructionKind,
    PipelineConfig,
    ToolchainProfile,
)
from .theme import ThemeConfig

__all__ = [
    "Artifact", "ArtifactKind", "BuildRecipe", "BuildStage", "CacheMount",
    "Instruction", "InstructionKind", "LaunchSpec", "PipelineConfig",
    "RUST_TOOLCHAIN", "ThemeConfig", "ToolchainProfile",
]
