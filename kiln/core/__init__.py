# -----------------------------------------------------------------------------
# CORE LAYER
# -----------------------------------------------------------------------------
# The business logic of kiln:
# - StyleBuilder: Content-driven utility stylesheet build
# - Composer: PipelineConfig -> two-stage BuildRecipe -> Dockerfile
# - RecipeGate: Pipeline invariants checked before any build
# - Foundry: BuildKit execution, image audit, tagging, evidence
# - Launcher: The deferred start command (fly.toml or local container)
# -----------------------------------------------------------------------------

from .auditor import ImageAuditError, ImageAuditor
from .composer import compose_recipe, render_dockerfile
from .foundry import BuildFailedError, BuildResult, Foundry
from .launcher import LaunchError, Launcher, render_fly_toml
from .policy import RecipeGate, RecipePolicy, RecipeViolation
from .scanner import StyleBuildError
from .stylesheet import StyleBuilder, StyleReport
from .tailwind import render_tailwind_config

__all__ = [
    "ImageAuditError", "ImageAuditor",
    "compose_recipe", "render_dockerfile",
    "BuildFailedError", "BuildResult", "Foundry",
    "LaunchError", "Launcher", "render_fly_toml",
    "RecipeGate", "RecipePolicy", "RecipeViolation",
    "StyleBuildError", "StyleBuilder", "StyleReport",
    "render_tailwind_config",
]
