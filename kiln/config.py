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
# PROJECT CONFIGURATION
# -----------------------------------------------------------------------------
# kiln.yaml holds one section per subsystem:
#
#   theme:     content globs + design tokens (ThemeConfig)
#   style:     stylesheet input/output paths
#   pipeline:  binary name, toolchain, runtime image, user (PipelineConfig)
#   policy:    recipe gate rules (RecipePolicy)
#   launch:    deferred start command (LaunchSpec, optional)
#   image_tag: reference applied after a clean build
#
# Environment (loaded from .env by the CLI):
#   KILN_CONFIG      path to kiln.yaml
#   KILN_BUILDS_DIR  evidence root
#   DOCKER_HOST      engine address
# -----------------------------------------------------------------------------

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError
from rich.console import Console

from kiln.core.policy import RecipePolicy
from kiln.domain.launch import LaunchSpec
from kiln.domain.recipe import PipelineConfig
from kiln.domain.theme import ThemeConfig

console = Console()

DEFAULT_CONFIG_NAME = "kiln.yaml"


class ConfigError(Exception):
    """Raised when kiln.yaml is unreadable or fails validation."""

    pass


class StyleSettings(BaseModel):
    """Where the style build reads from and writes to, relative to the root."""

    output: str = "src/static/output.css"
    input_css: str | None = None
    tailwind_config: str = "tailwind.config.js"


class KilnConfig(BaseModel):
    """The whole project configuration."""

    theme: ThemeConfig = Field(default_factory=ThemeConfig)
    style: StyleSettings = Field(default_factory=StyleSettings)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    policy: RecipePolicy = Field(default_factory=RecipePolicy)
    launch: LaunchSpec | None = None
    image_tag: str = "htmx-gallery:latest"
    builds_dir: str | None = None

    def resolved_builds_dir(self, root: Path) -> Path:
        configured = os.getenv("KILN_BUILDS_DIR") or self.builds_dir or "builds"
        path = Path(configured)
        return path if path.is_absolute() else root / path


def config_path() -> Path:
    return Path(os.getenv("KILN_CONFIG", DEFAULT_CONFIG_NAME))


def load_config(path: Path | None = None) -> KilnConfig:
    """
    Load and validate kiln.yaml.

    A missing file is not an error: defaults describe the gallery project.

    Raises:
        ConfigError: If the file is not valid YAML or fails validation.
    """
    path = path or config_path()
    if not path.exists():
        console.print(f"[yellow][CONFIG] {path} not found, using defaults[/yellow]")
        return KilnConfig()

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{path} is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    try:
        config = KilnConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"{path} failed validation:\n{e}") from e

    console.print(f"[green][CONFIG] Loaded {path}[/green]")
    return config
