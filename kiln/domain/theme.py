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
# DOMAIN MODELS - THEME CONFIGURATION
# -----------------------------------------------------------------------------
# The declarative record consumed by the style build: which files are scanned
# for utility classes, and which design tokens extend the base theme.
#
# Pure data. Validated once at load time and never mutated afterwards.
# -----------------------------------------------------------------------------

import re

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

TOKEN_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class ThemeConfig(BaseModel):
    """
    Theme Configuration for the utility-CSS build.

    Fields:
    - content_globs: Files scanned for class-name usage (order preserved)
    - font_family: Semantic name -> ordered fallback list of font names
    - colors: Semantic name -> CSS colour, or name -> {shade -> colour}
    - drop_shadow: Effect name -> drop-shadow parameter list
    - safelist: Classes emitted even when no scanned file references them
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    content_globs: list[str] = Field(
        default_factory=lambda: ["*.html", "./src/**/*.rs"],
        min_length=1,
        validation_alias=AliasChoices("content_globs", "content"),
        description="Glob patterns (relative to the project root) scanned for classes",
    )
    font_family: dict[str, list[str]] = Field(
        default_factory=lambda: {"poppins": ["Poppins", "sans-serif"]},
        validation_alias=AliasChoices("font_family", "fontFamily"),
    )
    colors: dict[str, str | dict[str, str]] = Field(
        default_factory=lambda: {"yellow-header": "#ffcc03"}
    )
    drop_shadow: dict[str, list[str]] = Field(
        default_factory=lambda: {"header": ["-1px 1px 2px #000"]},
        validation_alias=AliasChoices("drop_shadow", "dropShadow"),
    )
    safelist: list[str] = Field(default_factory=list)

    @field_validator("content_globs")
    @classmethod
    def _dedupe_globs(cls, globs: list[str]) -> list[str]:
        seen: list[str] = []
        for pattern in globs:
            if not pattern:
                raise ValueError("content glob must not be empty")
            if pattern not in seen:
                seen.append(pattern)
        return seen

    @field_validator("font_family", "drop_shadow")
    @classmethod
    def _check_lists(cls, tokens: dict[str, list[str]]) -> dict[str, list[str]]:
        for name, values in tokens.items():
            _check_token_name(name)
            if not values or any(not v.strip() for v in values):
                raise ValueError(f"token '{name}' needs at least one non-blank value")
        return tokens

    @field_validator("colors")
    @classmethod
    def _check_colors(
        cls, colors: dict[str, str | dict[str, str]]
    ) -> dict[str, str | dict[str, str]]:
        for name, value in colors.items():
            _check_token_name(name)
            shades = value if isinstance(value, dict) else {"": value}
            for shade, colour in shades.items():
                if shade:
                    _check_token_name(shade)
                if not colour.strip():
                    raise ValueError(f"colour '{name}' has a blank value")
        return colors

    def flat_colors(self) -> dict[str, str]:
        """Flatten nested colour maps into ``name-shade`` tokens."""
        flat: dict[str, str] = {}
        for name, value in self.colors.items():
            if isinstance(value, dict):
                for shade, colour in value.items():
                    flat[f"{name}-{shade}"] = colour
            else:
                flat[name] = value
        return flat


def _check_token_name(name: str) -> None:
    if not TOKEN_NAME_PATTERN.match(name):
        raise ValueError(f"invalid token name '{name}'")
