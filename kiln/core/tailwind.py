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
# TAILWIND CONFIG EXPORT
# -----------------------------------------------------------------------------
# Renders a ThemeConfig as tailwind.config.js so the upstream CLI can run
# against the same record kiln uses for its own style build.
# -----------------------------------------------------------------------------

import re
from pathlib import Path

from rich.console import Console

from kiln.domain.theme import ThemeConfig

console = Console()

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
INDENT = "  "


def _js_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _js_key(key: str) -> str:
    return key if _IDENTIFIER.match(key) else _js_string(key)


def _js_list(values: list[str]) -> str:
    return "[" + ", ".join(_js_string(v) for v in values) + "]"


def _js_block(name: str, entries: list[str], depth: int) -> list[str]:
    pad = INDENT * depth
    lines = [f"{pad}{name}: {{"]
    lines.extend(f"{pad}{INDENT}{entry}," for entry in entries)
    lines.append(f"{pad}}},")
    return lines


def render_tailwind_config(theme: ThemeConfig) -> str:
    """
    Render the theme as a CommonJS Tailwind config.

    Key order follows the theme record, so the output is stable for a
    given input.
    """
    font_entries = [f"{_js_key(k)}: {_js_list(v)}" for k, v in theme.font_family.items()]

    color_entries = []
    for name, value in theme.colors.items():
        if isinstance(value, dict):
            shades = ", ".join(f"{_js_key(s)}: {_js_string(c)}" for s, c in value.items())
            color_entries.append(f"{_js_key(name)}: {{ {shades} }}")
        else:
            color_entries.append(f"{_js_key(name)}: {_js_string(value)}")

    shadow_entries = [f"{_js_key(k)}: {_js_list(v)}" for k, v in theme.drop_shadow.items()]

    lines = [
        "/** @type {import('tailwindcss').Config} */",
        "module.exports = {",
        f"{INDENT}content: {_js_list(theme.content_globs)},",
    ]
    if theme.safelist:
        lines.append(f"{INDENT}safelist: {_js_list(theme.safelist)},")
    lines.append(f"{INDENT}theme: {{")
    lines.append(f"{INDENT * 2}extend: {{")
    lines.extend(_js_block("fontFamily", font_entries, 3))
    lines.extend(_js_block("colors", color_entries, 3))
    lines.extend(_js_block("dropShadow", shadow_entries, 3))
    lines.append(f"{INDENT * 2}}},")
    lines.append(f"{INDENT}}},")
    lines.append(f"{INDENT}plugins: [],")
    lines.append("}")
    return "\n".join(lines) + "\n"


def write_tailwind_config(theme: ThemeConfig, path: Path) -> bool:
    """Write the config file. Returns False when the file was already current."""
    rendered = render_tailwind_config(theme)
    if path.exists() and path.read_text(encoding="utf-8") == rendered:
        console.print(f"[dim][STYLES] {path} unchanged[/dim]")
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(rendered, encoding="utf-8")
    console.print(f"[green][STYLES] Wrote {path}[/green]")
    return True
