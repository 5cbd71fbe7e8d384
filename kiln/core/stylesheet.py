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
# THE STYLIST - UTILITY STYLESHEET BUILD
# -----------------------------------------------------------------------------
# Responsibility: Scan content, keep only the utilities that content (or
# the safelist) references, and emit a deterministic stylesheet.
#
# Purge mode is content-driven for everything, theme tokens included:
# ``font-poppins`` is only emitted if some scanned file uses it.
#
# Output guarantees:
# - Same inputs produce byte-identical output (no timestamps, stable order)
# - The output file is only rewritten when its bytes change
# -----------------------------------------------------------------------------

import hashlib
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from kiln.core.scanner import ScanResult, StyleBuildError, scan
from kiln.core.utilities import KEYFRAMES, VARIABLE_DEFAULTS, Rule, UtilityRegistry
from kiln.domain.theme import ThemeConfig

console = Console()

HEADER = "/* Generated by kiln. Do not edit. */\n"
UTILITIES_DIRECTIVE = "@tailwind utilities;"
DROPPED_DIRECTIVES = ("@tailwind base;", "@tailwind components;")
UNRESOLVED_SHOWN = 8


@dataclass
class StyleReport:
    """Outcome of one style build."""

    output: Path
    files: list[Path] = field(default_factory=list)
    classes: list[str] = field(default_factory=list)
    changed: bool = False
    digest: str = ""
    size: int = 0
    unresolved: list[str] = field(default_factory=list)


class StyleBuilder:
    """
    Content-driven utility stylesheet generator.

    Usage:
        builder = StyleBuilder(theme, root=Path("."), output=Path("src/static/output.css"))
        report = builder.build()
    """

    def __init__(
        self,
        theme: ThemeConfig,
        root: Path,
        output: Path,
        input_css: Path | None = None,
    ) -> None:
        self._theme = theme
        self._root = root
        self._output = output if output.is_absolute() else root / output
        self._input_css = None
        if input_css is not None:
            self._input_css = input_css if input_css.is_absolute() else root / input_css
        self._registry = UtilityRegistry(theme)

    @property
    def registry(self) -> UtilityRegistry:
        return self._registry

    def collect(self) -> tuple[ScanResult, list[Rule], list[str]]:
        """
        Scan content and resolve every candidate plus the safelist.

        Returns:
            The scan result, the resolved rules in emission order, and the
            utility-looking candidates (containing ``-`` or ``:``) that
            matched nothing.
        """
        exclude = {self._output}
        if self._input_css is not None:
            exclude.add(self._input_css)
        result = scan(self._root, self._theme.content_globs, exclude=exclude)

        candidates = result.candidates | set(self._theme.safelist)
        rules: list[Rule] = []
        unresolved: list[str] = []
        for candidate in candidates:
            rule = self._registry.resolve(candidate)
            if rule is not None:
                rules.append(rule)
            elif "-" in candidate or ":" in candidate:
                unresolved.append(candidate)
        rules.sort(key=lambda r: r.sort_key)
        unresolved.sort()

        missing = [c for c in self._theme.safelist if c in unresolved]
        if missing:
            console.print(
                f"[yellow][STYLES] Safelisted classes match no utility: "
                f"{escape(', '.join(missing))}[/yellow]"
            )
        if unresolved:
            shown = ", ".join(unresolved[:UNRESOLVED_SHOWN])
            more = len(unresolved) - UNRESOLVED_SHOWN
            suffix = f" (+{more} more)" if more > 0 else ""
            console.print(
                f"[dim][STYLES] {len(unresolved)} candidates did not resolve: "
                f"{escape(shown)}{suffix}[/dim]"
            )
        return result, rules, unresolved

    def render(self, rules: list[Rule]) -> str:
        """Render resolved rules as a stylesheet body."""
        chunks: list[str] = [HEADER]

        if any(r.uses_variables for r in rules):
            defaults = "".join(f"  {prop}: {value};\n" for prop, value in VARIABLE_DEFAULTS)
            chunks.append(f"*, ::before, ::after {{\n{defaults}}}\n")

        for rule in rules:
            if rule.media is None:
                chunks.append(rule.render())

        media_blocks: dict[str, list[Rule]] = {}
        for rule in rules:
            if rule.media is not None:
                media_blocks.setdefault(rule.media, []).append(rule)
        for media, block in sorted(media_blocks.items(), key=lambda item: item[1][0].screen_rank):
            body = "".join(rule.render("  ") for rule in block)
            chunks.append(f"@media {media} {{\n{body}}}\n")

        for name in sorted({r.keyframes for r in rules if r.keyframes}):
            chunks.append(KEYFRAMES[name] + "\n")

        return "".join(chunks)

    def _splice(self, generated: str) -> str:
        if self._input_css is None:
            return generated
        try:
            source = self._input_css.read_text(encoding="utf-8")
        except OSError as e:
            raise StyleBuildError(f"Cannot read input stylesheet {self._input_css}: {e}") from e

        lines = []
        spliced = False
        for line in source.splitlines():
            stripped = line.strip()
            if stripped == UTILITIES_DIRECTIVE:
                lines.append(generated.rstrip("\n"))
                spliced = True
            elif stripped not in DROPPED_DIRECTIVES:
                lines.append(line)
        if not spliced:
            lines.append(generated.rstrip("\n"))
        return "\n".join(lines) + "\n"

    def build(self) -> StyleReport:
        """
        Run the full scan-resolve-emit pass.

        Returns:
            StyleReport describing what was emitted and whether the file changed.

        Raises:
            StyleBuildError: If content or the input stylesheet cannot be read,
                or the output cannot be written.
        """
        result, rules, unresolved = self.collect()
        stylesheet = self._splice(self.render(rules)).encode("utf-8")
        digest = hashlib.sha256(stylesheet).hexdigest()

        changed = True
        if self._output.exists() and self._output.read_bytes() == stylesheet:
            changed = False
        else:
            try:
                self._output.parent.mkdir(parents=True, exist_ok=True)
                self._output.write_bytes(stylesheet)
            except OSError as e:
                raise StyleBuildError(f"Cannot write stylesheet {self._output}: {e}") from e

        classes = [r.candidate for r in rules]
        if changed:
            console.print(
                f"[green][STYLES] {len(classes)} classes -> {self._output} "
                f"({len(stylesheet)} bytes)[/green]"
            )
        else:
            console.print(f"[dim][STYLES] {self._output} unchanged[/dim]")

        return StyleReport(
            output=self._output,
            files=result.files,
            classes=classes,
            changed=changed,
            digest=digest,
            size=len(stylesheet),
            unresolved=unresolved,
        )
