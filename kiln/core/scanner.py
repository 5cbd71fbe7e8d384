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
# CONTENT SCANNER
# -----------------------------------------------------------------------------
# Responsibility: Resolve the theme's content globs and pull every token
# that could be a utility class out of the matched files.
#
# The extractor is language-agnostic. It over-collects (Rust identifiers,
# URLs, prose) and relies on the utility registry to discard anything that
# does not resolve to a rule.
# -----------------------------------------------------------------------------

import re
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

console = Console()

# Anything between quotes, whitespace, tags and template braces
CANDIDATE_PATTERN = re.compile(r"""[^\s"'`<>={};]+""")
TRAILING_PUNCTUATION = ".,:!?"


class StyleBuildError(Exception):
    """Raised when the style build cannot read its inputs or write its output."""

    pass


@dataclass
class ScanResult:
    """Files matched by the content globs and the candidate tokens they contain."""

    files: list[Path] = field(default_factory=list)
    candidates: set[str] = field(default_factory=set)


def extract_candidates(text: str) -> set[str]:
    """Split source text into possible class names."""
    found: set[str] = set()
    for match in CANDIDATE_PATTERN.finditer(text):
        token = match.group(0).rstrip(TRAILING_PUNCTUATION)
        if token and not token.startswith(("//", "http")):
            found.add(token)
    return found


def resolve_globs(root: Path, patterns: list[str], exclude: set[Path] | None = None) -> list[Path]:
    """
    Expand content globs under ``root``.

    Returns a sorted, de-duplicated list of files. Paths listed in ``exclude``
    (normally the generated stylesheet) are skipped.

    Raises:
        StyleBuildError: If a pattern is absolute or escapes the root.
    """
    excluded = {p.resolve() for p in (exclude or set())}
    root = root.resolve()
    matched: set[Path] = set()

    for pattern in patterns:
        relative = pattern[2:] if pattern.startswith("./") else pattern
        if relative.startswith("/") or ".." in Path(relative).parts:
            raise StyleBuildError(f"Content glob must stay inside the project root: {pattern}")
        for path in root.glob(relative):
            if path.is_file() and path.resolve() not in excluded:
                matched.add(path.resolve())

    return sorted(matched)


def scan(root: Path, patterns: list[str], exclude: set[Path] | None = None) -> ScanResult:
    """Read every matched file and collect candidate class names."""
    result = ScanResult(files=resolve_globs(root, patterns, exclude))

    for path in result.files:
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise StyleBuildError(f"Cannot read content file {path}: {e}") from e
        result.candidates |= extract_candidates(text)

    console.print(
        f"[cyan][STYLES] Scanned {len(result.files)} files, "
        f"{len(result.candidates)} candidates[/cyan]"
    )
    return result
