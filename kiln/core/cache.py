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
# DEPENDENCY CACHE LEDGER
# -----------------------------------------------------------------------------
# The registry and target cache mounts live in the build engine, not here.
# This module keys them: a sha256 over the dependency manifest and lock
# file tells us whether the next build should reuse the prefetch layer.
#
# One writer per build invocation; the ledger is rewritten atomically.
# -----------------------------------------------------------------------------

import hashlib
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console

console = Console()


class MissingManifestError(Exception):
    """Raised when a dependency manifest named by the toolchain is absent."""

    def __init__(self, message: str, missing: list[str]) -> None:
        super().__init__(message)
        self.missing = missing


def dependency_fingerprint(context_dir: Path, manifest_files: list[str]) -> str:
    """
    Hash the dependency manifest files in a build context.

    Raises:
        MissingManifestError: If any manifest file does not exist.
    """
    missing = [name for name in manifest_files if not (context_dir / name).is_file()]
    if missing:
        raise MissingManifestError(
            f"Missing dependency manifest in {context_dir}: {', '.join(missing)}",
            missing=missing,
        )

    digest = hashlib.sha256()
    for name in manifest_files:
        digest.update(name.encode("utf-8"))
        digest.update(b"\0")
        digest.update((context_dir / name).read_bytes())
        digest.update(b"\0")
    return digest.hexdigest()


class CacheLedger:
    """
    JSON record of the last dependency fingerprint built per binary.

    Layout:
        {"htmx-gallery": {"fingerprint": "...", "recorded_at": "..."}}
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read(self) -> dict[str, dict[str, str]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                data = json.load(f)
        except json.JSONDecodeError:
            console.print(f"[yellow][CACHE] Ledger {self.path} unreadable, starting fresh[/yellow]")
            return {}
        return data if isinstance(data, dict) else {}

    def last_fingerprint(self, binary: str) -> str | None:
        entry = self._read().get(binary)
        return entry.get("fingerprint") if entry else None

    def expects_reuse(self, binary: str, fingerprint: str) -> bool:
        """True when the dependency inputs are unchanged since the last build."""
        return self.last_fingerprint(binary) == fingerprint

    def record(self, binary: str, fingerprint: str) -> None:
        data = self._read()
        data[binary] = {
            "fingerprint": fingerprint,
            "recorded_at": datetime.now(timezone.utc).isoformat(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".ledger-")
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        os.replace(tmp, self.path)
