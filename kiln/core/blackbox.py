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
# BLACK BOX - BUILD EVIDENCE
# -----------------------------------------------------------------------------
# Every build gets a folder, pass or fail:
# - recipe.json:          The validated recipe
# - Dockerfile:           What was handed to the build engine
# - build.log:            Raw BuildKit progress output
# - audit_pass.json OR audit_fail.json: The verdict
# - flight_recorder.json: Timestamped event log
# -----------------------------------------------------------------------------

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console

from kiln.domain.recipe import BuildRecipe

console = Console()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class FlightLogEntry:
    """A single entry in the flight recorder."""

    timestamp: str
    event: str
    details: str | None = None


class BlackBox:
    """Evidence folder and flight recorder for one build."""

    def __init__(self, builds_dir: Path, build_id: str) -> None:
        self.build_id = build_id
        self.folder = builds_dir / build_id
        self.folder.mkdir(parents=True, exist_ok=True)
        self._log: list[FlightLogEntry] = []

        console.print(f"[cyan][BLACKBOX] Evidence folder: {self.folder}[/cyan]")

    def log(self, event: str, details: str | None = None) -> None:
        """Record an event in the flight recorder."""
        self._log.append(FlightLogEntry(timestamp=_now(), event=event, details=details))

    def _write_json(self, name: str, payload: object) -> Path:
        path = self.folder / name
        with open(path, "w") as f:
            json.dump(payload, f, indent=2)
        return path

    def save_recipe(self, recipe: BuildRecipe) -> None:
        path = self._write_json("recipe.json", recipe.model_dump(mode="json"))
        self.log("RECIPE_SAVED", str(path))

    def save_dockerfile(self, dockerfile: str) -> Path:
        path = self.folder / "Dockerfile"
        path.write_text(dockerfile, encoding="utf-8")
        self.log("DOCKERFILE_SAVED", str(path))
        return path

    def save_build_log(self, lines: list[str]) -> None:
        path = self.folder / "build.log"
        path.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")
        self.log("BUILD_LOG_SAVED", f"{len(lines)} lines")

    def save_audit_pass(self, report: dict) -> None:
        self._write_json("audit_pass.json", {"timestamp": _now(), "verdict": "PASS", **report})
        self.log("AUDIT_PASSED")

    def save_audit_fail(self, stage: str, exit_code: int, output: str) -> None:
        self._write_json(
            "audit_fail.json",
            {
                "timestamp": _now(),
                "verdict": "FAIL",
                "stage": stage,
                "exit_code": exit_code,
                "output": output,
            },
        )
        self.log("AUDIT_FAILED", f"{stage} (exit code: {exit_code})")

    def finalize(self) -> None:
        """Save flight_recorder.json - the complete session log."""
        path = self._write_json(
            "flight_recorder.json",
            [{"timestamp": e.timestamp, "event": e.event, "details": e.details} for e in self._log],
        )
        console.print(f"[green][BLACKBOX] Flight recorder saved: {path}[/green]")
