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
# THE CRITIC - IMAGE AUDIT
# -----------------------------------------------------------------------------
# Responsibility: Inspect a freshly built runtime image before it is tagged.
#
# Checks:
# - Configured user is not root
# - No toolchain paths (compiler, registry cache) in the filesystem
# - No toolchain commands on PATH
# - The binary and the static directory are present
#
# Nothing is tagged unless every check passes.
# -----------------------------------------------------------------------------

import shlex
from dataclasses import dataclass, field

from docker import DockerClient
from docker.errors import APIError, ContainerError, ImageNotFound
from rich.console import Console

from kiln.domain.recipe import Artifact, ToolchainProfile

console = Console()

PRIVILEGED_USERS = ("", "root", "0")


class ImageAuditError(Exception):
    """Raised when the runtime image fails its contents audit."""

    def __init__(self, message: str, violations: list[str]) -> None:
        super().__init__(message)
        self.violations = violations


@dataclass
class AuditReport:
    """What the probe container found inside the image."""

    image_id: str
    user: str
    found: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    violations: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations

    def as_dict(self) -> dict:
        return {
            "image_id": self.image_id,
            "user": self.user,
            "found": self.found,
            "missing": self.missing,
            "violations": self.violations,
        }


def probe_script(toolchain: ToolchainProfile, artifacts: list[Artifact]) -> str:
    """Shell script that prints FOUND:/MISSING: markers and always exits 0."""
    lines = []
    for path in toolchain.forbidden_paths:
        lines.append(f"[ -e {shlex.quote(path)} ] && echo FOUND:{path}")
    for command in toolchain.forbidden_commands:
        lines.append(f"command -v {shlex.quote(command)} >/dev/null 2>&1 && echo FOUND:{command}")
    for artifact in artifacts:
        lines.append(f"[ -e {shlex.quote(artifact.destination)} ] || echo MISSING:{artifact.destination}")
    lines.append("exit 0")
    return "\n".join(lines)


class ImageAuditor:
    """Audits runtime images through the Docker SDK."""

    def __init__(self, client: DockerClient) -> None:
        self._client = client

    def audit(
        self, image_id: str, toolchain: ToolchainProfile, artifacts: list[Artifact]
    ) -> AuditReport:
        """
        Audit an image.

        Returns:
            AuditReport with every finding. Does not raise on violations;
            the caller decides (see ``require_clean``).

        Raises:
            ImageAuditError: If the image cannot be inspected or probed.
        """
        console.print(f"[cyan][AUDIT] Inspecting {image_id[:19]}...[/cyan]")
        try:
            image = self._client.images.get(image_id)
        except ImageNotFound as e:
            raise ImageAuditError(f"Image {image_id} not found", violations=[str(e)]) from e

        user = (image.attrs.get("Config") or {}).get("User") or ""
        report = AuditReport(image_id=image_id, user=user)
        if user.split(":", 1)[0] in PRIVILEGED_USERS:
            report.violations.append(f"image runs as privileged user '{user or 'root'}'")

        try:
            raw = self._client.containers.run(
                image_id,
                command=["sh", "-c", probe_script(toolchain, artifacts)],
                remove=True,
                stdout=True,
                stderr=False,
            )
        except (ContainerError, APIError) as e:
            raise ImageAuditError(f"Probe container failed: {e}", violations=[str(e)]) from e

        output = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
        for line in output.splitlines():
            line = line.strip()
            if line.startswith("FOUND:"):
                item = line[len("FOUND:"):]
                report.found.append(item)
                report.violations.append(f"toolchain leaked into runtime image: {item}")
            elif line.startswith("MISSING:"):
                item = line[len("MISSING:"):]
                report.missing.append(item)
                report.violations.append(f"artifact missing from runtime image: {item}")

        if report.passed:
            console.print("[green][AUDIT] Image clean[/green]")
        else:
            console.print(f"[red][AUDIT] {len(report.violations)} violation(s)[/red]")
        return report

    def require_clean(
        self, image_id: str, toolchain: ToolchainProfile, artifacts: list[Artifact]
    ) -> AuditReport:
        """Audit and raise ImageAuditError on any violation."""
        report = self.audit(image_id, toolchain, artifacts)
        if not report.passed:
            raise ImageAuditError(
                f"Runtime image failed audit: {'; '.join(report.violations)}",
                violations=report.violations,
            )
        return report
