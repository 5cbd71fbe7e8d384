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
# THE FOUNDRY - BUILDER & EVIDENCE
# -----------------------------------------------------------------------------
# Responsibility: Run a validated recipe through BuildKit, audit the image,
# and tag it only when everything passed.
#
# Sequence (each step is a precondition for the next):
# 1. Gate the recipe
# 2. Fingerprint the dependency manifest (missing manifest = abort)
# 3. Write the Dockerfile into the evidence folder
# 4. ``docker build`` with --iidfile and no -t: a failed build leaves no tag
# 5. Audit the image contents
# 6. Tag
#
# There is no retry and no timeout. Any failure propagates to the caller.
# -----------------------------------------------------------------------------

import os
import subprocess
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from docker.errors import APIError, ImageNotFound
from rich.console import Console

from kiln.core.auditor import AuditReport, ImageAuditError, ImageAuditor
from kiln.core.blackbox import BlackBox
from kiln.core.build_log import BuildLog, StepRecord, parse_build_log
from kiln.core.cache import CacheLedger, MissingManifestError, dependency_fingerprint
from kiln.core.composer import compose_recipe, render_dockerfile
from kiln.core.policy import RecipeGate, RecipeViolation
from kiln.domain.recipe import BuildRecipe, PipelineConfig
from kiln.infra.docker_client import DockerProvider, DockerProviderError

console = Console()

BUILDS_DIR = Path(os.getenv("KILN_BUILDS_DIR", Path(__file__).parent.parent.parent / "builds"))
LEDGER_NAME = "cache_ledger.json"


class BuildFailedError(Exception):
    """Raised when a pipeline stage fails. No image is tagged."""

    def __init__(self, message: str, stage: str, exit_code: int, output: str = "") -> None:
        super().__init__(message)
        self.stage = stage
        self.exit_code = exit_code
        self.output = output


@dataclass
class BuildResult:
    """Result of a successful, audited, tagged build."""

    build_id: str
    image_id: str
    tag: str
    duration_seconds: float
    dependency_fingerprint: str
    dependency_reuse_expected: bool
    dependency_cache_hit: bool | None
    cached_steps: int
    audit: AuditReport


def split_tag(reference: str) -> tuple[str, str]:
    """Split ``repo[:tag]`` into (repository, tag), defaulting tag to latest."""
    repository, sep, tag = reference.rpartition(":")
    if not sep or "/" in tag:
        return reference, "latest"
    return repository, tag


def protocol_stage(step: StepRecord, config: PipelineConfig) -> str:
    """Name the pipeline step a BuildKit step belongs to."""
    toolchain = config.toolchain
    fmt = {"project": config.project_name, "binary": config.binary_name}
    text = step.instruction

    if step.stage == config.runtime_stage:
        return "runtime-assembly"
    if toolchain.install_command.format(**fmt) in text:
        return "install"
    if toolchain.build_command.format(**fmt) in text:
        return "release-compile"
    if toolchain.fetch_command.format(**fmt) in text:
        return "dependency-prefetch"
    if toolchain.scaffold_command.format(**fmt) in text:
        return "scaffold"
    if text.startswith("COPY . ."):
        return "source-copy"
    if text.startswith("COPY"):
        return "dependency-prefetch"
    return step.stage


class Foundry:
    """
    Executes build recipes against a Docker engine.

    Usage:
        foundry = Foundry(DockerProvider())
        result = foundry.build(config, Path("."), tag="htmx-gallery:latest")
    """

    def __init__(
        self,
        provider: DockerProvider,
        gate: RecipeGate | None = None,
        builds_dir: Path = BUILDS_DIR,
    ) -> None:
        self._provider = provider
        self._gate = gate if gate is not None else RecipeGate()
        self._builds_dir = builds_dir
        self._ledger = CacheLedger(builds_dir / LEDGER_NAME)

    @property
    def ledger(self) -> CacheLedger:
        return self._ledger

    def _run_build(
        self, recipe: BuildRecipe, dockerfile: Path, context_dir: Path, iidfile: Path
    ) -> tuple[int, BuildLog]:
        cmd = [
            self._provider.cli_path(),
            "build",
            "--progress=plain",
            "--target",
            recipe.runtime.name,
            "--iidfile",
            str(iidfile),
            "-f",
            str(dockerfile),
            str(context_dir),
        ]
        console.print(f"[cyan][FOUNDRY] {' '.join(cmd[1:])}[/cyan]")

        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            env=self._provider.cli_env(),
        )
        lines: list[str] = []
        for line in process.stdout or []:
            line = line.rstrip("\n")
            lines.append(line)
            console.print(line, style="dim", markup=False, highlight=False)
        exit_code = process.wait()
        return exit_code, parse_build_log(lines)

    def build(
        self,
        config: PipelineConfig,
        context_dir: Path,
        tag: str,
        recipe: BuildRecipe | None = None,
    ) -> BuildResult:
        """
        Build, audit and tag the runtime image.

        Args:
            config: Pipeline inputs (binary name, toolchain, runtime image...).
            context_dir: Build context holding the manifest and source.
            tag: Image reference to apply once the audit passes.
            recipe: Pre-composed recipe; composed from ``config`` when omitted.

        Returns:
            BuildResult for the tagged image.

        Raises:
            RecipeViolation: The recipe broke a pipeline rule.
            BuildFailedError: A build stage failed, or tagging failed.
            ImageAuditError: The image contains toolchain files or lacks artifacts.
            DockerProviderError: The docker CLI or engine is unavailable.
        """
        start = time.monotonic()
        recipe = recipe if recipe is not None else compose_recipe(config)
        build_id = uuid.uuid4().hex[:12]

        blackbox = BlackBox(self._builds_dir, build_id)
        blackbox.log("BUILD_STARTED", config.binary_name)

        try:
            self._gate.validate(recipe)
            blackbox.save_recipe(recipe)

            try:
                fingerprint = dependency_fingerprint(context_dir, config.toolchain.manifest_files)
            except MissingManifestError as e:
                raise BuildFailedError(
                    str(e), stage="dependency-prefetch", exit_code=-1, output=str(e)
                ) from e
            reuse_expected = self._ledger.expects_reuse(config.binary_name, fingerprint)
            blackbox.log("DEPENDENCIES_FINGERPRINTED", fingerprint)

            dockerfile = blackbox.save_dockerfile(render_dockerfile(recipe))
            iidfile = blackbox.folder / "image.iid"

            exit_code, log = self._run_build(recipe, dockerfile, context_dir, iidfile)
            blackbox.save_build_log(log.lines)

            if exit_code != 0:
                failed = log.failed_step
                stage = protocol_stage(failed, config) if failed else "build"
                console.print(f"[red][FOUNDRY] Build FAILED at {stage} (exit: {exit_code})[/red]")
                raise BuildFailedError(
                    f"Build failed at {stage} with exit code {exit_code}",
                    stage=stage,
                    exit_code=(failed.exit_code if failed and failed.exit_code else exit_code),
                    output=log.tail(),
                )

            image_id = iidfile.read_text().strip() if iidfile.exists() else ""
            if not image_id:
                raise BuildFailedError(
                    "Build reported success but produced no image id",
                    stage="build",
                    exit_code=-1,
                    output=log.tail(),
                )
            blackbox.log("IMAGE_BUILT", image_id)

            prefetch = log.find(
                config.toolchain.fetch_command.format(
                    project=config.project_name, binary=config.binary_name
                ),
                stage=recipe.builder.name,
            )
            cache_hit = prefetch.cached if prefetch else None
            if reuse_expected and cache_hit is False:
                console.print(
                    "[yellow][FOUNDRY] Dependency layer rebuilt although the manifest "
                    "is unchanged[/yellow]"
                )

            client = self._provider.get_client()
            auditor = ImageAuditor(client)
            report = auditor.require_clean(image_id, config.toolchain, recipe.builder.produces)
            blackbox.save_audit_pass(report.as_dict())
            self._ledger.record(config.binary_name, fingerprint)

            repository, version = split_tag(tag)
            try:
                tagged = client.images.get(image_id).tag(repository, tag=version)
            except (ImageNotFound, APIError) as e:
                raise BuildFailedError(
                    f"Tagging {tag} failed: {e}", stage="tag", exit_code=-1
                ) from e
            if not tagged:
                raise BuildFailedError(f"Tagging {tag} failed", stage="tag", exit_code=-1)

            duration = time.monotonic() - start
            blackbox.log("IMAGE_TAGGED", tag)
            blackbox.finalize()
            console.print(f"[green][FOUNDRY] {tag} ready ({duration:.1f}s)[/green]")

            return BuildResult(
                build_id=build_id,
                image_id=image_id,
                tag=tag,
                duration_seconds=duration,
                dependency_fingerprint=fingerprint,
                dependency_reuse_expected=reuse_expected,
                dependency_cache_hit=cache_hit,
                cached_steps=len(log.cached_steps),
                audit=report,
            )

        except RecipeViolation as e:
            blackbox.save_audit_fail(f"recipe:{e.rule}", -1, str(e))
            blackbox.finalize()
            raise

        except BuildFailedError as e:
            blackbox.save_audit_fail(e.stage, e.exit_code, e.output)
            blackbox.finalize()
            raise

        except ImageAuditError as e:
            blackbox.save_audit_fail("image-audit", -1, "\n".join(e.violations))
            blackbox.finalize()
            raise

        except DockerProviderError as e:
            blackbox.save_audit_fail("docker", -1, str(e))
            blackbox.finalize()
            raise

        except Exception as e:
            blackbox.save_audit_fail("build", -1, f"{type(e).__name__}: {e}")
            blackbox.finalize()
            raise
