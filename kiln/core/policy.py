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
# THE GATEKEEPER - RECIPE POLICY
# -----------------------------------------------------------------------------
# Responsibility: Check a BuildRecipe against the pipeline invariants
# before any build runs. A recipe that breaks a rule is REJECTED.
#
# Rules:
# 1. At least two stages (builder + runtime)
# 2. No CMD / ENTRYPOINT anywhere (start command is deferred)
# 3. Runtime base is not a toolchain image
# 4. No cache mounts in the runtime stage
# 5. Runtime user exists and is not root
# 6. Runtime copies exactly the builder's artifacts, once each
# 7. Manifest copy + prefetch precede the full source copy
# -----------------------------------------------------------------------------

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from rich.console import Console

from kiln.domain.recipe import BuildRecipe, BuildStage, InstructionKind

console = Console()

POLICY_PATH = Path(__file__).parent.parent.parent / "policy.yaml"


class RecipePolicy(BaseModel):
    """
    Pydantic model for the recipe policy.

    Loaded from policy.yaml, or the ``policy`` section of kiln.yaml.
    """

    min_stages: int = 2
    forbidden_instructions: list[str] = Field(default_factory=lambda: ["CMD", "ENTRYPOINT"])
    forbidden_runtime_images: list[str] = Field(
        default_factory=lambda: ["rust", "golang", "gcc", "node"]
    )
    forbidden_users: list[str] = Field(default_factory=lambda: ["root", "0"])


class RecipeViolation(Exception):
    """
    Raised when a recipe breaks a pipeline rule.

    Carries the rule name and details about what was found.
    """

    def __init__(self, message: str, rule: str, details: str = "") -> None:
        super().__init__(message)
        self.rule = rule
        self.details = details


def image_repository(reference: str) -> str:
    """
    Reduce an image reference to its bare repository name.

    ``docker.io/library/rust:1.75-slim@sha256:...`` -> ``rust``
    """
    name = reference.split("@", 1)[0]
    last = name.rsplit("/", 1)[-1]
    return last.split(":", 1)[0].lower()


class RecipeGate:
    """Validates recipes against the pipeline policy."""

    def __init__(self, policy: RecipePolicy | None = None, policy_path: Path = POLICY_PATH) -> None:
        """
        Initialize the Recipe Gate.

        Args:
            policy: Explicit policy. When omitted, loaded from ``policy_path``.
            policy_path: YAML file holding the policy.
        """
        self._policy_path = policy_path
        self._policy = policy if policy is not None else self._load_policy()
        console.print(
            f"[green][GATEKEEPER] Policy loaded: "
            f"{len(self._policy.forbidden_runtime_images)} forbidden runtime images[/green]"
        )

    @property
    def policy(self) -> RecipePolicy:
        return self._policy

    def _load_policy(self) -> RecipePolicy:
        if not self._policy_path.exists():
            console.print("[yellow][GATEKEEPER] Policy file not found, using defaults[/yellow]")
            return RecipePolicy()

        with open(self._policy_path) as f:
            data = yaml.safe_load(f) or {}

        return RecipePolicy(**data)

    def validate(self, recipe: BuildRecipe) -> bool:
        """
        Validate a recipe against every rule.

        Returns:
            True if validation passes.

        Raises:
            RecipeViolation: On the first rule the recipe breaks.
        """
        console.print(
            f"[cyan][GATEKEEPER] Validating recipe: "
            f"{' -> '.join(s.name for s in recipe.stages)}[/cyan]"
        )

        self._check_stage_count(recipe)
        self._check_deferred_command(recipe)
        self._check_runtime_base(recipe)
        self._check_runtime_mounts(recipe.runtime)
        self._check_runtime_user(recipe.runtime)
        self._check_artifacts(recipe)
        self._check_layer_order(recipe.builder)

        console.print("[green][GATEKEEPER] Recipe approved[/green]")
        return True

    def _reject(self, message: str, rule: str, details: str = "") -> None:
        console.print(f"[red][GATEKEEPER] Rejected: {message}[/red]")
        raise RecipeViolation(message, rule=rule, details=details)

    def _check_stage_count(self, recipe: BuildRecipe) -> None:
        if len(recipe.stages) < self._policy.min_stages:
            self._reject(
                f"Recipe has {len(recipe.stages)} stage(s), needs {self._policy.min_stages}",
                rule="min_stages",
            )

    def _check_deferred_command(self, recipe: BuildRecipe) -> None:
        forbidden = {k.upper() for k in self._policy.forbidden_instructions}
        for stage in recipe.stages:
            for instruction in stage.instructions:
                if instruction.kind.value in forbidden:
                    self._reject(
                        f"{instruction.kind.value} declared in stage '{stage.name}'",
                        rule="forbidden_instructions",
                        details="The start command belongs to the launch descriptor",
                    )

    def _check_runtime_base(self, recipe: BuildRecipe) -> None:
        runtime = recipe.runtime
        repository = image_repository(runtime.base_image)
        forbidden = {image_repository(i) for i in self._policy.forbidden_runtime_images}
        forbidden.add(image_repository(recipe.builder.base_image))
        if repository in forbidden:
            self._reject(
                f"Runtime stage is based on toolchain image '{runtime.base_image}'",
                rule="forbidden_runtime_images",
                details=f"Forbidden: {sorted(forbidden)}",
            )

    def _check_runtime_mounts(self, runtime: BuildStage) -> None:
        for instruction in runtime.instructions:
            if instruction.mounts:
                self._reject(
                    "Cache mounts are not allowed in the runtime stage",
                    rule="runtime_mounts",
                    details=instruction.args,
                )

    def _check_runtime_user(self, runtime: BuildStage) -> None:
        users = [
            (index, i.args.split(":", 1)[0].strip())
            for index, i in enumerate(runtime.instructions)
            if i.kind == InstructionKind.USER
        ]
        if not users:
            self._reject("Runtime stage never drops privileges", rule="runtime_user")
        index, user = users[-1]
        if user in self._policy.forbidden_users:
            self._reject(f"Runtime user '{user}' is privileged", rule="runtime_user")

        created = any(
            i.kind == InstructionKind.RUN
            and ("useradd" in i.args or "adduser" in i.args)
            and user in i.args.split()
            for i in runtime.instructions[:index]
        )
        if not created:
            self._reject(
                f"Runtime user '{user}' is not created before USER",
                rule="runtime_user",
            )

    def _check_artifacts(self, recipe: BuildRecipe) -> None:
        builder, runtime = recipe.builder, recipe.runtime
        expected = {(a.source, a.destination): a.name for a in builder.produces}
        consumed: list[tuple[str, str]] = []

        for instruction in runtime.of_kind(InstructionKind.COPY):
            if instruction.from_stage != builder.name:
                self._reject(
                    f"Runtime COPY '{instruction.args}' does not come from '{builder.name}'",
                    rule="runtime_artifacts",
                )
            sources, destination = instruction.copy_paths
            for source in sources:
                pair = (source, destination)
                if pair not in expected:
                    self._reject(
                        f"Runtime copies undeclared artifact '{source}'",
                        rule="runtime_artifacts",
                        details=f"Declared: {sorted(expected.values())}",
                    )
                if pair in consumed:
                    self._reject(
                        f"Artifact '{expected[pair]}' copied twice", rule="runtime_artifacts"
                    )
                consumed.append(pair)

        missing = [name for pair, name in expected.items() if pair not in consumed]
        if missing:
            self._reject(
                f"Runtime stage never copies: {', '.join(sorted(missing))}",
                rule="runtime_artifacts",
            )

    def _check_layer_order(self, builder: BuildStage) -> None:
        instructions = builder.instructions
        full_copy = next(
            (
                index
                for index, i in enumerate(instructions)
                if i.kind == InstructionKind.COPY and not i.from_stage and "." in i.copy_paths[0]
            ),
            None,
        )
        if full_copy is None:
            self._reject("Builder never copies the source tree", rule="layer_order")

        manifest_copy = next(
            (
                index
                for index, i in enumerate(instructions[:full_copy])
                if i.kind == InstructionKind.COPY and not i.from_stage
            ),
            None,
        )
        if manifest_copy is None:
            self._reject(
                "Dependency manifest must be copied before the full source tree",
                rule="layer_order",
            )

        prefetch = any(
            i.kind == InstructionKind.RUN for i in instructions[manifest_copy + 1:full_copy]
        )
        if not prefetch:
            self._reject(
                "No dependency prefetch between manifest copy and source copy",
                rule="layer_order",
            )
