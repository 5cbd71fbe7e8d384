"""
Tests for recipe policy enforcement.
"""

import pytest

from kiln.core.composer import compose_recipe
from kiln.core.policy import RecipeGate, RecipePolicy, RecipeViolation, image_repository
from kiln.domain.recipe import (
    BuildRecipe,
    CacheMount,
    Instruction,
    InstructionKind,
    PipelineConfig,
    ToolchainProfile,
)


def _without(instructions, needle):
    return [i for i in instructions if needle not in i.args]


class TestRecipeGate:
    """Tests for RecipeGate rule enforcement."""

    @pytest.fixture
    def gate(self):
        """Create a RecipeGate with the default rules."""
        return RecipeGate(policy=RecipePolicy())

    @pytest.fixture
    def recipe(self):
        """The composed gallery recipe."""
        return compose_recipe(PipelineConfig())

    def test_composed_recipe_passes(self, gate, recipe):
        assert gate.validate(recipe) is True

    def test_single_stage_rejected(self, gate, recipe):
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(BuildRecipe(stages=[recipe.builder]))
        assert exc_info.value.rule == "min_stages"

    def test_cmd_in_runtime_rejected(self, gate, recipe):
        recipe.runtime.instructions.append(
            Instruction(kind=InstructionKind.CMD, args='["/app/htmx-gallery"]')
        )
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert exc_info.value.rule == "forbidden_instructions"

    def test_entrypoint_in_builder_rejected(self, gate, recipe):
        recipe.builder.instructions.append(
            Instruction(kind=InstructionKind.ENTRYPOINT, args='["cargo", "run"]')
        )
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert exc_info.value.rule == "forbidden_instructions"

    @pytest.mark.parametrize(
        "runtime_image", ["rust:1.75-slim", "docker.io/library/golang:1.22", "node"]
    )
    def test_toolchain_runtime_base_rejected(self, gate, runtime_image):
        recipe = compose_recipe(PipelineConfig(runtime_image=runtime_image))
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert exc_info.value.rule == "forbidden_runtime_images"

    def test_runtime_on_builder_image_rejected(self, gate):
        config = PipelineConfig(
            toolchain=ToolchainProfile(builder_image="registry.local/buildbox:1"),
            runtime_image="registry.local/buildbox:2",
        )
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(compose_recipe(config))
        assert exc_info.value.rule == "forbidden_runtime_images"

    def test_runtime_cache_mount_rejected(self, gate, recipe):
        recipe.runtime.instructions.insert(
            0,
            Instruction(
                kind=InstructionKind.RUN,
                args="apt-get update",
                mounts=[CacheMount(target="/var/cache/apt")],
            ),
        )
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert exc_info.value.rule == "runtime_mounts"

    def test_missing_user_rejected(self, gate, recipe):
        recipe.runtime.instructions = [
            i for i in recipe.runtime.instructions if i.kind != InstructionKind.USER
        ]
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert exc_info.value.rule == "runtime_user"

    def test_root_user_rejected(self, gate, recipe):
        recipe.runtime.instructions = [
            Instruction(kind=InstructionKind.USER, args="root")
            if i.kind == InstructionKind.USER
            else i
            for i in recipe.runtime.instructions
        ]
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert exc_info.value.rule == "runtime_user"

    def test_user_never_created_rejected(self, gate, recipe):
        recipe.runtime.instructions = _without(recipe.runtime.instructions, "useradd")
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert "not created" in str(exc_info.value)

    def test_copy_from_context_in_runtime_rejected(self, gate, recipe):
        recipe.runtime.instructions.append(
            Instruction(kind=InstructionKind.COPY, args=". /app")
        )
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert exc_info.value.rule == "runtime_artifacts"

    def test_undeclared_artifact_rejected(self, gate, recipe):
        recipe.runtime.instructions.append(
            Instruction(
                kind=InstructionKind.COPY,
                args="/usr/local/cargo/bin/cargo /app/cargo",
                from_stage="builder",
            )
        )
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert "undeclared" in str(exc_info.value)

    def test_artifact_copied_twice_rejected(self, gate, recipe):
        copy = recipe.runtime.of_kind(InstructionKind.COPY)[0]
        recipe.runtime.instructions.append(copy)
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert "twice" in str(exc_info.value)

    def test_missing_static_assets_rejected(self, gate, recipe):
        recipe.runtime.instructions = _without(recipe.runtime.instructions, "src/static")
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert exc_info.value.rule == "runtime_artifacts"
        assert "static" in str(exc_info.value)

    def test_manifest_copy_required_before_source(self, gate, recipe):
        recipe.builder.instructions = _without(recipe.builder.instructions, "Cargo.toml")
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert exc_info.value.rule == "layer_order"

    def test_prefetch_required_before_source(self, gate, recipe):
        recipe.builder.instructions = _without(recipe.builder.instructions, "cargo fetch")
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert "prefetch" in str(exc_info.value)

    def test_source_copy_required(self, gate, recipe):
        recipe.builder.instructions = [
            i for i in recipe.builder.instructions if i.args != ". ."
        ]
        with pytest.raises(RecipeViolation) as exc_info:
            gate.validate(recipe)
        assert exc_info.value.rule == "layer_order"


class TestPolicyFile:
    """Loading rules from YAML."""

    def test_missing_file_uses_defaults(self, tmp_path):
        gate = RecipeGate(policy_path=tmp_path / "absent.yaml")
        assert gate.policy == RecipePolicy()

    def test_rules_loaded_from_yaml(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("forbidden_runtime_images:\n  - debian\n")

        gate = RecipeGate(policy_path=path)

        assert gate.policy.forbidden_runtime_images == ["debian"]
        with pytest.raises(RecipeViolation):
            gate.validate(compose_recipe(PipelineConfig()))

    def test_repository_policy_file_matches_defaults(self):
        assert RecipeGate().policy == RecipePolicy()


class TestImageRepository:
    """Tests for image reference normalisation."""

    @pytest.mark.parametrize(
        "reference,expected",
        [
            ("rust", "rust"),
            ("rust:1.75-slim", "rust"),
            ("docker.io/library/Rust:latest", "rust"),
            ("localhost:5000/team/app:2", "app"),
            ("debian@sha256:0123abcd", "debian"),
        ],
    )
    def test_reduces_to_repository(self, reference, expected):
        assert image_repository(reference) == expected
