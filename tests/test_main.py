# =============================================================================
# KILN CLI TESTS
# =============================================================================
# Every subcommand against a temporary project root. Docker is mocked.
# =============================================================================

from unittest.mock import patch

import pytest

from kiln.core.auditor import AuditReport
from kiln.core.foundry import BuildFailedError, BuildResult
from kiln.main import build_parser, main

LAUNCH_CONFIG = """launch:
  app: htmx-gallery
  image: htmx-gallery:latest
  cmd: ["/app/htmx-gallery"]
"""


@pytest.fixture(autouse=True)
def no_env_config(monkeypatch):
    monkeypatch.delenv("KILN_CONFIG", raising=False)
    monkeypatch.delenv("KILN_BUILDS_DIR", raising=False)


def _result():
    return BuildResult(
        build_id="a1b2c3d4e5f6",
        image_id="sha256:4f1c2d3e4f5a6b7c8d9e",
        tag="htmx-gallery:latest",
        duration_seconds=42.0,
        dependency_fingerprint="abc",
        dependency_reuse_expected=True,
        dependency_cache_hit=True,
        cached_steps=4,
        audit=AuditReport(image_id="sha256:4f1c2d3e4f5a6b7c8d9e", user="app"),
    )


class TestParser:
    """Tests for the argument parser."""

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_build_options(self):
        args = build_parser().parse_args(["build", "--tag", "htmx-gallery:v2"])
        assert args.command == "build"
        assert args.tag == "htmx-gallery:v2"


class TestStylesCommand:
    """kiln styles"""

    def test_writes_stylesheet(self, content_tree):
        assert main(["--root", str(content_tree), "styles"]) == 0
        assert ".font-poppins {" in (content_tree / "src" / "static" / "output.css").read_text()

    def test_bad_glob_halts(self, content_tree):
        (content_tree / "kiln.yaml").write_text("theme:\n  content: ['../outside/*.html']\n")
        assert main(["--root", str(content_tree), "styles"]) == 1


class TestTailwindConfigCommand:
    """kiln tailwind-config"""

    def test_writes_config(self, tmp_path):
        assert main(["--root", str(tmp_path), "tailwind-config"]) == 0
        assert "'yellow-header': '#ffcc03'" in (tmp_path / "tailwind.config.js").read_text()


class TestDockerfileCommand:
    """kiln dockerfile"""

    def test_prints_recipe(self, tmp_path, capsys):
        assert main(["--root", str(tmp_path), "dockerfile"]) == 0
        out = capsys.readouterr().out
        assert "FROM rust:latest AS builder" in out
        assert "FROM debian:bullseye-slim AS runtime" in out

    def test_writes_recipe(self, tmp_path):
        output = tmp_path / "Dockerfile"
        assert main(["--root", str(tmp_path), "dockerfile", "--output", str(output)]) == 0
        assert output.read_text().startswith("# syntax=docker/dockerfile:1")

    def test_policy_violation_halts(self, tmp_path):
        (tmp_path / "kiln.yaml").write_text("pipeline:\n  runtime_image: rust:slim\n")
        assert main(["--root", str(tmp_path), "dockerfile"]) == 1

    def test_invalid_config_halts(self, tmp_path):
        (tmp_path / "kiln.yaml").write_text("pipeline:\n  app_user: root\n")
        assert main(["--root", str(tmp_path), "dockerfile"]) == 1


class TestBuildCommand:
    """kiln build"""

    def test_build_uses_configured_tag(self, tmp_path):
        with patch("kiln.main.DockerProvider"), patch("kiln.main.Foundry") as foundry_cls:
            foundry_cls.return_value.build.return_value = _result()
            assert main(["--root", str(tmp_path), "build"]) == 0

        kwargs = foundry_cls.return_value.build.call_args.kwargs
        assert kwargs["tag"] == "htmx-gallery:latest"
        assert kwargs["context_dir"] == tmp_path
        assert foundry_cls.call_args.kwargs["builds_dir"] == tmp_path / "builds"

    def test_build_failure_halts(self, tmp_path):
        with patch("kiln.main.DockerProvider"), patch("kiln.main.Foundry") as foundry_cls:
            foundry_cls.return_value.build.side_effect = BuildFailedError(
                "Build failed at install with exit code 101",
                stage="install",
                exit_code=101,
                output="#12 ERROR: [builder 9/9] exit code: 101",
            )
            assert main(["--root", str(tmp_path), "build"]) == 1


class TestLaunchCommands:
    """kiln launch-config and kiln run"""

    def test_launch_config_requires_section(self, tmp_path):
        assert main(["--root", str(tmp_path), "launch-config"]) == 1

    def test_launch_config_written(self, tmp_path):
        (tmp_path / "kiln.yaml").write_text(LAUNCH_CONFIG)
        output = tmp_path / "fly.toml"

        assert main(["--root", str(tmp_path), "launch-config", "--output", str(output)]) == 0
        assert 'cmd = ["/app/htmx-gallery"]' in output.read_text()

    def test_run_starts_container(self, tmp_path):
        (tmp_path / "kiln.yaml").write_text(LAUNCH_CONFIG)

        with patch("kiln.main.DockerProvider"), patch("kiln.main.Launcher") as launcher_cls:
            assert main(["--root", str(tmp_path), "run", "--port", "3000"]) == 0

        spec = launcher_cls.return_value.run_local.call_args.args[0]
        assert spec.cmd == ["/app/htmx-gallery"]
        assert launcher_cls.return_value.run_local.call_args.kwargs["host_port"] == 3000
