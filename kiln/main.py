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
# KILN - COMMAND LINE INTERFACE
# -----------------------------------------------------------------------------
# Commands:
# - styles:          Scan content and write the utility stylesheet
# - tailwind-config: Export the theme as tailwind.config.js
# - dockerfile:      Compose, gate and print the two-stage recipe
# - build:           Build, audit and tag the runtime image
# - launch-config:   Render the launch descriptor as fly.toml
# - run:             Start the built image locally with the launch command
# -----------------------------------------------------------------------------

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from kiln.config import ConfigError, KilnConfig, config_path, load_config
from kiln.core.auditor import ImageAuditError
from kiln.core.composer import compose_recipe, render_dockerfile
from kiln.core.foundry import BuildFailedError, Foundry
from kiln.core.launcher import LaunchError, Launcher, render_fly_toml
from kiln.core.policy import RecipeGate, RecipeViolation
from kiln.core.scanner import StyleBuildError
from kiln.core.stylesheet import StyleBuilder
from kiln.core.tailwind import write_tailwind_config
from kiln.domain.launch import LaunchSpec
from kiln.infra.docker_client import DockerProvider, DockerProviderError

console = Console()

HANDLED_ERRORS = (
    ConfigError,
    StyleBuildError,
    RecipeViolation,
    BuildFailedError,
    ImageAuditError,
    DockerProviderError,
    LaunchError,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kiln", description="Style and container build tooling for the gallery"
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to kiln.yaml")
    parser.add_argument("--root", type=Path, default=Path("."), help="Project root")
    sub = parser.add_subparsers(dest="command", required=True)

    styles = sub.add_parser("styles", help="Generate the utility stylesheet")
    styles.add_argument("--output", type=Path, default=None)

    tailwind = sub.add_parser("tailwind-config", help="Write tailwind.config.js")
    tailwind.add_argument("--output", type=Path, default=None)

    dockerfile = sub.add_parser("dockerfile", help="Print the build recipe")
    dockerfile.add_argument("--output", type=Path, default=None)

    build = sub.add_parser("build", help="Build, audit and tag the runtime image")
    build.add_argument("--context", type=Path, default=None)
    build.add_argument("--tag", default=None)

    launch = sub.add_parser("launch-config", help="Write the launch descriptor")
    launch.add_argument("--output", type=Path, default=None)

    run = sub.add_parser("run", help="Start the image with the launch command")
    run.add_argument("--port", type=int, default=None)

    return parser


def _emit(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    console.print(f"[green][KILN] Wrote {output}[/green]")


def cmd_styles(config: KilnConfig, args: argparse.Namespace) -> int:
    output = args.output or Path(config.style.output)
    input_css = Path(config.style.input_css) if config.style.input_css else None
    builder = StyleBuilder(config.theme, root=args.root, output=output, input_css=input_css)
    builder.build()
    return 0


def cmd_tailwind_config(config: KilnConfig, args: argparse.Namespace) -> int:
    output = args.output or args.root / config.style.tailwind_config
    write_tailwind_config(config.theme, output)
    return 0


def cmd_dockerfile(config: KilnConfig, args: argparse.Namespace) -> int:
    recipe = compose_recipe(config.pipeline)
    RecipeGate(policy=config.policy).validate(recipe)
    _emit(render_dockerfile(recipe), args.output)
    return 0


def cmd_build(config: KilnConfig, args: argparse.Namespace) -> int:
    foundry = Foundry(
        DockerProvider(),
        gate=RecipeGate(policy=config.policy),
        builds_dir=config.resolved_builds_dir(args.root),
    )
    result = foundry.build(
        config.pipeline,
        context_dir=args.context or args.root,
        tag=args.tag or config.image_tag,
    )
    hit = {True: "hit", False: "miss", None: "unknown"}[result.dependency_cache_hit]
    console.print(
        Panel(
            f"[bold green]BUILD COMPLETE[/bold green]\n\n"
            f"Image:   {result.tag} ({result.image_id[:19]})\n"
            f"Time:    {result.duration_seconds:.1f}s\n"
            f"Cached:  {result.cached_steps} step(s), dependency layer {hit}\n"
            f"Evidence: {result.build_id}",
            title="Foundry",
            border_style="green",
        )
    )
    return 0


def _launch_spec(config: KilnConfig) -> LaunchSpec:
    if config.launch is None:
        raise ConfigError("No 'launch' section in the configuration")
    return config.launch


def cmd_launch_config(config: KilnConfig, args: argparse.Namespace) -> int:
    _emit(render_fly_toml(_launch_spec(config)), args.output)
    return 0


def cmd_run(config: KilnConfig, args: argparse.Namespace) -> int:
    spec = _launch_spec(config)
    Launcher(DockerProvider().get_client()).run_local(spec, host_port=args.port)
    return 0


COMMANDS = {
    "styles": cmd_styles,
    "tailwind-config": cmd_tailwind_config,
    "dockerfile": cmd_dockerfile,
    "build": cmd_build,
    "launch-config": cmd_launch_config,
    "run": cmd_run,
}


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config or args.root / config_path())
        return COMMANDS[args.command](config, args)
    except HANDLED_ERRORS as e:
        details = ""
        if isinstance(e, RecipeViolation):
            details = f"\nRule: {e.rule}\n{e.details}"
        elif isinstance(e, BuildFailedError):
            details = f"\nStage: {e.stage}\nExit code: {e.exit_code}\n\n{e.output}"
        elif isinstance(e, ImageAuditError):
            details = "\n" + "\n".join(f"- {v}" for v in e.violations)
        console.print(
            Panel(
                f"[bold red]{escape(str(e))}[/bold red]{escape(details)}",
                title="KILN HALT",
                border_style="red",
            )
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
