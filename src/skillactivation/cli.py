"""Command-line interface for skillactivation."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from skillactivation import __version__
from skillactivation.activation.signal import read_manifest_tokens
from skillactivation.config import Config, load_config
from skillactivation.config.schema import LoggingConfig
from skillactivation.engine import ActivationEngine
from skillactivation.errors import ReloadError
from skillactivation.logging import setup_logging
from skillactivation.models import ActivationRequest

console = Console()
err_console = Console(stderr=True)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="skillactivation",
        description="Select and compose skills for the files and prompt at hand",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Extra config file layered over system/user/project config",
    )
    parser.add_argument(
        "--project",
        type=Path,
        default=Path("."),
        help="Project root for .sa/config.yaml and relative skill paths",
    )
    parser.add_argument(
        "--skills",
        action="append",
        default=None,
        help="Skill directory or descriptor file (repeatable, overrides config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("list", help="List registered skills")
    subparsers.add_parser("validate", help="Load skills and report descriptor issues")

    for name, help_text in (
        ("activate", "Compose the context document for a workspace state"),
        ("explain", "Show every skill's score for a workspace state"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "-f", "--file",
            dest="files",
            action="append",
            default=[],
            help="Active file, most recent first (repeatable)",
        )
        sub.add_argument(
            "-m", "--manifest",
            dest="manifests",
            action="append",
            default=[],
            type=Path,
            help="Manifest to read dependencies from (package.json, pyproject.toml, ...)",
        )
        sub.add_argument("-p", "--prompt", default="", help="Prompt text")
        sub.add_argument(
            "--ref", dest="refs", action="append", default=[], help="Explicit skill reference"
        )
        sub.add_argument(
            "--exclude",
            dest="exclusions",
            action="append",
            default=[],
            help="Skill to exclude",
        )
        if name == "activate":
            sub.add_argument("--budget", type=int, help="Override the composer budget")
            sub.add_argument(
                "--json", action="store_true", help="Print the full response as JSON"
            )

    return parser


def _load(parsed: argparse.Namespace) -> tuple[Config, ActivationEngine]:
    config = load_config(project_root=parsed.project, config_file=parsed.config)
    if parsed.verbose is not None:
        config.logging = LoggingConfig(
            level=config.logging.level, verbose=parsed.verbose, file=config.logging.file
        )
    setup_logging(config.logging)
    if parsed.skills is not None:
        config.skills.paths = list(parsed.skills)
    engine = ActivationEngine.from_config(config, base_dir=parsed.project)
    return config, engine


def _request(parsed: argparse.Namespace) -> ActivationRequest:
    return ActivationRequest(
        active_files=parsed.files,
        manifest_tokens=sorted(read_manifest_tokens(parsed.manifests)),
        prompt_text=parsed.prompt,
        explicit_skill_refs=parsed.refs,
        explicit_exclusions=parsed.exclusions,
        budget=getattr(parsed, "budget", None),
    )


def _cmd_list(engine: ActivationEngine) -> int:
    table = Table(title=f"Skills (registry v{engine.registry.version})")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Patterns")
    table.add_column("Keywords")
    table.add_column("Size", justify="right")

    for skill in engine.registry.all():
        table.add_row(
            skill.id,
            skill.display_name,
            skill.category.value,
            escape(", ".join(p.pattern for p in skill.file_patterns)) or "-",
            ", ".join(sorted(skill.keywords)) or "-",
            str(skill.estimated_size),
        )
    console.print(table)
    return 0


def _cmd_validate(engine: ActivationEngine) -> int:
    registry = engine.registry
    for issue in registry.issues:
        console.print(f"[red]{type(issue).__name__}[/red]: {escape(str(issue))}")
    console.print(f"{len(registry)} skills loaded, {len(registry.issues)} issues")
    return 1 if registry.issues else 0


def _cmd_activate(engine: ActivationEngine, parsed: argparse.Namespace) -> int:
    response = engine.activate(_request(parsed))
    if parsed.json:
        console.print(
            response.model_dump_json(by_alias=True, indent=2),
            markup=False,
            emoji=False,
            highlight=False,
            soft_wrap=True,
        )
        return 0

    if not response.skill_ids:
        err_console.print("No skills activated")
        return 0
    err_console.print(
        f"Activated: {', '.join(response.skill_ids)}"
        + (" [yellow](truncated)[/yellow]" if response.truncated else "")
    )
    if response.omitted_skill_ids:
        err_console.print(f"Omitted (budget): {', '.join(response.omitted_skill_ids)}")
    console.print(
        response.document,
        markup=False,
        emoji=False,
        highlight=False,
        soft_wrap=True,
        end="",
    )
    return 0


def _cmd_explain(engine: ActivationEngine, parsed: argparse.Namespace) -> int:
    table = Table(title="Skill scores")
    table.add_column("ID", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Reasons")

    for report in engine.explain(_request(parsed)):
        score = "explicit" if report.explicit else f"{report.score:.2f}"
        table.add_row(report.skill_id, score, "\n".join(report.reasons) or "-")
    console.print(table)
    return 0


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 1

    try:
        _, engine = _load(parsed)
    except ReloadError as e:
        err_console.print(f"[red]Cannot load skills:[/red] {escape(str(e))}")
        return 2

    if parsed.command == "list":
        return _cmd_list(engine)
    elif parsed.command == "validate":
        return _cmd_validate(engine)
    elif parsed.command == "activate":
        return _cmd_activate(engine, parsed)
    elif parsed.command == "explain":
        return _cmd_explain(engine, parsed)
    else:
        parser.print_help()
        return 1
