"""Typer-based CLI for generating Cargo manifests from a build graph."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__, config, config_manager
from .errors import CargoGenError
from .generator import ManifestGenerator, generate_manifests, write_workspace_manifest
from .graph import WalkReport
from .loader import load_graph
from .models import Label
from .paths import relativize

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="📦 cargogen: Cargo.toml manifests for every crate in a build graph.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"cargogen v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """cargogen: make targets of a build graph usable with vanilla Cargo tooling."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_settings() -> Dict[str, object]:
    try:
        return config_manager.load_generator_config()
    except CargoGenError as exc:
        err_console.print(f"[red]❌ {escape(str(exc))}[/red]")
        raise typer.Exit(code=2)


def _parse_targets(targets: Optional[List[str]]) -> Optional[List[Label]]:
    if not targets:
        return None
    try:
        return [Label.parse(t) for t in targets]
    except CargoGenError as exc:
        raise typer.BadParameter(str(exc))


def _run(
    graph_file: Path,
    output_dir: Optional[Path],
    targets: Optional[List[str]],
    jobs: Optional[int],
    keep_going: bool,
) -> tuple[ManifestGenerator, WalkReport]:
    settings = _load_settings()
    generator = ManifestGenerator(
        output_dir or Path(str(settings["output_dir"])),
        generator_name=str(settings["generator_name"]),
        default_version=str(settings["default_version"]),
        default_edition=str(settings["default_edition"]),
    )
    labels = _parse_targets(targets)
    try:
        graph = load_graph(graph_file)
        report = generate_manifests(
            graph,
            generator,
            targets=labels,
            jobs=jobs or int(settings["jobs"]),  # type: ignore[arg-type]
            keep_going=keep_going,
        )
    except CargoGenError as exc:
        err_console.print(f"[red]❌ {escape(str(exc))}[/red]")
        raise typer.Exit(code=1)
    return generator, report


def _print_failures(report: WalkReport) -> None:
    for label, exc in sorted(report.failures.items(), key=lambda item: str(item[0])):
        err_console.print(f"[red]❌ {escape(str(label))}: {escape(str(exc))}[/red]")
    for label in report.blocked:
        err_console.print(f"[yellow]⏭  {label}: skipped, a dependency failed[/yellow]")


@app.command("generate")
def generate(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="TOML graph description."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Root directory for manifests."),
    target: Optional[List[str]] = typer.Option(None, "--target", "-t", help="Only these targets and their deps."),
    jobs: Optional[int] = typer.Option(None, "--jobs", "-j", min=1, help="Parallel node generations."),
    keep_going: bool = typer.Option(False, "--keep-going", "-k", help="Continue past failed targets."),
    workspace: bool = typer.Option(True, "--workspace/--no-workspace", help="Also write a workspace Cargo.toml."),
):
    """Generate a Cargo.toml for every library and binary target."""
    generator, report = _run(graph_file, output_dir, target, jobs, keep_going)

    manifests = report.manifests
    table = Table(title="Generated manifests")
    table.add_column("Target", style="cyan")
    table.add_column("Manifest")
    table.add_column("Files", justify="right")
    for label in sorted(manifests, key=str):
        result = manifests[label]
        table.add_row(str(label), relativize(result.manifest, generator.output_root), str(len(result.files)))
    console.print(table)

    skipped = sum(1 for result in report.results.values() if result is None)
    console.print(f"Manifests: {len(manifests)} | Skipped (not a crate): {skipped}")

    if workspace and manifests:
        path = write_workspace_manifest(
            manifests.values(),
            generator.output_root / config.WORKSPACE_MANIFEST,
            generator_name=generator.generator_name,
        )
        console.print(f"Workspace: {path}")

    if not report.ok:
        _print_failures(report)
        raise typer.Exit(code=1)


@app.command("files")
def files(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="TOML graph description."),
    target: List[str] = typer.Option(..., "--target", "-t", help="Targets whose files to list."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Root directory for manifests."),
):
    """Generate, then list every file published by the given targets."""
    _, report = _run(graph_file, output_dir, target, None, False)
    collected = set()
    for label in _parse_targets(target) or []:
        result = report.results.get(label)
        if result is None:
            err_console.print(f"[yellow]{label} is not a crate; nothing to list[/yellow]")
            continue
        collected |= result.files
    for path in sorted(collected):
        typer.echo(str(path))


@app.command("relativize")
def relativize_cmd(
    path: str = typer.Argument(..., help="Target path."),
    start: str = typer.Argument(..., help="Directory the result is relative to."),
):
    """Print PATH relative to directory START."""
    try:
        typer.echo(relativize(path, start))
    except CargoGenError as exc:
        err_console.print(f"[red]❌ {escape(str(exc))}[/red]")
        raise typer.Exit(code=1)


@app.command("show-config")
def show_config():
    """Show the effective generator configuration."""
    settings = _load_settings()
    table = Table(title=f"Configuration ({config.CONFIG_FILE})")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in settings.items():
        table.add_row(key, str(value))
    console.print(table)


@app.command("set-config")
def set_config(
    key: str = typer.Argument(..., help="Setting name, e.g. default_edition."),
    value: str = typer.Argument(..., help="New value."),
):
    """Persist one generator setting to the config file."""
    if key not in config_manager.DEFAULT_GENERATOR_CONFIG:
        raise typer.BadParameter(
            f"Unknown setting '{key}'. Choose from: {', '.join(config_manager.DEFAULT_GENERATOR_CONFIG)}"
        )
    parsed: object = value
    if key == "jobs":
        if not value.isdigit() or int(value) < 1:
            raise typer.BadParameter("jobs must be a positive integer")
        parsed = int(value)
    try:
        config_manager.save_generator_config(**{key: parsed})
    except CargoGenError as exc:
        err_console.print(f"[red]❌ {escape(str(exc))}[/red]")
        raise typer.Exit(code=2)
    typer.echo(f"Set {key} = {parsed}")


if __name__ == "__main__":
    app()
