"""QuestLedger CLI - typer application entry point."""

from __future__ import annotations

import atexit
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from questledger.codec import snbt, text
from questledger.config import load_config
from questledger.errors import LedgerError
from questledger.export import ExportCoordinator, ExportSession
from questledger.models.achievements import records_from_document
from questledger.observability import close_file_logging, configure_logging, get_logger
from questledger.storage.files import read_text

if TYPE_CHECKING:
    from questledger.config import ExportConfig
    from questledger.models.achievements import AchievementRecord

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="ql",
    help="QuestLedger: achievement and quest progress export.",
    no_args_is_help=True,
)
console = Console()

log = get_logger(__name__)

# Global state set by the callback
_verbose: int = 0
_log_enabled: bool = False
_config_path: Path | None = None
_data_dir: Path | None = None


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_to_file: Annotated[
        bool,
        typer.Option(
            "--log",
            help="Enable file logging to {data_dir}/logs/debug.jsonl.",
        ),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Configuration file (default: ./questledger.yaml if present).",
        ),
    ] = None,
    data_dir: Annotated[
        Path | None,
        typer.Option(
            "--data-dir",
            "-d",
            help="Export data directory (overrides the configuration file).",
        ),
    ] = None,
) -> None:
    """QuestLedger: achievement and quest progress export."""
    global _verbose, _log_enabled, _config_path, _data_dir
    _verbose = verbose
    _log_enabled = log_to_file
    _config_path = config
    _data_dir = data_dir

    # Console logging only; file logging needs the data directory
    configure_logging(verbosity=verbose)


def _load_export_config() -> ExportConfig:
    """Load configuration, apply --data-dir, and enable file logging if requested."""
    try:
        config = load_config(_config_path)
    except LedgerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    if _data_dir is not None:
        config = replace(config, data_dir=_data_dir)

    if _log_enabled:
        configure_logging(verbosity=_verbose, log_to_file=True, data_dir=config.data_dir)
        atexit.register(close_file_logging)
    return config


def _read_achievements(source: Path) -> list[AchievementRecord]:
    """Read achievement records from a JSON file, exiting on failure."""
    try:
        document = text.parse(read_text(source))
        return records_from_document(document)
    except (LedgerError, ValueError) as e:
        console.print(f"[red]Error:[/red] Cannot read achievements from {source}: {e}")
        raise typer.Exit(1) from None


def _print_problems(warnings: list[str], errors: list[str]) -> None:
    for warning in warnings:
        console.print(f"  [yellow]![/yellow] {warning}")
    for error in errors:
        console.print(f"  [red]✗[/red] {error}")


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from questledger import __version__

    console.print(f"QuestLedger v{__version__}")


@app.command()
def status() -> None:
    """Show the state of both master catalogs."""
    config = _load_export_config()
    session = ExportSession.open(config)

    table = Table(title=f"Catalogs in {config.data_dir}")
    table.add_column("Kind", style="cyan")
    table.add_column("State")
    table.add_column("Entries", justify="right")
    table.add_column("Reason", style="dim")
    for catalog in (session.achievements, session.quests):
        table.add_row(
            catalog.kind.value,
            catalog.state.value,
            str(len(catalog)),
            catalog.reason or "",
        )
    console.print(table)


@app.command("sync-achievements")
def sync_achievements(
    source: Annotated[Path, typer.Argument(help="JSON file with achievement records.")],
) -> None:
    """Synchronize achievements from a JSON file into the achievement catalog."""
    config = _load_export_config()
    records = _read_achievements(source)

    with ExportSession.open(config) as session:
        result = ExportCoordinator(session).synchronize_achievements(records)

    _print_problems([], result.errors)
    if result.errors:
        raise typer.Exit(1)
    console.print(
        f"[green]✓[/green] Synchronized {result.processed} achievements "
        f"({result.skipped} skipped)"
    )


@app.command("regenerate-quests")
def regenerate_quests(
    quests_dir: Annotated[
        Path | None,
        typer.Option("--quests-dir", "-q", help="FTB Quests 'quests' directory."),
    ] = None,
) -> None:
    """Rebuild the quest definition artifact and quest catalog from SNBT files."""
    config = _load_export_config()

    with ExportSession.open(config) as session:
        result = ExportCoordinator(session).regenerate_quests(quests_dir)

    _print_problems(result.warnings, result.errors)
    if result.errors:
        raise typer.Exit(1)
    console.print(
        f"[green]✓[/green] Regenerated {result.quest_count} quests "
        f"in {result.chapter_count} chapters"
    )
    if result.source is not None:
        console.print(f"  Source: {result.source}")


@app.command()
def resync(
    source: Annotated[Path, typer.Argument(help="JSON file with achievement records.")],
    quests_dir: Annotated[
        Path | None,
        typer.Option("--quests-dir", "-q", help="FTB Quests 'quests' directory."),
    ] = None,
    rebuild: Annotated[
        bool,
        typer.Option("--rebuild", help="Discard both catalogs before synchronizing."),
    ] = False,
) -> None:
    """Run a full resynchronization of achievements and quests."""
    config = _load_export_config()
    records = _read_achievements(source)

    with ExportSession.open(config) as session:
        report = ExportCoordinator(session).resynchronize(records, quests_dir, rebuild=rebuild)

    _print_problems(report.warnings, report.errors)
    marker = "[green]✓[/green]" if report.ok else "[red]✗[/red]"
    console.print(
        f"{marker} Resync: {report.achievements} achievements, "
        f"{report.quests} quests, {report.chapters} chapters"
    )
    if not report.ok:
        raise typer.Exit(1)


@app.command("import-definitions")
def import_definitions(
    path: Annotated[
        Path | None,
        typer.Argument(help="Definition artifact (default: the one in the data directory)."),
    ] = None,
) -> None:
    """Load quests from a definition artifact into the quest catalog."""
    config = _load_export_config()

    with ExportSession.open(config) as session:
        result = ExportCoordinator(session).import_quest_definitions(path)

    _print_problems(result.warnings, result.errors)
    if result.errors:
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Imported {result.quest_count} quests from {result.source}")


@app.command("inspect-snbt")
def inspect_snbt(
    file: Annotated[Path, typer.Argument(help="SNBT file to parse.")],
) -> None:
    """Parse an SNBT file and print it as JSON."""
    try:
        value = snbt.parse(read_text(file))
    except LedgerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    log.debug("snbt_inspected", path=str(file))
    console.print(text.stringify(value), markup=False, highlight=False, soft_wrap=True)


if __name__ == "__main__":
    app()
