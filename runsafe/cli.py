"""RunSafe CLI: Typer + Rich terminal interface.

Commands: apply, validate, doctor, history, chains.
The workspace is always the current directory; state lives under
``.runsafe/`` (or ``$RUNSAFE_DIR``).
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from runsafe import __version__
from runsafe.apply.engine import ApplyEngine
from runsafe.apply.workspace import Workspace
from runsafe.chains import run_chain
from runsafe.config import RunSafeConfig, load_config, state_dir
from runsafe.council.reviewers import build_reviewers
from runsafe.council.voting import ReviewCouncil
from runsafe.display import Reporter
from runsafe.errors import UnsupportedEditKind
from runsafe.safety.logs import StateLogs
from runsafe.safety.store import SafetyStateStore
from runsafe.schemas.result import ApplyOptions, CommandResult, ValidateOptions
from runsafe.validate import ValidationRunner

console = Console()

app = typer.Typer(
    name="runsafe",
    help="Apply machine-authored epics to your workspace, safely.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"runsafe {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Enable debug logging.",
    ),
) -> None:
    """RunSafe: guarded application of edit epics."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(root: Path) -> RunSafeConfig:
    """Load configuration, exit on error."""
    try:
        return load_config(root)
    except ValueError as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _components(root: Path, config: RunSafeConfig) -> tuple[SafetyStateStore, StateLogs, Workspace]:
    directory = state_dir(root)
    logs = StateLogs(directory)
    store = SafetyStateStore(directory, config.safety, logs=logs)
    workspace = Workspace(root, protected_dirs=config.apply.protected_dirs)
    return store, logs, workspace


def _exit_for(result: CommandResult, preview: bool = False) -> None:
    """Exit non-zero on terminal failures, except in preview mode and on cooldown."""
    if not result.success and not preview and not result.cooldown:
        raise typer.Exit(1)


# ── runsafe apply ────────────────────────────────────────────────


@app.command()
def apply(
    file: str = typer.Argument(..., help="Path to the epic document"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview edits without writing"),
    diff: bool = typer.Option(False, "--diff", help="Show a unified diff for each file"),
    atomic: bool = typer.Option(False, "--atomic", help="Roll back all writes if one fails"),
    summary: bool = typer.Option(False, "--summary", help="Only print a final summary"),
    silent: bool = typer.Option(False, "--silent", help="Only print errors"),
    json_output: bool = typer.Option(False, "--json", help="Print a JSON result document"),
) -> None:
    """Apply an epic's edits to files in the current directory."""
    root = Path.cwd()
    config = _load_config(root)
    store, logs, workspace = _components(root, config)
    reporter = Reporter.for_flags(
        console, json_output=json_output, summary=summary, silent=silent,
    )
    engine = ApplyEngine(store, logs, workspace, reporter, config.apply)
    options = ApplyOptions(
        dry_run=dry_run, diff=diff, atomic=atomic,
        summary=summary, silent=silent, json_output=json_output,
    )

    try:
        result = asyncio.run(engine.run(file, options))
    except UnsupportedEditKind:
        if dry_run:
            return
        raise typer.Exit(1) from None

    _exit_for(result, preview=dry_run)


# ── runsafe validate ─────────────────────────────────────────────


@app.command()
def validate(
    file: str = typer.Argument(..., help="Path to the JSON epic"),
    council: bool = typer.Option(False, "--council", help="Put the epic before the review council"),
    deterministic: bool = typer.Option(
        False, "--deterministic", help="Consult council reviewers in sorted order",
    ),
    summary: bool = typer.Option(False, "--summary", help="Only print a final summary"),
    silent: bool = typer.Option(False, "--silent", help="Only print errors"),
    json_output: bool = typer.Option(False, "--json", help="Print a JSON result document"),
) -> None:
    """Validate a JSON epic, optionally with the review council."""
    root = Path.cwd()
    config = _load_config(root)
    store, logs, workspace = _components(root, config)
    reporter = Reporter.for_flags(
        console, json_output=json_output, summary=summary, silent=silent,
    )
    review_council = ReviewCouncil(
        build_reviewers(config.council),
        deterministic=deterministic or config.council.deterministic,
    )
    runner = ValidationRunner(store, logs, workspace, reporter, review_council)
    options = ValidateOptions(
        council=council, deterministic=deterministic,
        summary=summary, silent=silent, json_output=json_output,
    )

    result = asyncio.run(runner.run(file, options))
    _exit_for(result)


# ── runsafe doctor ───────────────────────────────────────────────


@app.command()
def doctor(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of recent runs to show"),
) -> None:
    """Show recent runs and reset the safety cooldown."""
    root = Path.cwd()
    config = _load_config(root)
    store, logs, _ = _components(root, config)

    async def _diagnose():
        runs = await logs.recent_runs(limit)
        await store.reset()
        return runs

    try:
        runs = asyncio.run(_diagnose())
    except OSError as e:
        console.print(f"[red]Could not read runtime log:[/red] {e}")
        raise typer.Exit(1) from None

    if not runs:
        console.print("[dim]No recent runs found.[/dim]")
    else:
        table = Table(title=f"Recent runs ({len(runs)} shown)")
        table.add_column("Timestamp", style="dim")
        table.add_column("Command", style="cyan")
        table.add_column("Cooldown")
        table.add_column("Error")
        for r in runs:
            cooldown = Text("cooldown", style="cyan") if r.cooldown_reason else Text("ok", style="green")
            error = Text(f"{r.error_code or ''} {r.error}".strip(), style="red") if r.error else Text("")
            table.add_row(r.timestamp.split("T")[0], r.command_name, cooldown, error)
        console.print(table)

    console.print("[green]Safety state reset.[/green]")


# ── runsafe history ──────────────────────────────────────────────


@app.command()
def history(
    show_all: bool = typer.Option(False, "--all", help="Show every entry instead of the last 10"),
) -> None:
    """Show applied epics."""
    root = Path.cwd()
    logs = StateLogs(state_dir(root))
    entries = asyncio.run(logs.read_history())

    if not entries:
        console.print("[dim]No history found.[/dim]")
        return

    shown = entries if show_all else entries[-10:]
    start = len(entries) - len(shown)

    table = Table(title=f"History ({len(shown)} of {len(entries)})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Timestamp")
    table.add_column("File", style="cyan")
    table.add_column("Summary")
    table.add_column("Bytes", justify="right")
    table.add_column("Atomic")
    for i, entry in enumerate(shown, start + 1):
        timestamp = entry.timestamp.replace("T", " ").split(".")[0]
        table.add_row(
            str(i), timestamp, entry.file, entry.summary,
            f"{entry.bytes_changed:,}", "yes" if entry.atomic else "",
        )
    console.print(table)


# ── runsafe chains ───────────────────────────────────────────────


@app.command()
def chains() -> None:
    """Apply the epics listed in runsafe.chain.yml, in order."""
    root = Path.cwd()
    config = _load_config(root)
    store, logs, workspace = _components(root, config)
    reporter = Reporter(console)
    engine = ApplyEngine(store, logs, workspace, reporter, config.apply)

    if not asyncio.run(run_chain(engine, root, reporter)):
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
