"""
Typer CLI for study-tracker.

Commands:
    study-tracker status                          - Progress per subject and overall
    study-tracker show SUBJECT                    - Row x round grid for one subject
    study-tracker toggle SUBJECT ROW ROUND FIELD  - Flip an mcq/essay check
    study-tracker add-row SUBJECT NAME            - Append a row
    study-tracker import SUBJECT FILE             - Append rows from a .xlsx/.csv/.txt file
    study-tracker rename-row SUBJECT ROW NAME     - Rename a row
    study-tracker delete-row SUBJECT ROW          - Delete a row
    study-tracker add-subject LABEL --icon ICON   - Create a subject
    study-tracker edit-subject SUBJECT LABEL      - Change a subject's label/icon
    study-tracker delete-subject SUBJECT          - Delete a subject and its rows
    study-tracker seed                            - Add the starter subjects to an empty tracker

Rows are addressed by name or id; rounds are numbered from 1.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table

from config import Settings, get_settings
from study_tracker.importer import read_names
from study_tracker.remote.client import SupabaseStore
from study_tracker.tracker.defaults import DEFAULT_ICON
from study_tracker.tracker.engine import StudyTracker
from study_tracker.tracker.errors import ImportSourceError
from study_tracker.tracker.models import CHECK_FIELDS, RowData
from study_tracker.tracker.notifications import Notice
from study_tracker.tracker.progress import round_progress, subject_counts

T = TypeVar("T")

app = typer.Typer(
    help="study-tracker: revision progress across subjects, rows and rounds",
    no_args_is_help=True,
)

console = Console()

NOTICE_STYLES = {"error": "bold red", "warning": "yellow", "info": "cyan"}


# ========================================
# Plumbing
# ========================================


def configure_logging(settings: Settings) -> None:
    """Replace loguru's default sink with the configured ones."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="5 MB", retention=3)


def print_notice(notice: Notice) -> None:
    style = NOTICE_STYLES.get(notice.severity, "white")
    console.print(f"[{style}]{notice.message}[/{style}]")
    if notice.error is not None and notice.severity == "error":
        console.print(f"  [dim]{notice.error}[/dim]")


def _run(action: Callable[[StudyTracker], Awaitable[T]]) -> T:
    """Load the tracker, run one action against it and close the connection."""
    settings = get_settings()

    async def runner() -> T:
        async with SupabaseStore.from_settings(settings) as store:
            tracker = StudyTracker(store, notifier=print_notice, total_rounds=settings.total_rounds)
            if not await tracker.load():
                raise typer.Exit(code=1)
            return await action(tracker)

    return asyncio.run(runner())


def _require_subject(tracker: StudyTracker, subject: str) -> str:
    if tracker.get_subject(subject) is None:
        console.print(f"[red]Error: no subject '{subject}'[/red]")
        raise typer.Exit(code=1)
    return subject


def _resolve_row(tracker: StudyTracker, subject: str, ref: str) -> RowData:
    """Find a row by id, falling back to the first row with that name."""
    row = tracker.find_row(subject, ref)
    if row is not None:
        return row
    for candidate in tracker.data[subject].rows:
        if candidate.name == ref:
            return candidate
    console.print(f"[red]Error: no row '{ref}' in {subject}[/red]")
    raise typer.Exit(code=1)


def _check_mark(flag: bool, letter: str) -> str:
    return f"[green]{letter}[/green]" if flag else "[dim]·[/dim]"


def _fail_unless(ok: object) -> None:
    if not ok:
        raise typer.Exit(code=1)


# ========================================
# Read Commands
# ========================================


@app.command("status")
def status() -> None:
    """Show progress for every subject and the overall total."""

    async def action(tracker: StudyTracker) -> None:
        if not tracker.subjects:
            console.print("[yellow]No subjects yet. Run 'study-tracker seed' or 'add-subject'.[/yellow]")
            return

        table = Table(title="Revision Progress", box=box.ROUNDED, show_header=True)
        table.add_column("Subject", style="cyan")
        table.add_column("Key", style="dim")
        table.add_column("Rows", justify="right")
        table.add_column("Checks", justify="right")
        table.add_column("Progress", justify="right", style="green")

        for subject in tracker.subjects:
            data = tracker.data[subject.key]
            done, total = subject_counts(data, tracker.total_rounds)
            table.add_row(
                f"{subject.icon} {subject.label}".strip(),
                subject.key,
                str(len(data.rows)),
                f"{done}/{total}",
                f"{tracker.subject_progress(subject.key)}%",
            )

        console.print(table)
        console.print(f"\n[bold]Overall:[/bold] {tracker.total_progress()}%")

    _run(action)


@app.command("show")
def show(subject: str = typer.Argument(..., help="Subject key")) -> None:
    """Show the row x round grid of one subject (M = MCQ, E = essay)."""

    async def action(tracker: StudyTracker) -> None:
        key = _require_subject(tracker, subject)
        info = tracker.get_subject(key)
        data = tracker.data[key]

        table = Table(
            title=f"{info.icon} {info.label} - {tracker.subject_progress(key)}%".strip(),
            box=box.SIMPLE_HEAVY,
        )
        table.add_column("Row", style="cyan")
        for i in range(tracker.total_rounds):
            table.add_column(f"R{i + 1}", justify="center")
        table.add_column("Id", style="dim")

        for row in data.rows:
            cells = [
                f"{_check_mark(r.mcq, 'M')} {_check_mark(r.essay, 'E')}"
                for r in row.rounds[: tracker.total_rounds]
            ]
            table.add_row(row.name, *cells, row.id)

        if data.rows:
            table.add_row(
                "[bold]Round %[/bold]",
                *[f"{round_progress(data, i)}%" for i in range(tracker.total_rounds)],
                "",
            )
        console.print(table)

    _run(action)


# ========================================
# Row Commands
# ========================================


@app.command("toggle")
def toggle(
    subject: str = typer.Argument(..., help="Subject key"),
    row: str = typer.Argument(..., help="Row name or id"),
    round_number: int = typer.Argument(..., help="Round number, starting at 1"),
    field: str = typer.Argument(..., help="mcq or essay"),
) -> None:
    """Flip one MCQ/essay check."""
    if field not in CHECK_FIELDS:
        console.print(f"[red]Error: field must be one of {', '.join(CHECK_FIELDS)}[/red]")
        raise typer.Exit(code=1)

    async def action(tracker: StudyTracker) -> bool:
        key = _require_subject(tracker, subject)
        target = _resolve_row(tracker, key, row)
        if not 1 <= round_number <= tracker.total_rounds:
            console.print(f"[red]Error: round must be between 1 and {tracker.total_rounds}[/red]")
            return False
        saved = await tracker.toggle_check(key, target.id, round_number - 1, field)
        current = tracker.find_row(key, target.id)
        if current is not None:
            state = getattr(current.rounds[round_number - 1], field)
            console.print(
                f"{target.name} R{round_number} {field}: "
                f"{'[green]done[/green]' if state else '[dim]not done[/dim]'}"
                f"  ({tracker.subject_progress(key)}%)"
            )
        return saved

    _fail_unless(_run(action))


@app.command("add-row")
def add_row(
    subject: str = typer.Argument(..., help="Subject key"),
    name: str = typer.Argument(..., help="Row name, e.g. an exam year"),
) -> None:
    """Append a row with no checks."""

    async def action(tracker: StudyTracker) -> str | None:
        key = _require_subject(tracker, subject)
        row_id = await tracker.add_row(key, name)
        if row_id:
            console.print(f"[green]+[/green] {name.strip()} added to {key}")
        return row_id

    _fail_unless(_run(action))


@app.command("import")
def import_rows(
    subject: str = typer.Argument(..., help="Subject key"),
    source: Path = typer.Argument(..., help="Spreadsheet with names in the first column"),
) -> None:
    """Append one row per name in the first column of a .xlsx/.csv/.txt file."""
    try:
        names = read_names(source)
    except ImportSourceError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    async def action(tracker: StudyTracker) -> list[str]:
        key = _require_subject(tracker, subject)
        ids = await tracker.add_rows(key, names)
        if ids:
            console.print(f"[green]+[/green] {len(ids)} rows added to {key}")
        return ids

    _fail_unless(_run(action))


@app.command("rename-row")
def rename_row(
    subject: str = typer.Argument(..., help="Subject key"),
    row: str = typer.Argument(..., help="Row name or id"),
    name: str = typer.Argument(..., help="New name"),
) -> None:
    """Rename a row."""

    async def action(tracker: StudyTracker) -> bool:
        key = _require_subject(tracker, subject)
        target = _resolve_row(tracker, key, row)
        return await tracker.rename_row(key, target.id, name)

    _fail_unless(_run(action))


@app.command("delete-row")
def delete_row(
    subject: str = typer.Argument(..., help="Subject key"),
    row: str = typer.Argument(..., help="Row name or id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a row and its checks."""
    if not yes:
        typer.confirm(f"Delete row '{row}' from {subject}?", abort=True)

    async def action(tracker: StudyTracker) -> bool:
        key = _require_subject(tracker, subject)
        target = _resolve_row(tracker, key, row)
        return await tracker.delete_row(key, target.id)

    _fail_unless(_run(action))


# ========================================
# Subject Commands
# ========================================


@app.command("add-subject")
def add_subject(
    label: str = typer.Argument(..., help="Display name"),
    icon: str = typer.Option(DEFAULT_ICON, "--icon", "-i", help="Display glyph"),
) -> None:
    """Create an empty subject."""

    async def action(tracker: StudyTracker) -> str:
        key = await tracker.add_subject(label, icon)
        if key:
            console.print(f"[green]+[/green] {icon} {label.strip()} (key: {key})")
        return key

    _fail_unless(_run(action))


@app.command("edit-subject")
def edit_subject(
    subject: str = typer.Argument(..., help="Subject key"),
    label: str = typer.Argument(..., help="New display name"),
    icon: str = typer.Option(None, "--icon", "-i", help="New display glyph"),
) -> None:
    """Change a subject's label and icon. Its key stays the same."""

    async def action(tracker: StudyTracker) -> bool:
        key = _require_subject(tracker, subject)
        current = tracker.get_subject(key)
        return await tracker.edit_subject(key, label, icon if icon is not None else current.icon)

    _fail_unless(_run(action))


@app.command("delete-subject")
def delete_subject(
    subject: str = typer.Argument(..., help="Subject key"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a subject together with all of its rows."""
    if not yes:
        typer.confirm(f"Delete subject '{subject}' and all of its rows?", abort=True)

    async def action(tracker: StudyTracker) -> bool:
        key = _require_subject(tracker, subject)
        return await tracker.delete_subject(key)

    _fail_unless(_run(action))


@app.command("seed")
def seed() -> None:
    """Add Chemistry, Physics and Combined Maths with rows 2015-2019."""

    async def action(tracker: StudyTracker) -> list[str]:
        keys = await tracker.seed_defaults()
        for key in keys:
            console.print(f"[green]+[/green] {key}")
        return keys

    _fail_unless(_run(action))


# ========================================
# Entry Point
# ========================================


def main() -> None:
    """CLI entry point."""
    configure_logging(get_settings())
    app()


if __name__ == "__main__":
    main()
