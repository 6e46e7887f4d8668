"""
CLI entry point for vocabcore.
"""

# Standard library imports
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

# Third-party imports
import typer
from rich.console import Console
from rich.table import Table

# Local application imports
from vocabcore.cli._review_logic import review_logic
from vocabcore.cli.review_ui import describe_next_review
from vocabcore.config import settings
from vocabcore.db import VocabularyDatabase
from vocabcore.db.db_utils import backup_database
from vocabcore.exceptions import DatabaseError, ValidationError
from vocabcore.importer import WordListProcessingError, load_word_list
from vocabcore.models import AddReason, SchedulingStrategy, WordRecord
from vocabcore.proficiency_tracker import ProficiencyTracker
from vocabcore.queue_builder import build_due_queue, build_today_queue, priority_of


console = Console()

app = typer.Typer(
    name="vocabcore",
    help="Vocabcore: spaced-repetition scheduling for your wordbook.",
    add_completion=False,
    rich_markup_mode="markdown",
)


# ---------------------------------------------------------------------------
# Helpers for resolving the --db path (VOCABCORE_DB envvar, then settings)
# ---------------------------------------------------------------------------


def _resolve_db_path(db: Optional[Path]) -> Path:
    """Resolve db path from CLI flag or VOCABCORE_DB envvar, else settings.db_path."""
    if db is not None:
        return db
    return settings.db_path


# Common typer options reused across commands
_db_option = typer.Option(  # noqa: B008
    None,
    "--db",
    help="Path to the DuckDB database file. "
    "Falls back to VOCABCORE_DB env var, then VOCABCORE_DB_PATH settings.",
    envvar="VOCABCORE_DB",
)

_strategy_option = typer.Option(  # noqa: B008
    None,
    "--strategy",
    help="Scheduling strategy. Defaults to VOCABCORE_STRATEGY (basic).",
    case_sensitive=False,
)

_limit_option = typer.Option(  # noqa: B008
    None,
    "--limit",
    "-l",
    help="Maximum number of words to show.",
)


@app.callback()
def _configure(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
):
    """Vocabcore: spaced-repetition scheduling for your wordbook."""
    level = logging.DEBUG if verbose else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Init
# ---------------------------------------------------------------------------


@app.command()
def init(
    db: Optional[Path] = _db_option,
    force: bool = typer.Option(
        False,
        "--force",
        help="Drop and recreate the tables. Refused when they hold data.",
    ),
):
    """Create the vocabulary database schema."""
    db_path = _resolve_db_path(db)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            db_inst.initialize_schema(force_recreate_tables=force)
    except (DatabaseError, ValueError) as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    console.print(f"[green]Database ready at[/green] [cyan]{db_path}[/cyan]")


# ---------------------------------------------------------------------------
# Add / import
# ---------------------------------------------------------------------------


@app.command()
def add(
    text: str = typer.Argument(..., help="The word to add."),  # noqa: B008
    definition: str = typer.Argument(..., help="Its definition."),  # noqa: B008
    reason: AddReason = typer.Option(  # noqa: B008
        AddReason.TranslationLookup,
        "--reason",
        "-r",
        help="Why the word is being added.",
        case_sensitive=False,
    ),
    pronunciation: Optional[str] = typer.Option(
        None, "--pronunciation", "-p", help="Phonetic transcription."
    ),
    db: Optional[Path] = _db_option,
):
    """
    Add a word to the wordbook.

    Adding a word that already exists keeps its progress; its add reason is
    upgraded when the new reason is more severe.
    """
    db_path = _resolve_db_path(db)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            existing = db_inst.get_by_text(text)
            word = db_inst.add_word(
                text, definition, add_reason=reason, pronunciation=pronunciation
            )
    except (DatabaseError, ValueError) as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    if existing is None:
        console.print(f"[green]Added[/green] [bold]{word.text}[/bold] (id {word.id}).")
    else:
        console.print(
            f"[yellow]{word.text} is already in the wordbook[/yellow] "
            f"(reason: {word.add_reason.value}, level {word.proficiency_level})."
        )


@app.command("import-words")
def import_words(
    file: Path = typer.Argument(  # noqa: B008
        ..., help="YAML word list to import."
    ),
    db: Optional[Path] = _db_option,
):
    """Import every word of a YAML word list."""
    db_path = _resolve_db_path(db)
    try:
        entries = load_word_list(file)
    except WordListProcessingError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    added = 0
    existing = 0
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            for entry in entries:
                if db_inst.get_by_text(entry.text) is None:
                    added += 1
                else:
                    existing += 1
                db_inst.add_word(
                    entry.text,
                    entry.definition,
                    add_reason=entry.add_reason,
                    pronunciation=entry.pronunciation,
                )
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    console.print("[bold green]Import complete![/bold green]")
    console.print(f"- [green]{added}[/green] words were added.")
    console.print(f"- [yellow]{existing}[/yellow] words were already present.")


# ---------------------------------------------------------------------------
# Queues
# ---------------------------------------------------------------------------


def _display_queue(
    title: str,
    words: List[WordRecord],
    now: datetime,
    strategy: SchedulingStrategy,
) -> None:
    table = Table(title=title)
    table.add_column("Word", style="cyan")
    table.add_column("Level", style="magenta")
    table.add_column("Priority", style="yellow")
    table.add_column("Next Review")
    for word in words:
        table.add_row(
            word.text,
            str(word.proficiency_level),
            f"{priority_of(word, now, strategy):.2f}",
            describe_next_review(word, now),
        )
    console.print(table)


@app.command()
def due(
    db: Optional[Path] = _db_option,
    limit: Optional[int] = _limit_option,
    strategy: Optional[SchedulingStrategy] = _strategy_option,
):
    """Show the recommended-review queue, most urgent first."""
    db_path = _resolve_db_path(db)
    active_strategy = strategy or settings.strategy
    now = datetime.now(timezone.utc)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            queue = build_due_queue(
                db_inst.list_due(now), now, strategy=active_strategy, limit=limit
            )
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e

    if not queue:
        console.print("[yellow]No words are due for review.[/yellow]")
        return
    _display_queue("Due Words", queue, now, active_strategy)


@app.command()
def today(
    db: Optional[Path] = _db_option,
    limit: Optional[int] = _limit_option,
):
    """Show today's review queue, earliest first."""
    db_path = _resolve_db_path(db)
    now = datetime.now(timezone.utc)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            queue = build_today_queue(db_inst.get_all_words(), now, limit=limit)
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e

    if not queue:
        console.print("[yellow]Nothing left to review today.[/yellow]")
        return
    _display_queue("Today's Words", queue, now, settings.strategy)


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


@app.command()
def review(
    db: Optional[Path] = _db_option,
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-l",
        help="Maximum number of words in the session. Defaults to VOCABCORE_REVIEW_LIMIT.",
    ),
    today_queue: bool = typer.Option(
        False, "--today", help="Review today's queue instead of the due queue."
    ),
    strategy: Optional[SchedulingStrategy] = _strategy_option,
):
    """Starts an interactive review session."""
    db_path = _resolve_db_path(db)
    try:
        backup_path = backup_database(db_path)
        if backup_path.exists() and "backups" in str(backup_path):
            console.print(f"Database backed up to: [dim]{backup_path}[/dim]")

        review_logic(
            db_path=db_path,
            limit=limit or settings.review_limit,
            mode="today" if today_queue else "due",
            strategy=strategy,
        )
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e
    except Exception as e:
        console.print(f"[bold]An unexpected error occurred:[/bold] {e}")
        raise typer.Exit(code=1) from e


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


def _display_overall_stats(cons: Console, stats_data: dict):
    overall_table = Table(title="Wordbook Stats", show_header=False)
    overall_table.add_column("Metric", style="cyan")
    overall_table.add_column("Value", style="magenta")
    overall_table.add_row("Total Words", str(stats_data["total_words"]))
    overall_table.add_row("Mastered Words", str(stats_data["mastered_words"]))
    overall_table.add_row("Due Words", str(stats_data["due_words"]))
    overall_table.add_row("Total Activities", str(stats_data["total_activities"]))
    cons.print(overall_table)


def _display_breakdowns(cons: Console, stats_data: dict):
    """
    Render the per-reason and per-level word counts.

    Levels without words are omitted.
    """
    reasons_table = Table(title="Words by Reason")
    reasons_table.add_column("Reason", style="cyan")
    reasons_table.add_column("Count", style="magenta")
    for reason, count in stats_data["words_by_reason"].items():
        reasons_table.add_row(reason, str(count))
    cons.print(reasons_table)

    levels_table = Table(title="Words by Level")
    levels_table.add_column("Level", style="cyan")
    levels_table.add_column("Count", style="magenta")
    for level, count in sorted(stats_data["words_by_level"].items()):
        if count:
            levels_table.add_row(str(level), str(count))
    cons.print(levels_table)


@app.command()
def stats(
    db: Optional[Path] = _db_option,
):
    """Display statistics about the wordbook."""
    db_path = _resolve_db_path(db)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            stats_data = db_inst.get_word_stats()

            _display_overall_stats(console, stats_data)

            if not stats_data["total_words"]:
                console.print("[yellow]No words found in the database.[/yellow]")
                return

            _display_breakdowns(console, stats_data)

    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e


# ---------------------------------------------------------------------------
# Manual level control
# ---------------------------------------------------------------------------


@app.command("set-level")
def set_level(
    text: str = typer.Argument(..., help="The word to update."),  # noqa: B008
    level: int = typer.Argument(..., help="New proficiency level."),  # noqa: B008
    db: Optional[Path] = _db_option,
    strategy: Optional[SchedulingStrategy] = _strategy_option,
):
    """Manually set a word's proficiency level and reschedule it."""
    db_path = _resolve_db_path(db)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            word = db_inst.get_by_text(text)
            if word is None:
                console.print(f"[bold red]Error: '{text}' is not in the wordbook.[/bold red]")
                raise typer.Exit(code=1)
            tracker = ProficiencyTracker(db_inst, strategy=strategy)
            now = datetime.now(timezone.utc)
            updated = tracker.set_proficiency(word, level, now=now)
    except ValidationError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e

    console.print(
        f"[green]{updated.text}[/green] is now level {updated.proficiency_level}, "
        f"next review {describe_next_review(updated, now)}."
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application.

    If an unexpected exception occurs, print a bold red error message to the console and exit the process with status code 1.
    """
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
