"""
Command-line interface for reviewing vocabulary words.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from vocabcore.constants import SECONDS_PER_DAY
from vocabcore.models import ReviewOutcome, WordRecord
from vocabcore.review_manager import ReviewSessionManager
from vocabcore.scheduler import describe_interval

logger = logging.getLogger(__name__)
console = Console()

OUTCOME_KEYS = {
    "u": ReviewOutcome.Unknown,
    "f": ReviewOutcome.Familiar,
    "k": ReviewOutcome.Known,
}
QUIT_KEY = "q"


def _get_user_outcome() -> Optional[ReviewOutcome]:
    """
    Prompt until the user enters u, f or k. Returns None when they enter q.
    """
    while True:
        answer = console.input(
            "[bold]Outcome (u:Unknown, f:Familiar, k:Known, q:Quit): [/bold]"
        )
        key = answer.strip().lower()
        if key == QUIT_KEY:
            return None
        if key in OUTCOME_KEYS:
            return OUTCOME_KEYS[key]
        console.print(
            "[bold red]Invalid input. Please enter u, f, k or q.[/bold red]"
        )


def _display_word(word: WordRecord) -> None:
    """
    Show a word, wait for the user to press Enter, then reveal its definition.
    """
    title = f"{word.text} [dim]{word.pronunciation}[/dim]" if word.pronunciation else word.text
    console.print(Panel(title, title="Word", border_style="green"))
    console.input("[italic]Press Enter to see the definition...[/italic]")
    console.print(Panel(word.definition, title="Definition", border_style="blue"))


def describe_next_review(word: WordRecord, now: datetime) -> str:
    """Human-readable time until the word's next review."""
    if word.next_review_at is None:
        return "review now"
    seconds = (word.next_review_at - now).total_seconds()
    if 0 < seconds < SECONDS_PER_DAY:
        hours = max(1, round(seconds / 3600))
        return f"in {hours} hour{'s' if hours != 1 else ''}"
    return describe_interval(max(0, round(seconds / SECONDS_PER_DAY)))


def start_review_flow(
    manager: ReviewSessionManager,
    limit: Optional[int] = None,
    mode: str = "due",
) -> None:
    """
    Manages the command-line review session flow.

    Args:
        manager: An instance of ReviewSessionManager.
        limit: Maximum number of words in the session.
        mode: "due" or "today".
    """
    console.print("[bold cyan]Starting review session...[/bold cyan]")
    manager.initialize_session(limit=limit, mode=mode)

    session_size = len(manager.review_queue)
    if session_size == 0:
        console.print("[bold yellow]No words are due for review.[/bold yellow]")
        console.print("[bold cyan]Review session finished.[/bold cyan]")
        return

    shown = 0
    while (word := manager.get_next_word()) is not None:
        shown += 1
        console.rule(
            f"[bold]Word {shown} ({len(manager.review_queue)} left in session)[/bold]"
        )

        start_time = time.time()
        _display_word(word)
        outcome = _get_user_outcome()
        if outcome is None:
            console.print("[yellow]Session stopped.[/yellow]")
            break
        time_spent = time.time() - start_time

        now = datetime.now(timezone.utc)
        try:
            updated = manager.submit_outcome(
                word.id, outcome, now=now, time_spent_seconds=time_spent
            )
        except Exception as e:
            logger.error(f"Failed to submit outcome for word {word.id}: {e}")
            console.print(
                "[bold red]Error submitting review. Session stopped.[/bold red]"
            )
            break

        console.print(
            f"[green]Reviewed.[/green] Level {updated.proficiency_level}, "
            f"next review [bold]{describe_next_review(updated, now)}[/bold]."
        )
        console.print("")  # Add a blank line for spacing

    session_stats = manager.get_session_stats()
    console.print(
        f"[bold cyan]Review session finished.[/bold cyan] "
        f"Reviewed {session_stats['reviewed_words']} of {session_stats['total_words']} words "
        f"(known {session_stats['known']}, familiar {session_stats['familiar']}, "
        f"unknown {session_stats['unknown']})."
    )
