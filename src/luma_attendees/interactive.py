"""Terminal prompts for the values the scraper cannot find on its own."""

from collections.abc import Sequence
from typing import Literal, Protocol

import click
import typer

from .models import EventLink

ScrapeMode = Literal["calendar", "direct"]

MODE_CHOICES: list[tuple[ScrapeMode, str]] = [
    ("calendar", "Get event links from calendar"),
    ("direct", "Scrape directly from URL"),
]


class Prompter(Protocol):
    """Source of interactive inputs for one run."""

    def ask_url(self) -> str: ...

    def ask_email(self) -> str: ...

    def ask_otp(self) -> str: ...

    def choose_mode(self) -> ScrapeMode: ...

    def choose_event(self, events: Sequence[EventLink]) -> int: ...


def _choose(message: str, options: Sequence[str]) -> int:
    """Print a numbered menu and return the zero-based index picked."""
    for number, option in enumerate(options, 1):
        typer.echo(f"  {number}. {option}")
    picked = typer.prompt(message, type=click.IntRange(1, len(options)), default=1)
    return picked - 1


class TerminalPrompter:
    """Prompter that reads from the terminal."""

    def ask_url(self) -> str:
        return typer.prompt("Enter the Lu.ma event URL").strip()

    def ask_email(self) -> str:
        return typer.prompt("Enter your Lu.ma email").strip()

    def ask_otp(self) -> str:
        typer.echo("\nCheck your email for the OTP and enter it below.")
        return typer.prompt("Enter the OTP").strip()

    def choose_mode(self) -> ScrapeMode:
        index = _choose("Select scraping method", [label for _, label in MODE_CHOICES])
        return MODE_CHOICES[index][0]

    def choose_event(self, events: Sequence[EventLink]) -> int:
        return _choose("Select an event to scrape", [f"{event.title} ({event.url})" for event in events])
