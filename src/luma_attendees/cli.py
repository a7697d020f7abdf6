"""CLI interface for the Lu.ma attendee scraper."""

import asyncio
from typing import Optional

import click
import typer

from .config import CONFIG_FILE, AppSettings, get_settings
from .exceptions import LumaScraperError
from .interactive import TerminalPrompter
from .observability import quiet_dependency_logging, setup_structured_logging

app = typer.Typer(help="Export the guest list of a Lu.ma event to Excel and JSON")


def _apply_overrides(
    settings: AppSettings,
    email: Optional[str],
    headless: Optional[bool],
    output_dir: Optional[str],
    wait_mode: Optional[str],
    log_level: Optional[str],
) -> AppSettings:
    """Return a copy of ``settings`` with the command-line values laid over it."""
    update = {}
    if email:
        update["luma"] = settings.luma.model_copy(update={"email": email})
    if headless is not None:
        update["browser"] = settings.browser.model_copy(update={"headless": headless})
    if output_dir:
        update["output"] = settings.output.model_copy(update={"directory": output_dir})
    if wait_mode:
        update["wait"] = settings.wait.model_copy(update={"mode": wait_mode})
    if log_level:
        update["logging"] = settings.logging.model_copy(update={"level": log_level.upper()})
    return settings.model_copy(update=update)


@app.command()
def run(
    url: Optional[str] = typer.Argument(None, help="Calendar or event URL (prompted when omitted)"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Lu.ma login email"),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        "-m",
        click_type=click.Choice(["calendar", "direct"]),
        help="calendar: pick an event from the calendar page; direct: scrape the URL as given",
    ),
    headless: Optional[bool] = typer.Option(None, "--headless/--no-headless", help="Run the browser without a window"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", "-o", help="Directory for the exported files"),
    wait_mode: Optional[str] = typer.Option(
        None,
        "--wait-mode",
        click_type=click.Choice(["interactive", "bounded"]),
        help="interactive: operator-facing waits never time out",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
) -> None:
    """Sign in, capture an event's guest list and export it."""
    from .pipeline import ScrapeRun

    settings = _apply_overrides(get_settings(), email, headless, output_dir, wait_mode, log_level)
    quiet_dependency_logging()
    setup_structured_logging(level=settings.logging.level, fmt=settings.logging.format)

    scrape = ScrapeRun(settings, TerminalPrompter())
    try:
        report = asyncio.run(scrape.run(url, mode))
    except LumaScraperError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if report.export is None:
        typer.echo("No attendees found for this event.")
        return

    typer.echo(f"Exported {report.attendee_count} attendees")
    for path in (report.export.xlsx_path, report.export.json_path):
        if path is not None:
            typer.echo(f"  {path}")


@app.command()
def config(
    save: bool = typer.Option(False, "--save", help=f"Write the current settings to {CONFIG_FILE}"),
) -> None:
    """Show current configuration."""
    settings = get_settings()
    print(f"Email: {settings.luma.email or '(prompted)'}")
    print(f"Site: {settings.luma.base_url}")
    print(f"Headless: {settings.browser.headless}")
    print(f"CDP URL: {settings.browser.cdp_url or '(launch new browser)'}")
    print(f"Proxy: {settings.browser.proxy_server or '(none)'}")
    print(f"Wait Mode: {settings.wait.mode}")
    print(f"Selector Timeout: {settings.wait.selector_timeout}s")
    print(f"Scroll: every {settings.scroll.interval}s, max {settings.scroll.max_duration}s")
    print(f"Guest List API: {settings.capture.guest_list_api_url}")
    print(f"Output Directory: {settings.output.directory}")
    print(f"Log Level: {settings.logging.level} ({settings.logging.format})")
    if save:
        path = settings.save()
        print(f"Saved to {path}")


if __name__ == "__main__":
    app()
