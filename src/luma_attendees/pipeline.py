"""Top-level scrape run: login, optional calendar discovery, capture, export."""

import asyncio
import logging
import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field

from .auth import AuthFlow
from .browser.session import PageSession
from .capture import UNKNOWN_EVENT, AttendeeCapture
from .config import AppSettings
from .discovery import ListingDiscovery
from .exceptions import MissingPrerequisiteError
from .export import ExportResult, RecordExporter
from .interactive import Prompter, ScrapeMode
from .models import CaptureResult, EventLink
from .observability import bind_run_context, clear_run_context, get_run_logger

logger = logging.getLogger(__name__)

PageFactory = Callable[[], AbstractAsyncContextManager[PageSession]]


@dataclass
class RunReport:
    """What one run produced."""

    target_url: str
    scrape_url: str | None = None
    events: list[EventLink] = field(default_factory=list)
    capture: CaptureResult | None = None
    export: ExportResult | None = None

    @property
    def attendee_count(self) -> int:
        return len(self.capture.records) if self.capture else 0


class ScrapeRun:
    """One interactive run against a single browser session.

    Failures in login, discovery or export propagate to the caller; the browser
    session is closed on every path.
    """

    def __init__(
        self,
        settings: AppSettings,
        prompter: Prompter,
        page_factory: PageFactory | None = None,
    ):
        self.settings = settings
        self.prompter = prompter
        self._page_factory = page_factory or (lambda: PageSession.open(settings.browser, settings.wait))

    async def run(self, target_url: str | None = None, mode: ScrapeMode | None = None) -> RunReport:
        url = target_url or await asyncio.to_thread(self.prompter.ask_url)
        if not url:
            raise MissingPrerequisiteError("A calendar or event URL is required")

        bind_run_context(uuid.uuid4().hex[:12], url)
        run_logger = get_run_logger()
        report = RunReport(target_url=url)
        try:
            email = self.settings.luma.email or await asyncio.to_thread(self.prompter.ask_email)
            if not email:
                raise MissingPrerequisiteError("Email is required")

            async with self._page_factory() as page:
                auth = AuthFlow(page, self.prompter.ask_otp, self.settings.luma, self.settings.wait)
                await auth.authenticate(email)
                run_logger.info("authenticated")

                mode = mode or await asyncio.to_thread(self.prompter.choose_mode)
                report.scrape_url = await self._resolve_scrape_url(page, url, mode, report)
                logger.info(f"Using scraping URL: {report.scrape_url}")

                capture = AttendeeCapture(page, self.settings.luma, self.settings.capture, self.settings.wait)
                report.capture = await capture.capture_attendees(report.scrape_url)

            report.export = self._export(report.capture)
            return report
        finally:
            clear_run_context()

    async def _resolve_scrape_url(self, page: PageSession, url: str, mode: ScrapeMode, report: RunReport) -> str:
        if mode != "calendar":
            return url

        logger.info("Fetching event links...")
        discovery = ListingDiscovery(page, self.settings.luma, self.settings.wait, self.settings.scroll)
        report.events = await discovery.discover_events(url)
        if not report.events:
            raise MissingPrerequisiteError("No events found in the calendar")

        logger.info(f"Found {len(report.events)} unique events")
        index = await asyncio.to_thread(self.prompter.choose_event, report.events)
        return report.events[index].url

    def _export(self, capture: CaptureResult) -> ExportResult | None:
        run_logger = get_run_logger()
        if not capture.records:
            if capture.succeeded:
                logger.info("No attendees found for this event")
            else:
                logger.info(f"No attendees found for this event (capture failed: {capture.error})")
            return None

        event_name = capture.event_name or UNKNOWN_EVENT
        logger.info(f"Found attendees for event: {event_name}")
        exporter = RecordExporter(
            self.settings.get_output_dir(),
            write_xlsx=self.settings.output.write_xlsx,
            write_json=self.settings.output.write_json,
        )
        result = exporter.export(capture.records, event_name)
        run_logger.info("export_written", attendees=len(capture.records), xlsx=str(result.xlsx_path), json=str(result.json_path))
        return result
