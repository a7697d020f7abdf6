"""Lu.ma event attendee scraper."""

from .config import get_settings
from .exceptions import AuthenticationError, BrowserError, LumaScraperError, MissingPrerequisiteError, UpstreamDataError
from .models import AttendeeRecord, CaptureOutcome, CaptureResult, EventLink
from .pipeline import RunReport, ScrapeRun

__all__ = [
    "get_settings",
    "ScrapeRun",
    "RunReport",
    "AttendeeRecord",
    "CaptureOutcome",
    "CaptureResult",
    "EventLink",
    "LumaScraperError",
    "AuthenticationError",
    "BrowserError",
    "MissingPrerequisiteError",
    "UpstreamDataError",
]
