"""Attendee capture: recover the guest-list API call and fetch the full list in one request.

Flow for one event page:

1. Navigate and locate the guest-list control.
2. Arm a one-shot request observer, then click the control so the page issues
   its own (paginated) guest-list request.
3. Read the total guest count from the popup heading.
4. Rewrite the captured request's pagination limit to that total.
5. Fetch the rewritten URL directly from the page context and normalize the
   ``entries`` of the JSON body into AttendeeRecords.

Any failure along the way yields a FAILED result with no records instead of
raising, so one broken event never aborts the run.
"""

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from .browser.listener import GuestListRequestMatcher, RequestObserver
from .config import CaptureSettings, LumaSettings, WaitSettings
from .exceptions import MissingPrerequisiteError, UpstreamDataError
from .models import AttendeeRecord, CaptureOutcome, CaptureResult, CaptureState
from .observability import bind_event_context, get_run_logger

if TYPE_CHECKING:
    from .browser.session import PageSession

logger = logging.getLogger(__name__)

GUEST_SECTION_SELECTOR = ".event-page-left .content"
GUEST_BUTTON_SELECTOR = ".event-page-left .content .guests-button"
GUEST_TOTAL_SELECTOR = "h3.title"
EVENT_TITLE_SELECTOR = "h1"

UNKNOWN_EVENT = "Unknown Event"

# payload key -> (record field, URL template)
SOCIAL_LINK_TEMPLATES: dict[str, tuple[str, str]] = {
    "twitter_handle": ("twitter", "https://twitter.com/{}"),
    "instagram_handle": ("instagram", "https://instagram.com/{}"),
    "linkedin_handle": ("linkedin", "https://linkedin.com/in/{}"),
    "youtube_handle": ("youtube", "https://youtube.com/{}"),
    "tiktok_handle": ("tiktok", "https://tiktok.com/@{}"),
    "website": ("website", "{}"),
}

# payload key -> record field, defaulted to "" when absent
TEXT_FIELDS: dict[str, str] = {
    "username": "username",
    "bio_short": "bio_short",
    "avatar_url": "avatar_url",
    "last_online_at": "last_online_at",
}

_DIGIT_RUN_RE = re.compile(r"[\d,]+")


def parse_total(text: str | None) -> int | None:
    """Parse the guest total out of heading text such as ``"1,234 Guests"``.

    Takes the first run of digits and thousands separators. Returns None when
    there is no number.
    """
    if not text:
        return None
    for match in _DIGIT_RUN_RE.finditer(text):
        digits = match.group(0).replace(",", "")
        if digits:
            return int(digits)
    return None


def _coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return 0


def normalize_guest(
    guest: dict[str, Any],
    event_name: str,
    event_url: str,
    profile_base_url: str = "https://lu.ma",
) -> AttendeeRecord:
    """Map one guest-list entry onto an AttendeeRecord.

    Missing values never raise: text fields fall back to their defaults and social
    links are only set when the payload carried the handle.
    """
    fields: dict[str, Any] = {
        "name": str(guest.get("name") or "Anonymous"),
        "profile_link": f"{profile_base_url.rstrip('/')}/user/{guest.get('api_id') or ''}",
        "event_name": event_name,
        "event_link": event_url,
        "timezone": str(guest.get("timezone") or "Unknown"),
        "num_tickets_registered": _coerce_int(guest.get("num_tickets_registered") or 0),
    }
    for payload_key, field_name in TEXT_FIELDS.items():
        fields[field_name] = str(guest.get(payload_key) or "")
    for payload_key, (field_name, template) in SOCIAL_LINK_TEMPLATES.items():
        handle = guest.get(payload_key)
        if handle:
            fields[field_name] = template.format(handle)
    return AttendeeRecord(**fields)


def parse_guest_payload(body: str) -> dict[str, Any]:
    """Decode the guest-list response body; anything but a JSON object becomes ``{}``."""
    try:
        data = json.loads(body) if body else {}
    except json.JSONDecodeError as e:
        logger.warning(f"Guest list response is not valid JSON: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def normalize_entries(
    payload: dict[str, Any],
    event_name: str,
    event_url: str,
    profile_base_url: str = "https://lu.ma",
) -> list[AttendeeRecord]:
    """Normalize the ``entries`` array of a guest-list payload, in payload order."""
    entries = payload.get("entries") or []
    if not isinstance(entries, list):
        logger.warning(f"Guest list 'entries' is {type(entries).__name__}, expected a list")
        return []

    records = []
    for guest in entries:
        if not isinstance(guest, dict):
            logger.warning(f"Skipping guest entry of type {type(guest).__name__}")
            continue
        records.append(normalize_guest(guest, event_name, event_url, profile_base_url))
    return records


class AttendeeCapture:
    """Captures the full guest list of one event page."""

    def __init__(
        self,
        page: "PageSession",
        luma_settings: LumaSettings | None = None,
        capture_settings: CaptureSettings | None = None,
        wait_settings: WaitSettings | None = None,
    ):
        self.page = page
        self.luma_settings = luma_settings or LumaSettings()
        self.capture_settings = capture_settings or CaptureSettings()
        self.wait_settings = wait_settings or WaitSettings()
        self.matcher = GuestListRequestMatcher(
            self.capture_settings.guest_list_api_url,
            self.capture_settings.ticket_query_key,
        )

    async def capture_attendees(self, event_url: str) -> CaptureResult:
        """Capture every guest of ``event_url``.

        Never raises for page or data problems; check ``result.outcome`` to tell a
        failed capture from an event without guests.
        """
        bind_event_context(event_url)
        run_logger = get_run_logger()
        result = CaptureResult(event_url=event_url)

        try:
            await self._capture(event_url, result)
        except Exception as e:
            logger.error(f"Failed to scrape {event_url}: {e}")
            run_logger.warning("capture_failed", state=result.state.value, error=str(e))
            result.records = []
            result.outcome = CaptureOutcome.FAILED
            result.error = str(e)
            result.states.append(CaptureState.FAILED)
            return result

        run_logger.info("capture_done", attendees=len(result.records), total=result.total)
        return result

    async def _capture(self, event_url: str, result: CaptureResult) -> None:
        page = self.page
        selector_timeout = self.wait_settings.selector_timeout

        await page.navigate(event_url)
        result.states.append(CaptureState.NAVIGATED)

        await page.wait_for_selector(GUEST_SECTION_SELECTOR, timeout=selector_timeout)
        if not await page.exists(GUEST_BUTTON_SELECTOR):
            raise MissingPrerequisiteError("Could not find guests button")

        observer = RequestObserver(page, self.matcher)
        observer.arm()
        result.states.append(CaptureState.OBSERVER_ARMED)
        try:
            if not await page.click(GUEST_BUTTON_SELECTOR):
                raise MissingPrerequisiteError("Guests button disappeared before it could be clicked")
            logger.info("Clicked guests button")
            result.states.append(CaptureState.POPUP_OPENED)

            await page.wait_for_selector(GUEST_TOTAL_SELECTOR, timeout=selector_timeout)
            total_text = await page.text_content(GUEST_TOTAL_SELECTOR)
            total = parse_total(total_text)
            if total:
                result.total = total
                logger.info(f"Max attendees count: {total}")
            else:
                logger.warning(f"Could not read a guest total from {total_text!r}; keeping the page's own pagination")

            endpoint = await observer.wait(timeout=self.capture_settings.endpoint_timeout)
        finally:
            observer.cancel()

        if endpoint is None:
            raise MissingPrerequisiteError("No guest-list request was captured")
        result.states.append(CaptureState.ENDPOINT_CAPTURED)

        url = endpoint.url
        if result.total:
            url = endpoint.with_pagination_limit(result.total, param=self.capture_settings.pagination_param)
            result.states.append(CaptureState.TOTAL_PARSED)
            logger.info(f"Updated API URL with correct pagination limit: {url}")
        result.endpoint_url = url

        response = await page.fetch(url, timeout=self.capture_settings.fetch_timeout)
        result.states.append(CaptureState.REQUEST_ISSUED)
        if not response.ok:
            raise UpstreamDataError(f"Guest list request failed with HTTP {response.status}: {response.error or response.body[:100]}")
        if response.truncated:
            raise UpstreamDataError("Guest list response exceeded the size limit and was truncated")
        logger.info("Fetched guest list from API")

        payload = parse_guest_payload(response.body)

        result.event_name = await page.text_content(EVENT_TITLE_SELECTOR) or UNKNOWN_EVENT
        result.records = normalize_entries(payload, result.event_name, event_url, self.luma_settings.profile_base_url)
        result.states.append(CaptureState.NORMALIZED)
        result.states.append(CaptureState.DONE)
