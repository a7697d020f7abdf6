"""Calendar event discovery with bounded auto-scroll."""

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from .config import LumaSettings, ScrollSettings, WaitSettings
from .exceptions import ScrollConvergenceError
from .models import EventLink
from .utils import resolve_link

if TYPE_CHECKING:
    from .browser.session import PageSession

logger = logging.getLogger(__name__)

EVENT_LINK_SELECTOR = ".timeline a.event-link"

# One pass over the rendered anchors; deduplication happens in Python
_EXTRACT_LINKS_JS = (
    "Array.from(document.querySelectorAll(%s)).map(el => "
    "({href: el.getAttribute('href'), title: el.getAttribute('aria-label')}))"
)


async def auto_scroll(
    page: "PageSession",
    interval: float = 1.5,
    stable_reads: int = 1,
    max_duration: float | None = 300.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Scroll to the bottom until the document height stops growing.

    Every ``interval`` seconds the page is scrolled to its current bottom and the
    height read back. ``stable_reads`` consecutive reads equal to the previous one
    end the loop.

    Returns:
        Number of polls taken.

    Raises:
        ScrollConvergenceError: if the height is still changing after ``max_duration`` seconds.
    """
    deadline = None if max_duration is None else clock() + max_duration
    previous: int | None = None
    stable = 0
    polls = 0

    while True:
        await sleep(interval)
        height = await page.scroll_to_bottom()
        polls += 1

        if height == previous:
            stable += 1
            if stable >= stable_reads:
                logger.debug(f"Scroll height settled at {height}px after {polls} polls")
                return polls
        else:
            stable = 0
        previous = height

        if deadline is not None and clock() >= deadline:
            raise ScrollConvergenceError(f"Page height still changing after {max_duration}s ({polls} polls, last height {height}px)")


def collect_event_links(anchors: list[dict[str, Any]], base_url: str) -> list[EventLink]:
    """Map raw anchors to EventLinks, unique by URL, first-seen title wins."""
    links: list[EventLink] = []
    seen: set[str] = set()
    for anchor in anchors:
        if not isinstance(anchor, dict):
            continue
        href = anchor.get("href")
        title = anchor.get("title")
        if not href or not title:
            continue
        url = resolve_link(base_url, href)
        if url in seen:
            continue
        seen.add(url)
        links.append(EventLink(url=url, title=title))
    return links


class ListingDiscovery:
    """Finds the events listed on a calendar page."""

    def __init__(
        self,
        page: "PageSession",
        luma_settings: LumaSettings | None = None,
        wait_settings: WaitSettings | None = None,
        scroll_settings: ScrollSettings | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.page = page
        self.luma_settings = luma_settings or LumaSettings()
        self.wait_settings = wait_settings or WaitSettings()
        self.scroll_settings = scroll_settings or ScrollSettings()
        self._sleep = sleep

    async def discover_events(self, calendar_url: str) -> list[EventLink]:
        """Return the calendar's events in page order, one per URL."""
        logger.info(f"Navigating to calendar: {calendar_url}")
        await self.page.navigate(calendar_url)

        await self.page.wait_for_selector(EVENT_LINK_SELECTOR, timeout=self.wait_settings.selector_timeout, visible=True)
        logger.info("Found event elements, starting scroll")

        await auto_scroll(
            self.page,
            interval=self.scroll_settings.interval,
            stable_reads=self.scroll_settings.stable_reads,
            max_duration=self.scroll_settings.max_duration,
            sleep=self._sleep,
        )

        anchors = await self.page.evaluate(_EXTRACT_LINKS_JS % json.dumps(EVENT_LINK_SELECTOR))
        links = collect_event_links(anchors if isinstance(anchors, list) else [], self.luma_settings.base_url)

        logger.info(f"Found {len(links)} unique event links")
        for event in links:
            logger.info(f"- {event.title}: {event.url}")
        return links
