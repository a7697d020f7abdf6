"""One-shot network request observer.

The observer is armed before the UI action that triggers the request, resolves
with the first matching URL, and unsubscribes itself on that first match. The
captured endpoint is handed back to the caller; nothing is kept at module level.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol
from urllib.parse import parse_qs, urlparse

from ..models import CapturedEndpoint

logger = logging.getLogger(__name__)


class RequestSource(Protocol):
    """Anything that fans out outbound request URLs (PageSession in production)."""

    def add_request_listener(self, listener: Callable[[str], None]) -> None: ...

    def remove_request_listener(self, listener: Callable[[str], None]) -> None: ...


class GuestListRequestMatcher:
    """Recognizes the guest-list API request among unrelated traffic.

    A URL matches when its scheme, host and path equal the configured API URL and
    its query carries the ticket-scoped key.
    """

    def __init__(self, api_url: str, ticket_query_key: str = "ticket_key"):
        parsed = urlparse(api_url)
        self._scheme = parsed.scheme.lower()
        self._host = (parsed.hostname or "").lower()
        self._path = parsed.path.rstrip("/")
        self.ticket_query_key = ticket_query_key

    def __call__(self, url: str) -> bool:
        parsed = urlparse(url)
        if parsed.scheme.lower() != self._scheme or (parsed.hostname or "").lower() != self._host:
            return False
        if parsed.path.rstrip("/") != self._path:
            return False
        return self.ticket_query_key in parse_qs(parsed.query, keep_blank_values=True)


class RequestObserver:
    """Single-resolution subscription to outbound requests.

    Usage:
        observer = RequestObserver(page, GuestListRequestMatcher(api_url))
        observer.arm()
        try:
            await page.click(".guests-button")
            endpoint = await observer.wait(timeout=30)
        finally:
            observer.cancel()
    """

    def __init__(self, source: RequestSource, matcher: Callable[[str], bool]):
        self._source = source
        self._matcher = matcher
        self._future: asyncio.Future[CapturedEndpoint | None] | None = None
        self._subscribed = False

    def arm(self) -> None:
        """Subscribe to requests. Must be called before the triggering action."""
        if self._future is not None:
            raise RuntimeError("RequestObserver can only be armed once")
        self._future = asyncio.get_running_loop().create_future()
        self._source.add_request_listener(self._on_request)
        self._subscribed = True
        logger.debug("Request observer armed")

    def cancel(self) -> None:
        """Unsubscribe; an unresolved observer resolves to None."""
        self._unsubscribe()
        if self._future is not None and not self._future.done():
            self._future.set_result(None)

    async def wait(self, timeout: float | None) -> CapturedEndpoint | None:
        """Wait for the first matching request; None if none arrived within ``timeout``."""
        if self._future is None:
            raise RuntimeError("RequestObserver.wait() called before arm()")
        try:
            return await asyncio.wait_for(asyncio.shield(self._future), timeout)
        except TimeoutError:
            logger.debug(f"No matching request observed within {timeout}s")
            return None

    def _on_request(self, url: str) -> None:
        if self._future is None or self._future.done():
            return
        if not self._matcher(url):
            return
        logger.info(f"Captured request URL: {url}")
        self._future.set_result(CapturedEndpoint(url=url))
        self._unsubscribe()

    def _unsubscribe(self) -> None:
        if self._subscribed:
            self._source.remove_request_listener(self._on_request)
            self._subscribed = False
