"""Pytest configuration and fixtures for luma-attendees tests."""

import asyncio
from collections.abc import Callable

import pytest

from luma_attendees.exceptions import BrowserError, SelectorTimeoutError
from luma_attendees.models import FetchResponse


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "e2e: End-to-end tests requiring a real browser and a Lu.ma account")
    config.addinivalue_line("markers", "integration: Integration tests with a real browser against local pages")
    config.addinivalue_line("markers", "slow: Tests that take longer to run")


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakePage:
    """Scripted stand-in for PageSession.

    Selectors listed in ``selectors`` are present; any other selector wait
    fails immediately with SelectorTimeoutError, and selectors in ``hanging``
    never resolve. Clicking a selector emits the request URLs scripted in
    ``click_requests`` to the subscribed listeners.
    """

    HANG = "<hang>"

    def __init__(
        self,
        *,
        selectors: set[str] | None = None,
        hanging: set[str] | None = None,
        texts: dict[str, str] | None = None,
        counts: dict[str, int] | None = None,
        heights: list[int] | None = None,
        evaluate_result: object = None,
        fetch_response: FetchResponse | None = None,
        click_requests: dict[str, list[str]] | None = None,
        url: str = "about:blank",
        navigation_url: str | None = None,
    ):
        self.selectors = set(selectors or ())
        self.hanging = set(hanging or ())
        self.texts = dict(texts or {})
        self.counts = dict(counts or {})
        self.heights = list(heights or [])
        self.evaluate_result = evaluate_result
        self.fetch_response = fetch_response or FetchResponse(ok=True, status=200, body="{}")
        self.click_requests = dict(click_requests or {})
        self.url = url
        self.navigation_url = navigation_url

        self.listeners: list[Callable[[str], None]] = []
        self.navigated: list[str] = []
        self.navigation_from: list[str | None] = []
        self.clicked: list[str] = []
        self.typed: list[tuple[str, str, int]] = []
        self.fetched: list[str] = []
        self.cancelled: list[str] = []
        self.scroll_polls = 0

    def add_request_listener(self, listener: Callable[[str], None]) -> None:
        self.listeners.append(listener)

    def remove_request_listener(self, listener: Callable[[str], None]) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def emit_request(self, url: str) -> None:
        for listener in list(self.listeners):
            listener(url)

    async def navigate(self, url: str, timeout: float | None = None) -> None:
        self.navigated.append(url)
        self.url = url

    async def wait_for_navigation(self, timeout: float | None = None, from_url: str | None = None) -> str:
        self.navigation_from.append(from_url)
        if self.navigation_url is None:
            raise BrowserError(f"No navigation away from {from_url} within {timeout}s")
        if self.navigation_url == self.HANG:
            await self._hang("navigation")
        self.url = self.navigation_url
        return self.url

    async def current_url(self) -> str:
        return self.url

    async def wait_for_selector(self, selector: str, timeout: float | None, visible: bool = False) -> None:
        if selector in self.hanging:
            await self._hang(selector)
        if selector not in self.selectors:
            raise SelectorTimeoutError(selector, timeout)

    async def exists(self, selector: str) -> bool:
        return selector in self.selectors

    async def count(self, selector: str) -> int:
        return self.counts.get(selector, 1 if selector in self.selectors else 0)

    async def text_content(self, selector: str) -> str | None:
        return self.texts.get(selector)

    async def click(self, selector: str) -> bool:
        if selector not in self.selectors:
            return False
        self.clicked.append(selector)
        for url in self.click_requests.get(selector, []):
            self.emit_request(url)
        return True

    async def type_text(self, selector: str, text: str, *, index: int = 0, delay: float | None = None) -> None:
        self.typed.append((selector, text, index))

    async def scroll_to_bottom(self) -> int:
        self.scroll_polls += 1
        if len(self.heights) > 1:
            return self.heights.pop(0)
        return self.heights[0] if self.heights else 0

    async def evaluate(self, expression: str, *, await_promise: bool = False, timeout: float | None = None) -> object:
        return self.evaluate_result

    async def fetch(self, url: str, timeout: float = 60.0) -> FetchResponse:
        self.fetched.append(url)
        return self.fetch_response

    async def _hang(self, name: str) -> None:
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled.append(name)
            raise


@pytest.fixture
def fake_page_factory():
    """Build FakePage instances with per-test scripting."""
    return FakePage
