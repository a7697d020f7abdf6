"""Page facade over a browser-use session, driven through session-scoped CDP commands.

All DOM work goes through ``Runtime.evaluate`` on the focused tab's CDP session,
which bypasses browser-use's watchdogs the same way direct fetch execution does.
Outbound requests are observed through one ``Network.requestWillBeSent`` handler
that fans out to subscribed listeners.
"""

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from ..config import BrowserSettings, WaitSettings
from ..exceptions import BrowserError, SelectorTimeoutError
from ..models import FetchResponse

if TYPE_CHECKING:
    from browser_use.browser.session import BrowserSession, CDPSession
    from cdp_use.cdp.network.events import RequestWillBeSentEvent

logger = logging.getLogger(__name__)

MAX_RESPONSE_SIZE = 50_000_000  # Full guest lists of large events run to several MB

RequestListener = Callable[[str], None]


class PageSession:
    """One browser tab with navigation, wait, input, evaluate and network primitives.

    Usage:
        async with PageSession.open(settings.browser, settings.wait) as page:
            await page.navigate("https://lu.ma/signin")
            await page.wait_for_selector("input[type=email]", timeout=None)
    """

    def __init__(
        self,
        browser_session: "BrowserSession",
        browser_settings: BrowserSettings | None = None,
        wait_settings: WaitSettings | None = None,
    ):
        self._browser_session = browser_session
        self.browser_settings = browser_settings or BrowserSettings()
        self.wait_settings = wait_settings or WaitSettings()
        self._cdp_session: "CDPSession | None" = None
        self._request_listeners: list[RequestListener] = []

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        browser_settings: BrowserSettings,
        wait_settings: WaitSettings,
    ) -> AsyncIterator["PageSession"]:
        """Launch (or attach to) a browser, yield a page, and always stop the session."""
        from browser_use import BrowserProfile
        from browser_use.browser.profile import ProxySettings
        from browser_use.browser.session import BrowserSession

        proxy = None
        if browser_settings.proxy_server:
            proxy = ProxySettings(server=browser_settings.proxy_server, bypass=browser_settings.proxy_bypass)
        profile = BrowserProfile(
            headless=browser_settings.headless,
            proxy=proxy,
            cdp_url=browser_settings.cdp_url,
            keep_alive=False,
        )
        if browser_settings.cdp_url:
            logger.info(f"Using external browser via CDP: {browser_settings.cdp_url}")

        browser_session = BrowserSession(browser_profile=profile)
        page = cls(browser_session, browser_settings, wait_settings)
        try:
            await browser_session.start()
            await page.attach()
            yield page
        finally:
            try:
                await browser_session.stop()
                logger.info("Browser session closed")
            except Exception as e:
                logger.warning(f"Browser session did not stop cleanly: {e}")

    # --- CDP plumbing ---

    async def attach(self) -> None:
        """Bind to the focused tab and enable the CDP domains this facade needs."""
        cdp_session = await self._browser_session.get_or_create_cdp_session()
        self._cdp_session = cdp_session
        cdp_client = self._browser_session.cdp_client

        for domain in ("Page", "Runtime", "Network"):
            try:
                await getattr(cdp_client.send, domain).enable(session_id=cdp_session.session_id)
                logger.debug(f"Enabled {domain} domain for session {cdp_session.session_id[-8:]}")
            except Exception as e:
                # May already be enabled by the session manager
                logger.debug(f"{domain}.enable: {e}")

        cdp_client.register.Network.requestWillBeSent(self._on_request_will_be_sent)

    @property
    def session_id(self) -> str:
        if self._cdp_session is None:
            raise BrowserError("Page is not attached to a CDP session")
        return self._cdp_session.session_id

    def _on_request_will_be_sent(self, event: "RequestWillBeSentEvent", session_id: str | None) -> None:
        """Handle CDP Network.requestWillBeSent and fan the URL out to listeners.

        This is a synchronous callback.
        """
        request_data = event.get("request", {})  # type: ignore[arg-type]
        url = request_data.get("url", "")
        if not isinstance(url, str) or not url:
            return

        # Listeners may remove themselves while being called
        for listener in list(self._request_listeners):
            try:
                listener(url)
            except Exception as e:
                logger.debug(f"Request listener failed for {url[:80]}: {e}")

    def add_request_listener(self, listener: RequestListener) -> None:
        """Subscribe to every outbound request URL."""
        if listener not in self._request_listeners:
            self._request_listeners.append(listener)

    def remove_request_listener(self, listener: RequestListener) -> None:
        """Unsubscribe a listener; unknown listeners are ignored."""
        if listener in self._request_listeners:
            self._request_listeners.remove(listener)

    async def evaluate(self, expression: str, *, await_promise: bool = False, timeout: float | None = None) -> Any:
        """Evaluate JavaScript in the page and return its value by value."""
        params: dict[str, Any] = {
            "expression": expression,
            "returnByValue": True,
            "awaitPromise": await_promise,
        }
        if timeout is not None:
            params["timeout"] = int(timeout * 1000)

        result = await self._browser_session.cdp_client.send.Runtime.evaluate(params=params, session_id=self.session_id)
        if result.get("exceptionDetails"):
            error = result["exceptionDetails"].get("text", "Unknown error")
            raise BrowserError(f"Script evaluation failed: {error}")
        return result.get("result", {}).get("value")

    # --- Navigation ---

    async def navigate(self, url: str, timeout: float | None = None) -> None:
        """Navigate the tab to ``url`` and wait for the document to finish loading."""
        logger.debug(f"Navigating to: {url}")
        nav_result = await self._browser_session.cdp_client.send.Page.navigate(
            params={"url": url, "transitionType": "address_bar"},
            session_id=self.session_id,
        )
        if nav_result.get("errorText"):
            raise BrowserError(f"Navigation to {url} failed: {nav_result['errorText']}")

        if timeout is None:
            timeout = self.wait_settings.navigation_timeout
        try:
            await self._wait_until(self._document_loaded, timeout, description="document load")
        except TimeoutError as e:
            raise BrowserError(f"Timed out loading {url}") from e
        await asyncio.sleep(self.browser_settings.settle_delay)

    async def wait_for_navigation(self, timeout: float | None = None, from_url: str | None = None) -> str:
        """Wait until the tab leaves ``from_url`` (default: the current URL) and loads.

        Returns:
            The URL navigated to.
        """
        start_url = from_url if from_url is not None else await self.current_url()

        async def navigated() -> bool:
            return await self.current_url() != start_url and await self._document_loaded()

        try:
            await self._wait_until(navigated, timeout, description=f"navigation away from {start_url}")
        except TimeoutError as e:
            raise BrowserError(f"No navigation away from {start_url} within {timeout}s") from e
        return await self.current_url()

    async def current_url(self) -> str:
        return await self.evaluate("window.location.href") or ""

    async def _document_loaded(self) -> bool:
        return await self.evaluate("document.readyState") == "complete"

    # --- Elements ---

    async def wait_for_selector(self, selector: str, timeout: float | None, visible: bool = False) -> None:
        """Wait for ``selector`` to match; ``timeout=None`` waits indefinitely.

        Raises:
            SelectorTimeoutError: if nothing matched within ``timeout`` seconds.
        """
        check = _visible_js(selector) if visible else f"document.querySelector({json.dumps(selector)}) !== null"

        async def present() -> bool:
            return bool(await self.evaluate(check))

        try:
            await self._wait_until(present, timeout, description=selector)
        except TimeoutError as e:
            raise SelectorTimeoutError(selector, timeout) from e

    async def exists(self, selector: str) -> bool:
        return await self.count(selector) > 0

    async def count(self, selector: str) -> int:
        return int(await self.evaluate(f"document.querySelectorAll({json.dumps(selector)}).length") or 0)

    async def text_content(self, selector: str) -> str | None:
        """Trimmed text of the first match, or None when nothing matches."""
        value = await self.evaluate(
            f"(() => {{ const el = document.querySelector({json.dumps(selector)}); "
            f"return el ? (el.textContent || '').trim() : null; }})()"
        )
        return value if isinstance(value, str) else None

    async def click(self, selector: str) -> bool:
        """Click the first match. Returns False when nothing matched."""
        clicked = await self.evaluate(
            f"(() => {{ const el = document.querySelector({json.dumps(selector)}); "
            f"if (!el) return false; el.scrollIntoView({{block: 'center'}}); el.click(); return true; }})()"
        )
        return bool(clicked)

    async def type_text(self, selector: str, text: str, *, index: int = 0, delay: float | None = None) -> None:
        """Focus the ``index``-th match of ``selector`` and type ``text`` one key at a time."""
        focused = await self.evaluate(
            f"(() => {{ const el = document.querySelectorAll({json.dumps(selector)})[{index}]; "
            f"if (!el) return false; el.focus(); return true; }})()"
        )
        if not focused:
            raise BrowserError(f"No element #{index} for selector: {selector}")

        if delay is None:
            delay = self.browser_settings.typing_delay
        for char in text:
            await self._browser_session.cdp_client.send.Input.insertText(params={"text": char}, session_id=self.session_id)
            if delay:
                await asyncio.sleep(delay)

    async def scroll_to_bottom(self) -> int:
        """Scroll to the current document bottom and return the scroll height."""
        height = await self.evaluate("(() => { const h = document.body.scrollHeight; window.scrollTo(0, h); return h; })()")
        return int(height or 0)

    # --- Direct requests ---

    async def fetch(self, url: str, timeout: float = 60.0) -> FetchResponse:
        """Issue a GET with ``fetch()`` from the page context (shares the tab's cookies)."""
        logger.debug(f"Executing fetch: GET {url}")
        value = await self.evaluate(_build_fetch_js(url), await_promise=True, timeout=timeout)
        if not isinstance(value, dict):
            return FetchResponse(ok=False, error="Fetch returned no result")

        if value.get("truncated"):
            logger.warning(f"Response truncated to {MAX_RESPONSE_SIZE} bytes")
        return FetchResponse(
            ok=bool(value.get("ok")),
            status=int(value.get("status") or 0),
            body=value.get("body") or "",
            error=value.get("error"),
            truncated=bool(value.get("truncated")),
        )

    # --- Internals ---

    async def _wait_until(self, condition: Callable[[], Any], timeout: float | None, description: str) -> None:
        """Poll ``condition`` until truthy; raise TimeoutError after ``timeout`` seconds."""
        deadline = None if timeout is None else time.monotonic() + timeout
        interval = self.wait_settings.poll_interval
        while True:
            try:
                if await condition():
                    return
            except BrowserError as e:
                # Evaluation fails transiently while a new document is being committed
                logger.debug(f"Condition check failed ({description}): {e}")
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(f"Timed out after {timeout}s waiting for {description}")
            await asyncio.sleep(interval)


def _visible_js(selector: str) -> str:
    return (
        f"(() => {{ const el = document.querySelector({json.dumps(selector)}); if (!el) return false; "
        f"const style = window.getComputedStyle(el); const rect = el.getBoundingClientRect(); "
        f"return style.visibility !== 'hidden' && style.display !== 'none' && rect.width > 0 && rect.height > 0; }})()"
    )


def _build_fetch_js(url: str) -> str:
    """Build JavaScript code for a GET fetch that reports status and raw body."""
    return f"""
(async () => {{
    const MAX_SIZE = {MAX_RESPONSE_SIZE};
    let response;
    try {{
        response = await fetch({json.dumps(url)}, {{method: 'GET', credentials: 'include'}});
    }} catch (error) {{
        return {{
            ok: false,
            status: 0,
            error: 'Fetch failed: ' + (error.message || String(error)),
        }};
    }}

    let body = '';
    try {{
        body = await response.text();
    }} catch (readError) {{
        return {{
            ok: false,
            status: response.status,
            error: 'Body read failed: ' + (readError.message || String(readError)),
        }};
    }}
    const truncated = body.length > MAX_SIZE;
    if (truncated) {{
        body = body.slice(0, MAX_SIZE);
    }}
    return {{
        ok: response.ok,
        status: response.status,
        body: body,
        truncated: truncated,
    }};
}})()
"""
