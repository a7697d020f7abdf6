"""Shared fixtures for integration tests: a local site that behaves like an event page."""

import json
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlparse

import pytest

GUESTS = [
    {"name": "Ann", "api_id": "u1", "twitter_handle": "ann"},
    {"name": "Bo", "api_id": "u2", "linkedin_handle": "bo"},
    {"name": "Cy", "api_id": "u3", "num_tickets_registered": 2},
]

EVENT_PAGE = """<!doctype html>
<html><body>
<h1>Local Demo Night</h1>
<div class="event-page-left"><div class="content">
  <button class="guests-button" onclick="openGuests()">Guests</button>
</div></div>
<div id="popup"></div>
<script>
async function openGuests() {
  document.getElementById('popup').innerHTML = '<h3 class="title">%(total)d Guests</h3>';
  await fetch('/event/get-guest-list?event_api_id=evt-1&ticket_key=abc&pagination_limit=1');
}
</script>
</body></html>
"""

CALENDAR_PAGE = """<!doctype html>
<html><body><div class="timeline">
  <a class="event-link" href="/demo" aria-label="Local Demo Night">Demo</a>
  <a class="event-link" href="/demo" aria-label="Duplicate">Demo again</a>
  <a class="event-link" href="/other" aria-label="Other Event">Other</a>
</div></body></html>
"""


@dataclass(frozen=True, slots=True)
class LocalSite:
    base_url: str
    guest_list_url: str


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def local_site() -> Iterator[LocalSite]:
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            parsed = urlparse(self.path)
            if parsed.path == "/demo":
                self._send(200, "text/html", (EVENT_PAGE % {"total": len(GUESTS)}).encode("utf-8"))
            elif parsed.path == "/calendar":
                self._send(200, "text/html", CALENDAR_PAGE.encode("utf-8"))
            elif parsed.path == "/event/get-guest-list":
                qs = parse_qs(parsed.query)
                limit = int((qs.get("pagination_limit") or ["50"])[0])
                payload = {"entries": GUESTS[:limit], "has_more": limit < len(GUESTS)}
                self._send(200, "application/json", json.dumps(payload).encode("utf-8"))
            else:
                self._send(404, "text/plain", b"not found")

        def _send(self, status: int, content_type: str, body: bytes) -> None:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: object) -> None:
            return

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    port = httpd.server_address[1]
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()

    base_url = f"http://127.0.0.1:{port}"
    try:
        yield LocalSite(base_url=base_url, guest_list_url=f"{base_url}/event/get-guest-list")
    finally:
        httpd.shutdown()
        httpd.server_close()
