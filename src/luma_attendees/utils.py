"""URL and filename helpers shared across the scraper."""

import re
from urllib.parse import quote_plus, unquote_plus, urljoin, urlparse, urlunparse

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")


def rewrite_pagination_limit(url: str, limit: int, param: str = "pagination_limit") -> str:
    """Set the pagination-limit query parameter of ``url`` to ``limit``.

    Only the pagination parameter is touched; every other query segment is kept
    byte-for-byte, so rewriting a URL that already carries ``limit`` returns it
    unchanged. The parameter is appended when the URL does not carry it.
    """
    parsed = urlparse(url)
    value = str(limit)
    segments = parsed.query.split("&") if parsed.query else []

    out: list[str] = []
    replaced = False
    for segment in segments:
        key, sep, current = segment.partition("=")
        if unquote_plus(key) != param:
            out.append(segment)
            continue
        if replaced:
            # Duplicate pagination keys collapse into the first one
            continue
        replaced = True
        out.append(segment if sep and unquote_plus(current) == value else f"{key}={value}")

    if not replaced:
        out.append(f"{quote_plus(param)}={value}")

    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, parsed.params, "&".join(out), parsed.fragment))


def resolve_link(base_url: str, href: str) -> str:
    """Resolve a possibly relative href against the site root."""
    return urljoin(base_url.rstrip("/") + "/", href)


def sanitize_filename_component(value: str) -> str:
    """Replace every non-alphanumeric character with ``_`` and lower-case the result."""
    return _NON_ALNUM_RE.sub("_", value).lower()
