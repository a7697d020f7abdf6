"""Browser primitives: the page facade and the one-shot request observer."""

from .listener import GuestListRequestMatcher, RequestObserver
from .session import PageSession

__all__ = [
    "GuestListRequestMatcher",
    "PageSession",
    "RequestObserver",
]
