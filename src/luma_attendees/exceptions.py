"""Custom exceptions for the Lu.ma attendee scraper."""


class LumaScraperError(Exception):
    """Base exception for scraper errors."""

    pass


class BrowserError(LumaScraperError):
    """Raised when browser operations fail."""

    pass


class SelectorTimeoutError(BrowserError):
    """Raised when an expected element never appears within its wait bound."""

    def __init__(self, selector: str, timeout: float | None):
        self.selector = selector
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting for selector: {selector}")


class ScrollConvergenceError(BrowserError):
    """Raised when lazy-loaded content keeps growing past the scroll bound."""

    pass


class MissingPrerequisiteError(LumaScraperError):
    """Raised when a required value (email, page control, captured request) is absent."""

    pass


class UpstreamDataError(LumaScraperError):
    """Raised when the guest-list API answers with an error."""

    pass


class AuthenticationError(LumaScraperError):
    """Raised when the email/OTP login does not complete."""

    pass
