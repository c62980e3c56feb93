"""Error taxonomy for browser sessions and navigation."""

from __future__ import annotations

from typing import Optional


class ScraperError(RuntimeError):
    """Base class for all scraper errors."""
    pass


class LaunchFailure(ScraperError):
    """Raised when the headless browser process could not be started."""

    def __init__(self, reason: str, executable_path: Optional[str] = None):
        self.reason = reason
        self.executable_path = executable_path
        where = f" (executable: {executable_path})" if executable_path else ""
        super().__init__(f"Browser launch failed{where}: {reason}")


class RetryableNavigationError(ScraperError):
    """A navigation failure worth retrying: throttling or a page change that did not happen."""
    pass


class RateLimitedError(RetryableNavigationError):
    """Raised when the target answers a navigation with HTTP 429."""

    def __init__(self, url: str, status: int = 429):
        self.url = url
        self.status = status
        super().__init__(f"HTTP {status} (too many requests) for {url}")


class PageNotAdvancedError(RetryableNavigationError):
    """Raised when a "next" click is accepted but the listing stays on the same page."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"Listing did not advance after clicking next ({target})")


class FatalNavigationError(ScraperError):
    """Non-retryable navigation failure; the run is aborted.

    ``partial_records`` holds whatever had been collected before the failure.
    """

    def __init__(self, target: str, cause: BaseException, partial_records: Optional[list] = None):
        self.target = target
        self.cause = cause
        self.partial_records = list(partial_records or [])
        super().__init__(f"Fatal navigation error for {target}: {type(cause).__name__}: {cause}")


class RetryExhausted(ScraperError):
    """The retryable path ran out of attempts."""

    def __init__(self, target: str, attempts: int, last_error: Optional[BaseException] = None):
        self.target = target
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {type(last_error).__name__}: {last_error}" if last_error else ""
        super().__init__(f"Gave up on {target} after {attempts} attempts{detail}")


NavigationExhausted = RetryExhausted
