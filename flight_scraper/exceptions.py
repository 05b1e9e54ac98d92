"""Custom exception classes for the flight scraper"""

from typing import Optional


class ScraperError(Exception):
    """Base exception for scraper errors"""

    pass


class TransientError(ScraperError):
    """Navigation failure, timeout or unexpected page error; retried with backoff"""

    pass


class RetriesExhaustedError(TransientError):
    """Raised when every attempt of a search failed with a transient error"""

    def __init__(self, last_error: BaseException, retries: int):
        self.last_error = last_error
        self.retries = retries
        super().__init__(f"{type(last_error).__name__}: {last_error}")


class BlockedError(ScraperError):
    """Raised when the target site answers with a challenge or block page

    Never retried: the route is reported as blocked and counted against the
    circuit breaker. ``capture`` holds the page as it was seen, for snapshots.
    """

    def __init__(self, reason: str, capture=None, retries: int = 0):
        self.reason = reason
        self.capture = capture
        self.retries = retries
        super().__init__(reason)


class PolicyDenied(ScraperError):
    """A self-imposed limit pre-empted the network call"""

    policy = "policy"


class RateLimitError(PolicyDenied):
    """Raised when the hourly or daily search budget is used up"""

    policy = "rate_limited"


class CircuitOpenError(PolicyDenied):
    """Raised when the route's circuit breaker is open"""

    policy = "circuit_open"

    def __init__(self, message: str, pause_until: Optional[object] = None):
        self.pause_until = pause_until
        super().__init__(message)
