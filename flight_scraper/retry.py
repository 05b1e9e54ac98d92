"""Bounded retry loop with exponential backoff around one search attempt"""

from typing import Any, Awaitable, Callable, NamedTuple, Optional

from loguru import logger

from .config import BACKOFF_JITTER, INITIAL_BACKOFF, MAX_RETRIES
from .exceptions import BlockedError, PolicyDenied, RetriesExhaustedError
from .models import ErrorType
from .pacing import BackoffPolicy, Sleeper, exponential_backoff, real_sleep

Attempt = Callable[[int], Awaitable[Any]]


class RetryOutcome(NamedTuple):
    value: Any
    retries: int


class RetryController:
    """
    Run an attempt up to ``max_retries`` times.

    A BlockedError stops the loop at once and is re-raised with the retry
    count filled in. Any other exception is treated as transient: back off and
    try again while attempts remain, then raise RetriesExhaustedError.
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        backoff: Optional[BackoffPolicy] = None,
        sleep: Sleeper = real_sleep,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.max_retries = max_retries
        self.backoff = backoff or exponential_backoff(INITIAL_BACKOFF, BACKOFF_JITTER)
        self.sleep = sleep

    async def run(self, attempt_fn: Attempt) -> RetryOutcome:
        """
        Execute ``attempt_fn(attempt)`` with 1-based attempt numbers.

        Returns:
            RetryOutcome with the attempt's value and the number of retries used
        """
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                value = await attempt_fn(attempt)
                if attempt > 1:
                    logger.success(f"Recovered after {attempt - 1} retries")
                return RetryOutcome(value, attempt - 1)

            except BlockedError as e:
                e.retries = attempt - 1
                logger.error(f"Blocked on attempt {attempt}, not retrying: {e.reason}")
                raise

            except Exception as e:
                last_error = e
                logger.warning(
                    f"Attempt {attempt}/{self.max_retries} failed "
                    f"({classify_error(e).value}): {type(e).__name__}: {e}"
                )
                if attempt < self.max_retries:
                    wait = self.backoff(attempt)
                    logger.info(f"   Retrying in {wait:.1f}s...")
                    await self.sleep(wait)

        logger.error(f"Failed after {self.max_retries} attempts: {last_error}")
        raise RetriesExhaustedError(last_error, retries=self.max_retries - 1)


def classify_error(error: BaseException) -> ErrorType:
    """Classify error for appropriate handling"""
    if isinstance(error, BlockedError):
        return ErrorType.BLOCKED
    if isinstance(error, PolicyDenied):
        return ErrorType.POLICY
    return ErrorType.TRANSIENT
