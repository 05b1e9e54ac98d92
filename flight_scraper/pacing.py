"""Injectable delay policies for backoff and human-like pacing

Every randomized wait in the scraper goes through one of these callables so
tests can swap them for deterministic, instant versions.
"""

import asyncio
import random
from typing import Awaitable, Callable

from .config import DelayRange

DelayPolicy = Callable[[], float]
BackoffPolicy = Callable[[int], float]
Sleeper = Callable[[float], Awaitable[None]]


def uniform_delay(delay: DelayRange, rng: random.Random = None) -> DelayPolicy:
    """Uniformly random delay within ``delay`` bounds"""
    rng = rng or random.Random()

    def policy() -> float:
        return rng.uniform(delay.min, delay.max)

    return policy


def exponential_backoff(
    base: float,
    jitter: float,
    rng: random.Random = None,
) -> BackoffPolicy:
    """``base * 2^(attempt-1) + uniform(0, jitter)`` for a 1-based attempt"""
    rng = rng or random.Random()

    def policy(attempt: int) -> float:
        return base * (2 ** (attempt - 1)) + rng.uniform(0, jitter)

    return policy


def fixed_delay(seconds: float) -> DelayPolicy:
    return lambda: seconds


async def real_sleep(seconds: float) -> None:
    if seconds > 0:
        await asyncio.sleep(seconds)
