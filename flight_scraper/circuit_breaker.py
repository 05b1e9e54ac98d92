"""Per-route circuit breaker"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, MutableMapping, NamedTuple, Optional

from loguru import logger

from .config import CIRCUIT_BREAKER_COOLDOWN, CIRCUIT_BREAKER_THRESHOLD
from .models import CircuitState, RouteKey


@dataclass
class CircuitRecord:
    """Failure bookkeeping for one route"""

    failures: int = 0
    last_failure_at: Optional[datetime] = None
    pause_until: Optional[datetime] = None


class BreakerDecision(NamedTuple):
    paused: bool
    pause_until: Optional[datetime] = None
    failures: int = 0


class RouteCircuitBreaker:
    """
    Pauses a route after repeated failures.

    CLOSED (no record) -> OPEN (pause_until set) -> CLOSED, either on any
    success or when a check finds the pause expired. There is no half-open
    probing: the first search after expiry is a normal one.
    """

    def __init__(
        self,
        failure_threshold: int = CIRCUIT_BREAKER_THRESHOLD,
        cooldown: float = CIRCUIT_BREAKER_COOLDOWN,
        states: Optional[MutableMapping[RouteKey, CircuitRecord]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Consecutive failures before the route is paused
            cooldown: Seconds a paused route stays paused
            states: Existing per-route records (injected for persistence or tests)
            clock: Source of the current time
        """
        self.failure_threshold = failure_threshold
        self.cooldown = timedelta(seconds=cooldown)
        self.states: MutableMapping[RouteKey, CircuitRecord] = (
            states if states is not None else {}
        )
        self.clock = clock

        logger.debug(
            f"Circuit breaker initialized: threshold={failure_threshold}, "
            f"cooldown={cooldown / 3600:.1f}h"
        )

    def check(self, route: RouteKey) -> BreakerDecision:
        record = self.states.get(route)
        if record is None:
            return BreakerDecision(paused=False)

        if record.pause_until is not None:
            if self.clock() <= record.pause_until:
                return BreakerDecision(True, record.pause_until, record.failures)
            logger.info(f"Circuit for {route} cooled down, closing")
            del self.states[route]
            return BreakerDecision(paused=False)

        return BreakerDecision(paused=False, failures=record.failures)

    def state(self, route: RouteKey) -> CircuitState:
        return CircuitState.OPEN if self.check(route).paused else CircuitState.CLOSED

    def record_failure(self, route: RouteKey) -> CircuitRecord:
        now = self.clock()
        record = self.states.setdefault(route, CircuitRecord())
        record.failures += 1
        record.last_failure_at = now

        if record.failures >= self.failure_threshold:
            record.pause_until = now + self.cooldown
            logger.error(
                f"Circuit for {route} OPEN after {record.failures} failures, "
                f"paused until {record.pause_until:%Y-%m-%d %H:%M}"
            )
        else:
            logger.warning(
                f"Circuit for {route} failure {record.failures}/{self.failure_threshold}"
            )
        return record

    def record_success(self, route: RouteKey) -> None:
        if self.states.pop(route, None) is not None:
            logger.success(f"Circuit for {route} reset after success")
