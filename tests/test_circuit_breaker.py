from datetime import timedelta

from flight_scraper.circuit_breaker import RouteCircuitBreaker
from flight_scraper.models import CircuitState, RouteKey

MAD_EZE = RouteKey("MAD", "EZE")
BCN_EZE = RouteKey("BCN", "EZE")


def test_opens_after_threshold_failures(clock):
    breaker = RouteCircuitBreaker(failure_threshold=3, cooldown=3600, clock=clock)

    breaker.record_failure(MAD_EZE)
    breaker.record_failure(MAD_EZE)
    assert breaker.state(MAD_EZE) is CircuitState.CLOSED
    assert breaker.check(MAD_EZE).failures == 2

    breaker.record_failure(MAD_EZE)
    decision = breaker.check(MAD_EZE)
    assert decision.paused
    assert decision.pause_until == clock.now + timedelta(hours=1)
    assert breaker.state(MAD_EZE) is CircuitState.OPEN


def test_routes_are_independent(clock):
    breaker = RouteCircuitBreaker(failure_threshold=1, cooldown=3600, clock=clock)
    breaker.record_failure(MAD_EZE)
    assert breaker.check(MAD_EZE).paused
    assert not breaker.check(BCN_EZE).paused


def test_closes_lazily_after_cooldown(clock):
    breaker = RouteCircuitBreaker(failure_threshold=1, cooldown=3600, clock=clock)
    breaker.record_failure(MAD_EZE)

    clock.advance(minutes=59)
    assert breaker.check(MAD_EZE).paused

    clock.advance(minutes=1, seconds=1)
    decision = breaker.check(MAD_EZE)
    assert not decision.paused
    assert decision.failures == 0
    assert MAD_EZE not in breaker.states


def test_success_resets_failure_count(clock):
    breaker = RouteCircuitBreaker(failure_threshold=3, cooldown=3600, clock=clock)
    breaker.record_failure(MAD_EZE)
    breaker.record_failure(MAD_EZE)
    breaker.record_success(MAD_EZE)

    # Counter starts over: two more failures do not trip it
    breaker.record_failure(MAD_EZE)
    breaker.record_failure(MAD_EZE)
    assert not breaker.check(MAD_EZE).paused


def test_still_paused_at_exact_pause_until(clock):
    breaker = RouteCircuitBreaker(failure_threshold=1, cooldown=3600, clock=clock)
    breaker.record_failure(MAD_EZE)
    pause_until = breaker.check(MAD_EZE).pause_until

    clock.now = pause_until
    assert breaker.check(MAD_EZE).paused
    assert MAD_EZE in breaker.states

    clock.advance(seconds=1)
    assert not breaker.check(MAD_EZE).paused
