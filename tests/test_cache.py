from flight_scraper.cache import ResultCache
from flight_scraper.models import FlightItem, ScrapeResult, SearchRequest


def _result(price=620.0):
    result = ScrapeResult.start(SearchRequest("MAD", "EZE", "2026-03-28"))
    result.items = [FlightItem(price=price, currency="EUR", source="list-items")]
    result.found = True
    return result


def test_hit_within_ttl_returns_copy(clock):
    cache = ResultCache(ttl=7200, clock=clock)
    original = _result()
    cache.set("MAD-EZE-2026-03-28", original)

    clock.advance(minutes=119)
    hit = cache.get("MAD-EZE-2026-03-28")
    assert hit is not None
    assert hit is not original
    assert [i.price for i in hit.items] == [620.0]

    # Mutating the copy leaves the cached entry alone
    hit.items.clear()
    assert len(cache.get("MAD-EZE-2026-03-28").items) == 1


def test_expires_at_ttl(clock):
    cache = ResultCache(ttl=7200, clock=clock)
    cache.set("k", _result())
    clock.advance(hours=2)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_sweep_removes_only_expired(clock):
    cache = ResultCache(ttl=60, clock=clock)
    cache.set("old", _result())
    clock.advance(seconds=30)
    cache.set("new", _result())
    clock.advance(seconds=40)

    assert cache.sweep() == 1
    assert cache.get("new") is not None
    assert cache.get("old") is None

    cache.clear()
    assert len(cache) == 0


def test_miss():
    assert ResultCache().get("nope") is None
