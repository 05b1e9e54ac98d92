from pathlib import Path

import pytest

from flight_scraper.browser import build_search_url
from flight_scraper.config import DelayRange, ScraperConfig
from flight_scraper.models import SearchRequest


def test_defaults():
    config = ScraperConfig()
    assert config.headless is True
    assert config.currency == "EUR"
    assert config.locale == "es"
    assert config.max_retries == 2
    assert config.circuit_breaker.failure_threshold == 3
    assert config.circuit_breaker.cooldown == 24 * 3600
    assert config.rate_limit.max_per_hour == 10
    assert config.rate_limit.max_per_day == 30
    assert config.cache_ttl == 7200
    assert (config.action_delay.min, config.action_delay.max) == (1.5, 4.0)
    assert (config.search_delay.min, config.search_delay.max) == (8.0, 15.0)


def test_from_env(monkeypatch):
    monkeypatch.setenv("HEADLESS", "false")
    monkeypatch.setenv("CURRENCY", "usd")
    monkeypatch.setenv("TIMEOUT", "30000")
    monkeypatch.setenv("CB_PAUSE_HOURS", "2")
    monkeypatch.setenv("DAILY_BUDGET", "5")

    config = ScraperConfig.from_env(locale="en", snapshot_dir=None)

    assert config.headless is False
    assert config.currency == "USD"
    assert config.locale == "en"
    assert config.navigation_timeout == 30.0
    assert config.circuit_breaker.cooldown == 7200
    assert config.circuit_breaker.failure_threshold == 3
    assert config.rate_limit.max_per_day == 5
    assert config.rate_limit.max_per_hour == 10
    assert config.snapshot_dir is None


def test_invalid_values_rejected():
    with pytest.raises(ValueError):
        DelayRange(5.0, 1.0)
    with pytest.raises(ValueError):
        ScraperConfig(max_retries=0)


def test_search_url():
    url = build_search_url(SearchRequest("MAD", "EZE", "2026-03-28"), currency="EUR", locale="es")
    assert url.startswith("https://www.google.com/travel/flights?")
    assert "q=Flights%20from%20MAD%20to%20EZE%20on%202026-03-28" in url
    assert "curr=EUR" in url
    assert "hl=es" in url


def test_snapshot_dir_override(tmp_path: Path):
    assert ScraperConfig.from_env(snapshot_dir=tmp_path).snapshot_dir == tmp_path
