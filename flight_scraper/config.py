"""Configuration constants and runtime settings for the flight scraper"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# Target site
BASE_URL = "https://www.google.com/travel/flights"
DEFAULT_CURRENCY = "EUR"
DEFAULT_LOCALE = "es"

# Browser
DEFAULT_HEADLESS = True
DEFAULT_NAVIGATION_TIMEOUT = 60.0  # Seconds
RESULTS_WAIT_TIMEOUT = 20.0  # Seconds to wait for prices to render
VIEWPORT = {"width": 1366, "height": 768}

# Retry configuration
MAX_RETRIES = 2
INITIAL_BACKOFF = 3.0  # base * 2^(attempt-1)
BACKOFF_JITTER = 2.0  # uniform(0, jitter) added on top

# Human-like pacing (seconds)
ACTION_DELAY = (1.5, 4.0)  # between UI actions
SEARCH_DELAY = (8.0, 15.0)  # between route searches

# Circuit breaker configuration
CIRCUIT_BREAKER_THRESHOLD = 3  # Failures before pausing a route
CIRCUIT_BREAKER_COOLDOWN = 24 * 3600  # 24 hours

# Rate limiting defaults
MAX_SEARCHES_PER_HOUR = 10
MAX_SEARCHES_PER_DAY = 30

# Result cache
CACHE_TTL = 2 * 3600  # 2 hours

# Extraction
MIN_PRICE = 50.0
MAX_PRICE = 10000.0
MIN_PLAUSIBLE_ITEMS = 2  # Distinct prices needed to accept a strategy
TEXT_FALLBACK_CAP = 15
REPORT_SAMPLE_SIZE = 3

DEFAULT_OUTPUT_DIR = Path("./output")


@dataclass(frozen=True)
class DelayRange:
    """Bounds (seconds) for a randomized delay"""

    min: float
    max: float

    def __post_init__(self):
        if self.min < 0 or self.max < self.min:
            raise ValueError(f"Invalid delay range: {self.min}..{self.max}")


@dataclass(frozen=True)
class PriceBounds:
    """Plausible price window; anything outside is a scraping artifact"""

    min: float = MIN_PRICE
    max: float = MAX_PRICE

    def contains(self, price: float) -> bool:
        return self.min <= price <= self.max


@dataclass(frozen=True)
class CircuitBreakerSettings:
    failure_threshold: int = CIRCUIT_BREAKER_THRESHOLD
    cooldown: float = CIRCUIT_BREAKER_COOLDOWN


@dataclass(frozen=True)
class RateLimitSettings:
    max_per_hour: int = MAX_SEARCHES_PER_HOUR
    max_per_day: int = MAX_SEARCHES_PER_DAY


@dataclass
class ScraperConfig:
    """
    Runtime configuration for a scraping run.

    Every field has a conservative default; ``from_env`` applies the
    environment overrides understood by the scraper.
    """

    headless: bool = DEFAULT_HEADLESS
    currency: str = DEFAULT_CURRENCY
    locale: str = DEFAULT_LOCALE
    navigation_timeout: float = DEFAULT_NAVIGATION_TIMEOUT
    results_timeout: float = RESULTS_WAIT_TIMEOUT
    max_retries: int = MAX_RETRIES
    backoff_base: float = INITIAL_BACKOFF
    backoff_jitter: float = BACKOFF_JITTER
    action_delay: DelayRange = field(default_factory=lambda: DelayRange(*ACTION_DELAY))
    search_delay: DelayRange = field(default_factory=lambda: DelayRange(*SEARCH_DELAY))
    circuit_breaker: CircuitBreakerSettings = field(default_factory=CircuitBreakerSettings)
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)
    cache_ttl: float = CACHE_TTL
    price_bounds: PriceBounds = field(default_factory=PriceBounds)
    min_items: int = MIN_PLAUSIBLE_ITEMS
    snapshot_dir: Optional[Path] = None

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")

    @classmethod
    def from_env(cls, **overrides) -> "ScraperConfig":
        """Build a config from environment variables, then apply overrides"""
        env = os.environ
        values = {}

        if "HEADLESS" in env:
            values["headless"] = env["HEADLESS"].lower() in ("1", "true", "yes")
        if "CURRENCY" in env:
            values["currency"] = env["CURRENCY"].upper()
        if "LOCALE" in env:
            values["locale"] = env["LOCALE"]
        if "TIMEOUT" in env:
            # Milliseconds, as in the browser APIs
            values["navigation_timeout"] = int(env["TIMEOUT"]) / 1000

        cb_threshold = env.get("CB_THRESHOLD")
        cb_hours = env.get("CB_PAUSE_HOURS")
        if cb_threshold or cb_hours:
            values["circuit_breaker"] = CircuitBreakerSettings(
                failure_threshold=int(cb_threshold or CIRCUIT_BREAKER_THRESHOLD),
                cooldown=float(cb_hours) * 3600 if cb_hours else CIRCUIT_BREAKER_COOLDOWN,
            )

        per_hour = env.get("MAX_PER_HOUR")
        per_day = env.get("DAILY_BUDGET")
        if per_hour or per_day:
            values["rate_limit"] = RateLimitSettings(
                max_per_hour=int(per_hour or MAX_SEARCHES_PER_HOUR),
                max_per_day=int(per_day or MAX_SEARCHES_PER_DAY),
            )

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
