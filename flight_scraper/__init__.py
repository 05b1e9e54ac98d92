"""Flight Price Scraper
Polite, resilient flight price collection through a real browser
"""

__version__ = "0.1.0"

from .batch import BatchOrchestrator
from .block_detector import BlockDetector
from .browser import BrowserSession, build_search_url
from .cache import ResultCache
from .circuit_breaker import RouteCircuitBreaker
from .client import FlightSearchClient
from .config import ScraperConfig
from .exceptions import (
    BlockedError,
    CircuitOpenError,
    RateLimitError,
    RetriesExhaustedError,
    ScraperError,
)
from .models import (
    CircuitState,
    ErrorType,
    FlightItem,
    RunSummary,
    ScrapeResult,
    SearchRequest,
    SearchStatus,
)
from .parser import PageContentExtractor
from .rate_limiter import SearchRateLimiter
from .retry import RetryController
from .date_utils import build_requests, parse_date_list, parse_date_or_range, parse_route_spec

__all__ = [
    "__version__",
    "BatchOrchestrator",
    "BlockDetector",
    "BrowserSession",
    "build_search_url",
    "ResultCache",
    "RouteCircuitBreaker",
    "FlightSearchClient",
    "ScraperConfig",
    "BlockedError",
    "CircuitOpenError",
    "RateLimitError",
    "RetriesExhaustedError",
    "ScraperError",
    "CircuitState",
    "ErrorType",
    "FlightItem",
    "RunSummary",
    "ScrapeResult",
    "SearchRequest",
    "SearchStatus",
    "PageContentExtractor",
    "SearchRateLimiter",
    "RetryController",
    "build_requests",
    "parse_date_list",
    "parse_date_or_range",
    "parse_route_spec",
]
