"""Data models and enums for the flight scraper"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional


class CircuitState(Enum):
    """Circuit breaker states"""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Route paused until cooldown expires


class ErrorType(Enum):
    """Error categories for different handling strategies"""

    TRANSIENT = "transient"  # Backoff and retry
    BLOCKED = "blocked"  # Challenge detected, never retry
    POLICY = "policy"  # Self-imposed limit, no network call


class SearchStatus(Enum):
    """Terminal status of one route search"""

    OK = "ok"
    NO_RESULTS = "no-results"
    BLOCKED = "blocked"
    ERROR = "error"


class RouteKey(NamedTuple):
    """Origin/destination pair identifying a monitored corridor"""

    origin: str
    destination: str

    def __str__(self) -> str:
        return f"{self.origin}-{self.destination}"


@dataclass(frozen=True)
class SearchRequest:
    """Immutable input to one route search"""

    origin: str
    destination: str
    date: str  # YYYY-MM-DD

    def __post_init__(self):
        object.__setattr__(self, "origin", self.origin.strip().upper())
        object.__setattr__(self, "destination", self.destination.strip().upper())

    @property
    def route_key(self) -> RouteKey:
        return RouteKey(self.origin, self.destination)

    @property
    def cache_key(self) -> str:
        return f"{self.route_key}-{self.date}"


@dataclass(frozen=True)
class FlightItem:
    """Normalized price/itinerary record"""

    price: float
    currency: str
    source: str
    airline: Optional[str] = None
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None
    duration_min: Optional[int] = None
    stops: Optional[int] = None
    normalized_hash: str = ""
    link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "price": self.price,
            "currency": self.currency,
            "airline": self.airline,
            "departureTime": self.departure_time,
            "arrivalTime": self.arrival_time,
            "durationMin": self.duration_min,
            "stops": self.stops,
            "source": self.source,
            "normalizedHash": self.normalized_hash,
            "link": self.link,
        }


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Diagnostics:
    """Timing and failure details attached to every ScrapeResult"""

    route: str
    date: str
    started_at: datetime = field(default_factory=utcnow)
    ended_at: Optional[datetime] = None
    duration_ms: int = 0
    retries: int = 0
    blocked: bool = False
    blocked_reason: Optional[str] = None
    policy: Optional[str] = None  # circuit_open / rate_limited
    error: Optional[str] = None
    url: Optional[str] = None
    result_count: int = 0
    strategy: Optional[str] = None
    cache_hit: bool = False
    snapshot: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["ended_at"] = self.ended_at.isoformat() if self.ended_at else None
        return data


@dataclass
class ScrapeResult:
    """Outcome of one route search"""

    request: SearchRequest
    diagnostics: Diagnostics
    found: bool = False
    items: List[FlightItem] = field(default_factory=list)

    @classmethod
    def start(cls, request: SearchRequest) -> "ScrapeResult":
        return cls(
            request=request,
            diagnostics=Diagnostics(route=str(request.route_key), date=request.date),
        )

    @property
    def status(self) -> SearchStatus:
        if self.diagnostics.blocked:
            return SearchStatus.BLOCKED
        if self.found:
            return SearchStatus.OK
        if self.diagnostics.error:
            return SearchStatus.ERROR
        return SearchStatus.NO_RESULTS

    @property
    def min_price(self) -> Optional[float]:
        return self.items[0].price if self.items else None

    @property
    def max_price(self) -> Optional[float]:
        return self.items[-1].price if self.items else None

    def finalize(self) -> "ScrapeResult":
        """Stamp end time and duration; returns self for chaining"""
        diag = self.diagnostics
        diag.ended_at = utcnow()
        diag.duration_ms = int((diag.ended_at - diag.started_at).total_seconds() * 1000)
        diag.result_count = len(self.items)
        return self


@dataclass(frozen=True)
class CacheEntry:
    key: str
    result: ScrapeResult
    written_at: datetime


@dataclass
class RunSummary:
    """Aggregate of one batch execution"""

    run_id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_ms: int = 0
    results: List[ScrapeResult] = field(default_factory=list)

    def _count(self, status: SearchStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def found_count(self) -> int:
        return sum(1 for r in self.results if r.found)

    @property
    def blocked_count(self) -> int:
        return self._count(SearchStatus.BLOCKED)

    @property
    def error_count(self) -> int:
        return self._count(SearchStatus.ERROR)

    @property
    def no_results_count(self) -> int:
        return self._count(SearchStatus.NO_RESULTS)

    def to_report(self, sample_size: int = 3) -> Dict[str, Any]:
        """Machine-readable run document"""
        routes = []
        for result in self.results:
            routes.append(
                {
                    "route": str(result.request.route_key),
                    "date": result.request.date,
                    "status": result.status.value,
                    "itemCount": len(result.items),
                    "minPrice": result.min_price,
                    "maxPrice": result.max_price,
                    "sampleItems": [i.to_dict() for i in result.items[:sample_size]],
                    "diagnostics": result.diagnostics.to_dict(),
                }
            )

        return {
            "runId": self.run_id,
            "startedAt": self.started_at.isoformat(),
            "endedAt": self.ended_at.isoformat() if self.ended_at else None,
            "durationMs": self.duration_ms,
            "routes": routes,
            "summary": {
                "totalRoutes": len(routes),
                "ok": self._count(SearchStatus.OK),
                "noResults": self.no_results_count,
                "blocked": self.blocked_count,
                "errors": self.error_count,
            },
        }
