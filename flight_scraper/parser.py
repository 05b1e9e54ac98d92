"""Flight price extraction from rendered result pages

Page markup of the target site has no stable schema, so extraction is an
ordered cascade of strategies, from the most structured to a plain-text
last resort. Strategies can be added, reordered or replaced without touching
the search orchestration.
"""

import hashlib
import re
from dataclasses import replace
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from bs4 import BeautifulSoup, Tag

from .config import DEFAULT_CURRENCY, MIN_PLAUSIBLE_ITEMS, TEXT_FALLBACK_CAP, PriceBounds
from .models import FlightItem, SearchRequest

KNOWN_AIRLINES = [
    "Iberia", "Air Europa", "LATAM", "Aerolíneas Argentinas", "Level",
    "Norwegian", "TAP", "Lufthansa", "Air France", "KLM", "British Airways",
    "American Airlines", "United", "Delta", "Copa", "Avianca", "Emirates",
    "Qatar Airways", "Turkish Airlines", "Ryanair", "easyJet", "Vueling",
    "JetSMART", "Flybondi", "Gol", "Azul", "Sky Airline", "Aeroméxico",
    "Ethiopian", "Royal Air Maroc", "Swiss", "Austrian", "Brussels Airlines",
    "Condor", "Edelweiss", "Wamos Air", "Plus Ultra",
]

# Longest names first so "Air Europa" wins over a shorter prefix
_AIRLINE_RE = re.compile(
    r"\b(" + "|".join(re.escape(a) for a in sorted(KNOWN_AIRLINES, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)
_AIRLINE_CANONICAL = {a.lower(): a for a in KNOWN_AIRLINES}

CURRENCY_CODES = {
    "€": "EUR",
    "eur": "EUR",
    "euro": "EUR",
    "euros": "EUR",
    "$": "USD",
    "us$": "USD",
    "usd": "USD",
    "£": "GBP",
    "gbp": "GBP",
}

_AMOUNT = r"(?<![\d.,])(?:\d{1,3}(?:[.,]\d{3})+|\d+)(?:[.,]\d{1,2})?"
_PRICE_SUFFIX_RE = re.compile(
    rf"(?P<amount>{_AMOUNT})\s*(?P<cur>€|£|\$|\b(?:EUR|USD|GBP|euros?)\b)",
    re.IGNORECASE,
)
_PRICE_PREFIX_RE = re.compile(
    rf"(?P<cur>€|£|US\$|\$|\b(?:EUR|USD|GBP)\b)\s*(?P<amount>{_AMOUNT})",
    re.IGNORECASE,
)

_TIME_RANGE_RE = re.compile(
    r"(\d{1,2}):(\d{2})\s*([AaPp]\.?\s?[Mm]\.?)?\s*[–—\-]\s*(\d{1,2}):(\d{2})\s*([AaPp]\.?\s?[Mm]\.?)?"
)
_DURATION_RE = re.compile(
    r"(\d{1,2})\s*(?:h|hr|hrs|horas?|hours?)\b\.?\s*(?:(\d{1,2})\s*(?:min|m)\b)?",
    re.IGNORECASE,
)
_STOPS_RE = re.compile(r"(\d+)\s*(?:escalas?|stops?|paradas?)\b", re.IGNORECASE)
_DIRECT_RE = re.compile(r"\b(?:directo|nonstop|non-stop|sin\s+escalas?|direct)\b", re.IGNORECASE)

# Label shapes that only itineraries have: a clock time, a duration or stop info
_ITINERARY_SHAPE_RES = (
    re.compile(r"\d{1,2}:\d{2}"),
    re.compile(r"h.*min", re.IGNORECASE),
    re.compile(r"escala|stop|directo|nonstop", re.IGNORECASE),
)

_INVISIBLE_TAGS = ("script", "style", "noscript", "template")


def parse_amount(raw: str) -> Optional[float]:
    """
    Parse a localized amount string.

    Handles ``1.234,56`` (European), ``1,234.56`` (US), ``1.234`` and
    ``1,234`` as thousands, and ``620,50`` as decimals.
    """
    cleaned = re.sub(r"[^\d.,]", "", raw or "")
    if not cleaned:
        return None

    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        parts = cleaned.split(",")
        if len(parts) == 2 and len(parts[1]) <= 2:
            cleaned = cleaned.replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "." in cleaned:
        parts = cleaned.split(".")
        if len(parts) > 2 or len(parts[-1]) == 3:
            cleaned = cleaned.replace(".", "")

    try:
        return float(cleaned)
    except ValueError:
        return None


def find_prices(text: str) -> List[Tuple[float, Optional[str]]]:
    """All (amount, currency code) pairs in text, in order of appearance"""
    matches = []
    for regex in (_PRICE_SUFFIX_RE, _PRICE_PREFIX_RE):
        for m in regex.finditer(text or ""):
            matches.append((m.start(), m.end(), m.group("amount"), m.group("cur")))

    found = []
    last_end = -1
    for start, end, amount, cur in sorted(matches):
        # Suffix and prefix forms can overlap on "€ 620 €"-like text
        if start < last_end:
            continue
        value = parse_amount(amount)
        if value is not None:
            found.append((value, CURRENCY_CODES.get(cur.lower())))
            last_end = end
    return found


def _to_hhmm(hour: str, minute: str, meridiem: Optional[str]) -> str:
    h = int(hour)
    if meridiem:
        pm = meridiem.lower().startswith("p")
        h = h % 12 + (12 if pm else 0)
    return f"{h:02d}:{minute}"


def parse_itinerary(text: str) -> dict:
    """Best-effort airline, schedule, duration and stop count from free text"""
    airline = _AIRLINE_RE.search(text)
    times = _TIME_RANGE_RE.search(text)
    duration = _DURATION_RE.search(text)
    stops_match = _STOPS_RE.search(text)

    if _DIRECT_RE.search(text):
        stops = 0
    elif stops_match:
        stops = int(stops_match.group(1))
    else:
        stops = None

    return {
        "airline": _AIRLINE_CANONICAL[airline.group(1).lower()] if airline else None,
        "departure_time": _to_hhmm(*times.group(1, 2, 3)) if times else None,
        "arrival_time": _to_hhmm(*times.group(4, 5, 6)) if times else None,
        "duration_min": (
            int(duration.group(1)) * 60 + int(duration.group(2) or 0) if duration else None
        ),
        "stops": stops,
    }


def looks_like_itinerary(text: str) -> bool:
    return any(r.search(text) for r in _ITINERARY_SHAPE_RES)


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def fingerprint(request: SearchRequest, item: FlightItem) -> str:
    """Content hash used downstream for idempotent storage"""
    raw = "|".join(
        [
            request.origin,
            request.destination,
            request.date,
            _format_number(item.price),
            item.airline or "",
            "" if item.stops is None else str(item.stops),
            str(item.duration_min or ""),
        ]
    )
    return hashlib.sha256(raw.encode()).hexdigest()[:16]


class ExtractionStrategy:
    """
    One way of turning a parsed page into flight items.

    Subclasses provide the candidate texts; price-bounds filtering and
    ``(price, airline)`` dedup are shared so every strategy enforces them.
    """

    name = "base"

    def __init__(self, bounds: PriceBounds, currency: str = DEFAULT_CURRENCY):
        self.bounds = bounds
        self.currency = currency

    def texts(self, soup: BeautifulSoup) -> Iterable[str]:
        raise NotImplementedError

    def parse(self, text: str) -> Iterator[FlightItem]:
        prices = find_prices(text)
        if not prices:
            return
        price, currency = prices[0]
        yield FlightItem(
            price=price,
            currency=currency or self.currency,
            source=self.name,
            **parse_itinerary(text),
        )

    def extract(self, soup: BeautifulSoup) -> List[FlightItem]:
        items = []
        seen: Set[Tuple[float, Optional[str]]] = set()
        for text in self.texts(soup):
            for item in self.parse(text):
                if not self.bounds.contains(item.price):
                    continue
                key = (item.price, item.airline)
                if key in seen:
                    continue
                seen.add(key)
                items.append(item)
        return items


class ListContainerStrategy(ExtractionStrategy):
    """Result lists: the first list whose entries carry prices"""

    name = "list-items"
    min_priced_entries = 2

    @staticmethod
    def _entries(container: Tag) -> List[Tag]:
        return [
            child
            for child in container.find_all(True, recursive=False)
            if child.name == "li" or child.get("role") == "listitem"
        ]

    def texts(self, soup: BeautifulSoup) -> Iterable[str]:
        containers = soup.find_all("ul") + soup.find_all(attrs={"role": "list"})
        for container in containers:
            texts = [e.get_text(" ", strip=True) for e in self._entries(container)]
            priced = [t for t in texts if find_prices(t)]
            if len(priced) >= self.min_priced_entries:
                return priced
        return []


class RichLabelStrategy(ExtractionStrategy):
    """Accessibility labels that read like itineraries"""

    name = "aria-labels"

    def texts(self, soup: BeautifulSoup) -> Iterable[str]:
        for el in soup.find_all(attrs={"aria-label": True}):
            label = el.get("aria-label") or ""
            if looks_like_itinerary(label):
                yield label


class BroadLabelStrategy(ExtractionStrategy):
    """Any accessibility label with a price; lower precision"""

    name = "aria-broad"

    def texts(self, soup: BeautifulSoup) -> Iterable[str]:
        for el in soup.find_all(attrs={"aria-label": True}):
            yield el.get("aria-label") or ""


class TextFallbackStrategy(ExtractionStrategy):
    """Price pattern over the whole visible text, capped"""

    name = "body-text"

    def __init__(self, bounds: PriceBounds, currency: str = DEFAULT_CURRENCY, cap: int = TEXT_FALLBACK_CAP):
        super().__init__(bounds, currency)
        self.cap = cap

    def texts(self, soup: BeautifulSoup) -> Iterable[str]:
        yield soup.get_text(" ", strip=True)

    def parse(self, text: str) -> Iterator[FlightItem]:
        for price, currency in find_prices(text)[: self.cap]:
            yield FlightItem(price=price, currency=currency or self.currency, source=self.name)


def default_strategies(bounds: PriceBounds, currency: str) -> List[ExtractionStrategy]:
    return [
        ListContainerStrategy(bounds, currency),
        RichLabelStrategy(bounds, currency),
        BroadLabelStrategy(bounds, currency),
        TextFallbackStrategy(bounds, currency),
    ]


class PageContentExtractor:
    """
    Run extraction strategies in priority order.

    Stops at the first strategy yielding at least ``min_items`` distinct
    prices. If none does, the first non-empty result wins. Output is sorted
    ascending by price.
    """

    def __init__(
        self,
        strategies: Optional[Sequence[ExtractionStrategy]] = None,
        bounds: Optional[PriceBounds] = None,
        currency: str = DEFAULT_CURRENCY,
        min_items: int = MIN_PLAUSIBLE_ITEMS,
    ):
        self.bounds = bounds or PriceBounds()
        self.strategies = list(strategies) if strategies else default_strategies(self.bounds, currency)
        self.min_items = min_items

    def extract(
        self,
        html: str,
        request: Optional[SearchRequest] = None,
        link: Optional[str] = None,
    ) -> List[FlightItem]:
        soup = BeautifulSoup(html or "", "lxml")
        for tag in soup.find_all(_INVISIBLE_TAGS):
            tag.decompose()

        chosen: List[FlightItem] = []
        fallback: List[FlightItem] = []
        for strategy in self.strategies:
            items = strategy.extract(soup)
            if len({i.price for i in items}) >= self.min_items:
                chosen = items
                break
            if items and not fallback:
                fallback = items
        else:
            chosen = fallback

        chosen = sorted(chosen, key=lambda i: i.price)
        if request is not None:
            chosen = [replace(i, normalized_hash=fingerprint(request, i), link=link) for i in chosen]
        return chosen
