from datetime import datetime, timedelta
from typing import List, Optional

import pytest

from flight_scraper.browser import PageCapture

RESULTS_URL = "https://www.google.com/travel/flights/search?tfs=abc"

RESULTS_HTML = """
<html><head><title>Vuelos</title><script>var price = "9999 €";</script></head>
<body>
  <ul>
    <li>Iberia 10:30 – 22:15 12 h 45 min Directo 620 €</li>
    <li>Air Europa 11:05 – 23:50 12 h 45 min 1 escala 780 €</li>
    <li>Iberia 10:30 – 22:15 12 h 45 min Directo 620 €</li>
    <li>LATAM 09:00 – 21:00 12 h 0 min Directo 12 €</li>
  </ul>
</body></html>
"""

EMPTY_HTML = "<html><body><h1>No hay vuelos</h1><p>Prueba con otras fechas.</p></body></html>"

CAPTCHA_HTML = """
<html><body>
  <iframe src="https://www.google.com/recaptcha/api2/anchor?k=xyz"></iframe>
</body></html>
"""

UNUSUAL_TRAFFIC_HTML = """
<html><body><p>Our systems have detected unusual traffic from your computer network.</p></body></html>
"""


class Clock:
    """Manually advanced clock for time-dependent components"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 3, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSleep:
    """Instant sleep that remembers requested durations"""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakePage:
    """Stands in for BrowserPage; ``behavior`` is HTML to serve or an exception to raise"""

    def __init__(self, behavior, url: str = RESULTS_URL):
        self.behavior = behavior
        self._url = url
        self.visited: List[str] = []
        self.closed = False

    @property
    def url(self) -> str:
        return self._url

    async def goto(self, url: str) -> None:
        self.visited.append(url)
        if isinstance(self.behavior, BaseException):
            raise self.behavior

    async def dismiss_consent(self) -> bool:
        return False

    async def wait_for_results(self) -> bool:
        return True

    async def scroll(self, y: int) -> None:
        pass

    async def capture(self, screenshot: bool = False) -> PageCapture:
        return PageCapture(
            html=self.behavior,
            url=self._url,
            screenshot=b"\x89PNG fake" if screenshot else None,
        )

    async def close(self) -> None:
        self.closed = True


class FakeSession:
    """
    Stands in for BrowserSession.

    Each ``new_page()`` consumes the next behavior; the last one repeats.
    """

    def __init__(self, *behaviors, url: str = RESULTS_URL, fail_on_enter: Optional[Exception] = None):
        self.behaviors = list(behaviors) or [RESULTS_HTML]
        self.url = url
        self.fail_on_enter = fail_on_enter
        self.pages: List[FakePage] = []
        self.entered = False
        self.exited = False

    async def __aenter__(self) -> "FakeSession":
        if self.fail_on_enter is not None:
            raise self.fail_on_enter
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.exited = True

    @property
    def new_page_calls(self) -> int:
        return len(self.pages)

    async def new_page(self) -> FakePage:
        index = min(len(self.pages), len(self.behaviors) - 1)
        page = FakePage(self.behaviors[index], url=self.url)
        self.pages.append(page)
        return page


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def sleep():
    return RecordingSleep()
