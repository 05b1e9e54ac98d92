"""Browser session and page handling (Camoufox / Playwright API)"""

from typing import NamedTuple, Optional
from urllib.parse import quote, urlencode

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import (
    ACTION_DELAY,
    BASE_URL,
    DEFAULT_CURRENCY,
    DEFAULT_HEADLESS,
    DEFAULT_LOCALE,
    DEFAULT_NAVIGATION_TIMEOUT,
    RESULTS_WAIT_TIMEOUT,
    VIEWPORT,
    DelayRange,
    ScraperConfig,
)
from .models import SearchRequest
from .pacing import DelayPolicy, Sleeper, real_sleep, uniform_delay

CONSENT_SELECTORS = [
    'button[aria-label*="ceptar"]',
    'button[aria-label*="Accept"]',
    "button[id*='accept']",
    '[aria-label*="Consent"]',
    'button[jsname="b3VHJd"]',
    'button:has-text("Aceptar todo")',
    'button:has-text("Accept all")',
]

# Prices rendered in the body text, or result list entries present
RESULTS_READY_JS = """
() => /\\d{3,4}\\s*(€|EUR|\\$|£)/.test(document.body ? document.body.innerText : '')
      || document.querySelector('[role="listitem"]') !== null
"""


class PageCapture(NamedTuple):
    """The page as it was seen at the end of an attempt"""

    html: str
    url: str
    screenshot: Optional[bytes] = None


def build_search_url(
    request: SearchRequest,
    currency: str = DEFAULT_CURRENCY,
    locale: str = DEFAULT_LOCALE,
) -> str:
    """Natural-language search URL for one route and date"""
    query = f"Flights from {request.origin} to {request.destination} on {request.date}"
    params = {"q": query, "curr": currency, "hl": locale}
    return f"{BASE_URL}?{urlencode(params, quote_via=quote)}"


class BrowserPage:
    """A single tab, opened and closed by one search attempt"""

    def __init__(
        self,
        page,
        navigation_timeout: float = DEFAULT_NAVIGATION_TIMEOUT,
        results_timeout: float = RESULTS_WAIT_TIMEOUT,
        action_delay: Optional[DelayPolicy] = None,
        sleep: Sleeper = real_sleep,
    ):
        self.page = page
        self.navigation_timeout = navigation_timeout
        self.results_timeout = results_timeout
        self.action_delay = action_delay or uniform_delay(DelayRange(*ACTION_DELAY))
        self.sleep = sleep

    async def _pause(self) -> None:
        await self.sleep(self.action_delay())

    @property
    def url(self) -> str:
        return self.page.url

    async def goto(self, url: str) -> None:
        await self.page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=self.navigation_timeout * 1000,
        )
        await self._pause()

    async def dismiss_consent(self) -> bool:
        """Click a cookie/consent button if one is showing"""
        for selector in CONSENT_SELECTORS:
            try:
                button = await self.page.query_selector(selector)
                if button and await button.is_visible():
                    logger.debug(f"   Found consent button: {selector}")
                    await button.click()
                    await self._pause()
                    return True
            except PlaywrightError:
                continue
        return False

    async def wait_for_results(self) -> bool:
        """Wait for prices to render; a timeout is not an error"""
        await self.scroll(400)
        try:
            await self.page.wait_for_function(
                RESULTS_READY_JS, timeout=self.results_timeout * 1000
            )
        except PlaywrightTimeoutError:
            logger.debug("Results did not render in time, extracting what is there")
            return False
        await self._pause()
        return True

    async def scroll(self, y: int) -> None:
        await self.page.evaluate(f"window.scrollTo(0, {int(y)})")
        await self._pause()

    async def capture(self, screenshot: bool = False) -> PageCapture:
        html = await self.page.content()
        image = await self.page.screenshot(full_page=True) if screenshot else None
        return PageCapture(html=html, url=self.page.url, screenshot=image)

    async def close(self) -> None:
        try:
            await self.page.close()
        except PlaywrightError as e:
            logger.debug(f"Page close failed: {e}")


class BrowserSession:
    """
    One Camoufox browser for the lifetime of a batch run.

    Use as an async context manager; each search opens its own page with
    ``new_page()`` and closes it when done.
    """

    def __init__(
        self,
        headless: bool = DEFAULT_HEADLESS,
        locale: str = DEFAULT_LOCALE,
        navigation_timeout: float = DEFAULT_NAVIGATION_TIMEOUT,
        results_timeout: float = RESULTS_WAIT_TIMEOUT,
        action_delay: Optional[DelayPolicy] = None,
        sleep: Sleeper = real_sleep,
    ):
        self.headless = headless
        self.locale = locale
        self.navigation_timeout = navigation_timeout
        self.results_timeout = results_timeout
        self.action_delay = action_delay
        self.sleep = sleep
        self._camoufox = None
        self.browser = None

    @classmethod
    def from_config(cls, config: ScraperConfig, sleep: Sleeper = real_sleep) -> "BrowserSession":
        return cls(
            headless=config.headless,
            locale=config.locale,
            navigation_timeout=config.navigation_timeout,
            results_timeout=config.results_timeout,
            action_delay=uniform_delay(config.action_delay),
            sleep=sleep,
        )

    async def __aenter__(self) -> "BrowserSession":
        from camoufox.async_api import AsyncCamoufox

        self._camoufox = AsyncCamoufox(headless=self.headless)
        self.browser = await self._camoufox.__aenter__()
        logger.info(f"🦊 Browser launched (headless={self.headless})")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._camoufox is not None:
            await self._camoufox.__aexit__(exc_type, exc, tb)
            self._camoufox = None
            self.browser = None
            logger.info("Browser closed")

    async def new_page(self) -> BrowserPage:
        if self.browser is None:
            raise RuntimeError("BrowserSession is not open")
        page = await self.browser.new_page(viewport=VIEWPORT)
        await page.set_extra_http_headers(
            {"Accept-Language": f"{self.locale},en;q=0.8"}
        )
        return BrowserPage(
            page,
            navigation_timeout=self.navigation_timeout,
            results_timeout=self.results_timeout,
            action_delay=self.action_delay,
            sleep=self.sleep,
        )
