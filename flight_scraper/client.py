"""Flight search client: policy checks, retried browser attempts, extraction"""

from typing import Optional

from loguru import logger

from .block_detector import BlockDetector
from .browser import BrowserPage, PageCapture, build_search_url
from .cache import ResultCache
from .circuit_breaker import RouteCircuitBreaker
from .config import ScraperConfig
from .exceptions import (
    BlockedError,
    CircuitOpenError,
    PolicyDenied,
    RateLimitError,
    RetriesExhaustedError,
)
from .models import ScrapeResult, SearchRequest, utcnow
from .pacing import Sleeper, exponential_backoff, real_sleep
from .parser import PageContentExtractor
from .rate_limiter import SearchRateLimiter
from .retry import RetryController
from .storage import save_snapshot


class FlightSearchClient:
    """
    Resilient search of one route/date on top of a shared browser session.

    Order of checks for every search:
    - cache hit: return the cached copy, no network
    - circuit breaker open for the route: report blocked (circuit_open)
    - rate limit exhausted: report blocked (rate_limited)
    - otherwise: browser attempts under the retry controller, block
      detection on every page, then the extraction cascade

    The session passed to ``search`` only needs ``new_page()`` returning an
    object with the BrowserPage interface.
    """

    def __init__(
        self,
        config: Optional[ScraperConfig] = None,
        rate_limiter: Optional[SearchRateLimiter] = None,
        breaker: Optional[RouteCircuitBreaker] = None,
        cache: Optional[ResultCache] = None,
        extractor: Optional[PageContentExtractor] = None,
        detector: Optional[BlockDetector] = None,
        retry: Optional[RetryController] = None,
        sleep: Sleeper = real_sleep,
    ):
        """
        Initialize search client.

        Args:
            config: Scraper configuration (defaults apply when omitted)
            rate_limiter: Shared hourly/daily budget
            breaker: Per-route circuit breaker
            cache: Result cache
            extractor: Extraction cascade
            detector: Challenge/block page detector
            retry: Retry controller wrapping each attempt
            sleep: Awaitable sleep, injectable for tests
        """
        self.config = config or ScraperConfig()
        cfg = self.config

        self.rate_limiter = rate_limiter or SearchRateLimiter(
            max_per_hour=cfg.rate_limit.max_per_hour,
            max_per_day=cfg.rate_limit.max_per_day,
        )
        self.breaker = breaker or RouteCircuitBreaker(
            failure_threshold=cfg.circuit_breaker.failure_threshold,
            cooldown=cfg.circuit_breaker.cooldown,
        )
        self.cache = cache or ResultCache(ttl=cfg.cache_ttl)
        self.extractor = extractor or PageContentExtractor(
            bounds=cfg.price_bounds,
            currency=cfg.currency,
            min_items=cfg.min_items,
        )
        self.detector = detector or BlockDetector()
        self.retry = retry or RetryController(
            max_retries=cfg.max_retries,
            backoff=exponential_backoff(cfg.backoff_base, cfg.backoff_jitter),
            sleep=sleep,
        )

        logger.info(
            f"Flight client initialized (currency={cfg.currency}, locale={cfg.locale}, "
            f"max_retries={cfg.max_retries})"
        )

    def _check_policy(self, request: SearchRequest) -> None:
        """Raise PolicyDenied if a self-imposed limit forbids this search"""
        decision = self.breaker.check(request.route_key)
        if decision.paused:
            raise CircuitOpenError(
                f"Circuit breaker open, paused until {decision.pause_until.isoformat()}",
                pause_until=decision.pause_until,
            )
        if not self.rate_limiter.allow():
            raise RateLimitError("Rate limit reached")

    async def _attempt(self, session, request: SearchRequest, url: str, attempt: int) -> PageCapture:
        """One browser attempt: navigate, check for blocks, wait, capture"""
        log = logger.bind(route=str(request.route_key))
        page: BrowserPage = await session.new_page()
        try:
            log.debug(f"   Attempt {attempt}: navigating")
            await page.goto(url)
            await page.dismiss_consent()

            first_look = await page.capture()
            check = self.detector.detect(first_look.html, page.url)
            if check.blocked:
                raise BlockedError(check.reason, capture=await self._with_screenshot(page, first_look, log))

            await page.wait_for_results()
            await page.scroll(800)

            capture = await page.capture()
            check = self.detector.detect(capture.html, capture.url)
            if check.blocked:
                raise BlockedError(check.reason, capture=await self._with_screenshot(page, capture, log))
            return await self._with_screenshot(page, capture, log)
        finally:
            await page.close()

    async def _with_screenshot(self, page: BrowserPage, capture: PageCapture, log) -> PageCapture:
        """Attach a screenshot for snapshots; on failure keep the capture as it is"""
        if self.config.snapshot_dir is None:
            return capture
        try:
            shot = await page.capture(screenshot=True)
        except Exception as e:
            log.warning(f"⚠️ Screenshot failed, keeping HTML only: {type(e).__name__}: {e}")
            return capture
        return capture._replace(screenshot=shot.screenshot)

    async def _save_snapshot(self, result: ScrapeResult, capture: Optional[PageCapture], kind: str) -> None:
        if self.config.snapshot_dir is None or capture is None:
            return
        try:
            paths = await save_snapshot(
                capture,
                self.config.snapshot_dir,
                str(result.request.route_key),
                kind,
            )
        except OSError as e:
            logger.bind(route=str(result.request.route_key)).warning(
                f"⚠️ Could not save {kind} snapshot: {e}"
            )
            return
        result.diagnostics.snapshot.extend(str(p) for p in paths)

    async def search(self, request: SearchRequest, session) -> ScrapeResult:
        """
        Search one route/date.

        Never raises for search failures: blocked, policy-denied and failed
        searches come back as a ScrapeResult with diagnostics filled in.

        Args:
            request: Route and date to search
            session: Open browser session (see BrowserSession)

        Returns:
            Finalized ScrapeResult
        """
        route = request.route_key
        log = logger.bind(route=str(route))

        cached = self.cache.get(request.cache_key)
        if cached is not None:
            log.info(f"💾 Cache hit for {request.cache_key} ({len(cached.items)} items)")
            cached.diagnostics.cache_hit = True
            cached.diagnostics.started_at = utcnow()
            return cached.finalize()

        result = ScrapeResult.start(request)
        diag = result.diagnostics

        try:
            self._check_policy(request)
        except PolicyDenied as e:
            log.warning(f"⛔ Search skipped: {e}")
            diag.blocked = True
            diag.blocked_reason = str(e)
            diag.policy = e.policy
            return result.finalize()

        self.rate_limiter.record()
        url = build_search_url(request, self.config.currency, self.config.locale)
        diag.url = url
        log.info(f"🔍 Searching {route} on {request.date}")
        log.debug(f"   URL: {url}")

        try:
            outcome = await self.retry.run(lambda attempt: self._attempt(session, request, url, attempt))

        except BlockedError as e:
            diag.blocked = True
            diag.blocked_reason = e.reason
            diag.retries = e.retries
            self.breaker.record_failure(route)
            log.error(f"🚫 Blocked: {e.reason}")
            await self._save_snapshot(result, e.capture, "blocked")
            return result.finalize()

        except RetriesExhaustedError as e:
            diag.error = f"{type(e.last_error).__name__}: {e.last_error}"
            diag.retries = e.retries
            self.breaker.record_failure(route)
            log.error(f"❌ Search failed after {e.retries + 1} attempts: {diag.error}")
            return result.finalize()

        capture: PageCapture = outcome.value
        diag.retries = outcome.retries
        diag.url = capture.url or url

        items = self.extractor.extract(capture.html, request=request, link=diag.url)
        result.items = items
        result.found = bool(items)
        diag.strategy = items[0].source if items else None

        if items:
            self.breaker.record_success(route)
            log.success(
                f"✅ {len(items)} prices found ({items[0].price:.0f}-{items[-1].price:.0f} "
                f"{items[0].currency}) via {diag.strategy}"
            )
        else:
            log.warning("No prices found on results page")
            await self._save_snapshot(result, capture, "no-results")

        self.cache.set(request.cache_key, result)
        return result.finalize()
