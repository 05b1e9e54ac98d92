"""Sequential batch runs over many routes with one shared browser"""

import uuid
from contextlib import AsyncExitStack
from typing import Callable, List, Optional, Sequence

from loguru import logger

from .client import FlightSearchClient
from .config import SEARCH_DELAY, DelayRange
from .models import RunSummary, ScrapeResult, SearchRequest, utcnow
from .pacing import DelayPolicy, Sleeper, real_sleep, uniform_delay

SessionFactory = Callable[[], object]


class BatchOrchestrator:
    """
    Run a list of searches one after another.

    - A single browser session is opened for the whole run and always closed
    - A randomized pause separates consecutive searches (none after the last)
    - One route failing never aborts the run; results keep input order
    """

    def __init__(
        self,
        client: FlightSearchClient,
        session_factory: SessionFactory,
        search_delay: Optional[DelayPolicy] = None,
        sleep: Sleeper = real_sleep,
    ):
        self.client = client
        self.session_factory = session_factory
        self.search_delay = search_delay or uniform_delay(DelayRange(*SEARCH_DELAY))
        self.sleep = sleep

    async def run(self, requests: Sequence[SearchRequest]) -> RunSummary:
        run_id = uuid.uuid4().hex[:12]
        summary = RunSummary(run_id=run_id, started_at=utcnow())
        total = len(requests)

        logger.info(f"🚀 Run {run_id}: {total} searches")

        try:
            async with AsyncExitStack() as stack:
                session = await stack.enter_async_context(self.session_factory())
                await self._run_all(requests, session, summary.results)
        except Exception as e:
            # Browser launch/teardown failure: every route without a result is an error
            logger.exception(f"Browser session failed: {e}")
            for request in requests[len(summary.results):]:
                summary.results.append(self._error_result(request, f"Browser session failed: {e}"))

        summary.ended_at = utcnow()
        summary.duration_ms = int((summary.ended_at - summary.started_at).total_seconds() * 1000)
        logger.info(
            f"Run {run_id} finished in {summary.duration_ms / 1000:.1f}s: "
            f"{summary.found_count} ok, {summary.no_results_count} empty, "
            f"{summary.blocked_count} blocked, {summary.error_count} errors"
        )
        return summary

    async def _run_all(self, requests: Sequence[SearchRequest], session, results: List[ScrapeResult]) -> None:
        total = len(requests)
        for index, request in enumerate(requests, start=1):
            logger.info(f"[{index}/{total}] {request.route_key} {request.date}")
            try:
                result = await self.client.search(request, session)
            except Exception as e:
                logger.exception(f"Unexpected error searching {request.route_key}: {e}")
                result = self._error_result(request, f"{type(e).__name__}: {e}")
            results.append(result)

            if index < total:
                wait = self.search_delay()
                logger.info(f"⏳ Waiting {wait:.1f}s before next search...")
                await self.sleep(wait)

    @staticmethod
    def _error_result(request: SearchRequest, message: str) -> ScrapeResult:
        result = ScrapeResult.start(request)
        result.diagnostics.error = message
        return result.finalize()
