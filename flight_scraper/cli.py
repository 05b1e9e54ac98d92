"""Command-line interface for the flight price scraper"""

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Tuple

from loguru import logger

from . import __version__
from .batch import BatchOrchestrator
from .browser import BrowserSession
from .client import FlightSearchClient
from .config import (
    DEFAULT_OUTPUT_DIR,
    CircuitBreakerSettings,
    DelayRange,
    RateLimitSettings,
    ScraperConfig,
)
from .date_utils import build_requests, parse_date_list, parse_route_spec, validate_date_list
from .logging_config import setup_logging
from .models import RunSummary, SearchRequest
from .pacing import uniform_delay
from .storage import save_run_report


async def run_batch(
    requests: List[SearchRequest],
    config: ScraperConfig,
    output_dir: Path,
) -> Tuple[RunSummary, Path]:
    """
    Search every request with one browser session and save the run report.

    Returns:
        Tuple of (summary, report_path)
    """
    client = FlightSearchClient(config)
    orchestrator = BatchOrchestrator(
        client,
        session_factory=lambda: BrowserSession.from_config(config),
        search_delay=uniform_delay(config.search_delay),
    )
    summary = await orchestrator.run(requests)
    budget = client.rate_limiter.status()
    logger.info(
        f"Search budget left: {budget['remaining_hour']}/{budget['max_per_hour']} this hour, "
        f"{budget['remaining_day']}/{budget['max_per_day']} today"
    )
    report_path = await save_run_report(summary, output_dir)
    return summary, report_path


def log_summary(summary: RunSummary, report_path: Path) -> None:
    """Per-route table and totals"""
    logger.info("")
    logger.info("=" * 80)
    logger.success("✅ RUN COMPLETE")
    logger.info("=" * 80)
    logger.info(f"   {'ROUTE':<10} {'DATE':<12} {'STATUS':<12} {'ITEMS':>5} {'MIN':>9} {'MAX':>9}  DETAIL")
    for result in summary.results:
        diag = result.diagnostics
        detail = diag.blocked_reason or diag.error or diag.strategy or ""
        if diag.cache_hit:
            detail = f"(cached) {detail}"
        min_price = f"{result.min_price:.0f}" if result.items else "-"
        max_price = f"{result.max_price:.0f}" if result.items else "-"
        logger.info(
            f"   {diag.route:<10} {diag.date:<12} {result.status.value:<12} "
            f"{len(result.items):>5} {min_price:>9} {max_price:>9}  {detail}"
        )
    logger.info("")
    logger.info("📊 TOTALS")
    logger.info(f"   Routes:        {len(summary.results)}")
    logger.info(f"   ✅ With prices: {summary.found_count}")
    logger.info(f"   ∅ No results:  {summary.no_results_count}")
    logger.info(f"   🚫 Blocked:     {summary.blocked_count}")
    logger.info(f"   ❌ Errors:      {summary.error_count}")
    logger.info(f"   Duration:      {summary.duration_ms / 1000:.1f}s")
    logger.info(f"   Report:        {report_path}")
    logger.info("=" * 80)


class DateAction(argparse.Action):
    """Custom action to handle both --date and --dates arguments and store them in the same destination"""

    def __call__(self, parser, namespace, values, option_string=None):
        if getattr(namespace, self.dest, None) is None:
            setattr(namespace, self.dest, [])

        if isinstance(values, list):
            getattr(namespace, self.dest).extend(values)
        else:
            getattr(namespace, self.dest).append(values)


class DelayRangeAction(argparse.Action):
    """Two floats MIN MAX into a DelayRange"""

    def __call__(self, parser, namespace, values, option_string=None):
        try:
            setattr(namespace, self.dest, DelayRange(float(values[0]), float(values[1])))
        except ValueError as e:
            parser.error(f"{option_string}: {e}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flight-scraper",
        description="Flight price scraper with polite pacing, retries and block detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  flight-scraper --route MAD:EZE:2026-03-28\n"
            "  flight-scraper --origins MAD BCN --destinations EZE --dates 2026-03-28:2026-03-30\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    search_group = parser.add_argument_group("Flight Search")
    search_group.add_argument(
        "--route",
        dest="routes",
        action="append",
        metavar="ORIGIN:DEST:DATE",
        help="Route to search; repeatable. DATE may be a range YYYY-MM-DD:YYYY-MM-DD",
    )
    search_group.add_argument(
        "--origin", "--origins", dest="origins", nargs="+", help="Origin airport code(s)"
    )
    search_group.add_argument(
        "--destination", "--destinations", dest="destinations", nargs="+", help="Destination airport code(s)"
    )
    search_group.add_argument(
        "--date", "--dates",
        dest="dates",
        action=DateAction,
        nargs="+",
        help="Departure date(s) in format YYYY-MM-DD or date range YYYY-MM-DD:YYYY-MM-DD",
    )

    browser_group = parser.add_argument_group("Browser")
    browser_group.add_argument(
        "--no-headless", action="store_true", help="Visible browser mode"
    )
    browser_group.add_argument("--currency", type=str, help="Price currency (default: EUR)")
    browser_group.add_argument("--locale", type=str, help="Interface language (default: es)")
    browser_group.add_argument(
        "--timeout", type=float, help="Navigation timeout in seconds (default: 60)"
    )

    policy_group = parser.add_argument_group("Pacing & Protection")
    policy_group.add_argument(
        "--max-retries", type=int, help="Attempts per search, including the first (default: 2)"
    )
    policy_group.add_argument(
        "--action-delay", nargs=2, metavar=("MIN", "MAX"), action=DelayRangeAction,
        help="Seconds between UI actions (default: 1.5 4)",
    )
    policy_group.add_argument(
        "--search-delay", nargs=2, metavar=("MIN", "MAX"), action=DelayRangeAction,
        help="Seconds between searches (default: 8 15)",
    )
    policy_group.add_argument(
        "--cb-threshold", type=int, help="Consecutive failures before pausing a route (default: 3)"
    )
    policy_group.add_argument(
        "--cb-pause-hours", type=float, help="Hours a tripped route stays paused (default: 24)"
    )
    policy_group.add_argument("--max-per-hour", type=int, help="Search budget per hour (default: 10)")
    policy_group.add_argument("--max-per-day", type=int, help="Search budget per day (default: 30)")
    policy_group.add_argument("--cache-ttl", type=float, help="Result cache TTL in seconds (default: 7200)")

    config_group = parser.add_argument_group("Configuration")
    config_group.add_argument(
        "--output", type=str, default=str(DEFAULT_OUTPUT_DIR), help="Output directory for run reports"
    )
    config_group.add_argument(
        "--snapshot-dir", type=str, help="Save HTML/screenshot of blocked and empty pages here"
    )
    config_group.add_argument("--verbose", action="store_true", help="Debug logging")
    config_group.add_argument("--log-file", type=str, help="Log file path")

    return parser


def resolve_requests(args: argparse.Namespace) -> List[SearchRequest]:
    """
    Turn --route and --origins/--destinations/--dates into search requests.

    Raises:
        ValueError: On malformed codes or dates, or when nothing was requested
    """
    requests: List[SearchRequest] = []

    for spec in args.routes or []:
        requests.extend(parse_route_spec(spec))

    if args.origins or args.destinations or args.dates:
        if not (args.origins and args.destinations and args.dates):
            raise ValueError("--origins, --destinations and --dates must be given together")
        dates = parse_date_list(args.dates)
        is_valid, error = validate_date_list(dates)
        if not is_valid:
            raise ValueError(f"Invalid dates: {error}")
        requests.extend(build_requests(args.origins, args.destinations, dates))

    if not requests:
        raise ValueError("Nothing to search: give --route or --origins/--destinations/--dates")
    return requests


def config_from_args(args: argparse.Namespace) -> ScraperConfig:
    """Environment first, then explicit flags"""
    base = ScraperConfig.from_env()

    circuit_breaker = base.circuit_breaker
    if args.cb_threshold is not None or args.cb_pause_hours is not None:
        circuit_breaker = CircuitBreakerSettings(
            failure_threshold=args.cb_threshold or circuit_breaker.failure_threshold,
            cooldown=args.cb_pause_hours * 3600 if args.cb_pause_hours is not None else circuit_breaker.cooldown,
        )

    rate_limit = base.rate_limit
    if args.max_per_hour is not None or args.max_per_day is not None:
        rate_limit = RateLimitSettings(
            max_per_hour=args.max_per_hour or rate_limit.max_per_hour,
            max_per_day=args.max_per_day or rate_limit.max_per_day,
        )

    overrides = dict(
        headless=False if args.no_headless else None,
        currency=args.currency.upper() if args.currency else None,
        locale=args.locale,
        navigation_timeout=args.timeout,
        max_retries=args.max_retries,
        action_delay=args.action_delay,
        search_delay=args.search_delay,
        circuit_breaker=circuit_breaker,
        rate_limit=rate_limit,
        cache_ttl=args.cache_ttl,
        snapshot_dir=Path(args.snapshot_dir) if args.snapshot_dir else None,
    )
    return replace(base, **{k: v for k, v in overrides.items() if v is not None})


def main() -> None:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args()

    log_file = Path(args.log_file) if args.log_file else None
    setup_logging(verbose=args.verbose, log_file=log_file)

    logger.info("=" * 60)
    logger.info(f"Flight Price Scraper (v{__version__})")
    logger.info("=" * 60)

    try:
        requests = resolve_requests(args)
        config = config_from_args(args)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"Routes to search: {len(requests)}")
    logger.info(
        f"Budget: {config.rate_limit.max_per_hour}/hour, {config.rate_limit.max_per_day}/day | "
        f"headless={config.headless} | currency={config.currency}"
    )
    if len(requests) > config.rate_limit.max_per_hour:
        logger.warning(
            f"⚠️ {len(requests)} searches exceed the hourly budget; "
            f"routes past {config.rate_limit.max_per_hour} will be reported as rate limited"
        )

    try:
        summary, report_path = asyncio.run(run_batch(requests, config, Path(args.output)))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(1)

    log_summary(summary, report_path)

    if summary.results and summary.error_count == len(summary.results):
        logger.error("All searches failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
