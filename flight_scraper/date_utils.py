"""Date and route utilities for building search batches"""

from itertools import product
from typing import List, Sequence, Tuple

from dateutil.parser import parse as parse_date
from dateutil.rrule import DAILY, rrule
from loguru import logger

from .models import SearchRequest


def parse_date_or_range(date_spec: str) -> List[str]:
    """
    Parse a date specification that can be a single date or a range.

    Args:
        date_spec: A date in YYYY-MM-DD format or a range in YYYY-MM-DD:YYYY-MM-DD format

    Returns:
        List of date strings in YYYY-MM-DD format

    Raises:
        ValueError: If the date format is invalid or the end date is before the start date
    """
    if ":" in date_spec:
        start_str, end_str = date_spec.split(":", 1)
        try:
            start_date = parse_date(start_str).date()
            end_date = parse_date(end_str).date()
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid date range '{date_spec}': {e}")

        if end_date < start_date:
            raise ValueError(
                f"Invalid date range '{date_spec}': end date {end_str} is before start date {start_str}"
            )

        return [dt.strftime("%Y-%m-%d") for dt in rrule(DAILY, dtstart=start_date, until=end_date)]

    try:
        return [parse_date(date_spec).date().strftime("%Y-%m-%d")]
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid date '{date_spec}': {e}")


def parse_date_list(date_specs: List[str]) -> List[str]:
    """
    Parse a list of date specifications that can include individual dates and ranges.

    Returns:
        Sorted list of unique date strings in YYYY-MM-DD format
    """
    all_dates = []
    for spec in date_specs:
        all_dates.extend(parse_date_or_range(spec))

    unique_dates = sorted(set(all_dates))
    if len(unique_dates) != len(all_dates):
        logger.warning(f"Removed {len(all_dates) - len(unique_dates)} duplicate dates from input")

    return unique_dates


def validate_date_list(dates: List[str]) -> Tuple[bool, str]:
    """
    Validate a list of dates.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not dates:
        return False, "No dates provided"

    try:
        for date_str in dates:
            parse_date(date_str).date()
        return True, ""
    except (ValueError, OverflowError) as e:
        return False, str(e)


def _airport_code(code: str) -> str:
    code = code.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError(f"Invalid airport code '{code}': expected 3 letters")
    return code


def parse_route_spec(spec: str) -> List[SearchRequest]:
    """
    Parse ``ORIGIN:DEST:DATE`` into search requests.

    DATE may itself be a range (``MAD:EZE:2026-03-28:2026-03-30``), giving
    one request per day.
    """
    parts = spec.split(":", 2)
    if len(parts) != 3 or not all(p.strip() for p in parts):
        raise ValueError(f"Invalid route '{spec}': expected ORIGIN:DEST:YYYY-MM-DD")

    origin, destination, date_spec = parts
    origin = _airport_code(origin)
    destination = _airport_code(destination)
    if origin == destination:
        raise ValueError(f"Invalid route '{spec}': origin and destination are the same")

    return [SearchRequest(origin, destination, d) for d in parse_date_or_range(date_spec.strip())]


def build_requests(
    origins: Sequence[str],
    destinations: Sequence[str],
    dates: Sequence[str],
) -> List[SearchRequest]:
    """
    Cartesian product of origins x destinations x dates.

    Same-airport pairs are skipped. Order is origin, then destination, then date.
    """
    requests = []
    for origin, destination, date in product(origins, destinations, dates):
        origin = _airport_code(origin)
        destination = _airport_code(destination)
        if origin == destination:
            logger.warning(f"Skipping {origin} → {destination}: same airport")
            continue
        requests.append(SearchRequest(origin, destination, date))
    return requests
