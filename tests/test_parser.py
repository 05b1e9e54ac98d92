import pytest

from flight_scraper.config import PriceBounds
from flight_scraper.models import SearchRequest
from flight_scraper.parser import (
    PageContentExtractor,
    find_prices,
    fingerprint,
    parse_amount,
    parse_itinerary,
)

from conftest import EMPTY_HTML, RESULTS_HTML


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("620", 620.0),
        ("1.234", 1234.0),
        ("1,234", 1234.0),
        ("1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("620,50", 620.5),
        ("", None),
    ],
)
def test_parse_amount_formats(raw, expected):
    assert parse_amount(raw) == expected


def test_find_prices_prefix_and_suffix():
    assert find_prices("desde 620 € hasta €1.234") == [(620.0, "EUR"), (1234.0, "EUR")]
    assert find_prices("US$ 899 o 450 USD") == [(899.0, "USD"), (450.0, "USD")]
    assert find_prices("12 h 45 min") == []


def test_parse_itinerary_fields():
    info = parse_itinerary("Air Europa 11:05 – 23:50 12 h 45 min 1 escala 780 €")
    assert info == {
        "airline": "Air Europa",
        "departure_time": "11:05",
        "arrival_time": "23:50",
        "duration_min": 765,
        "stops": 1,
    }
    assert parse_itinerary("iberia nonstop")["stops"] == 0
    assert parse_itinerary("7:15 PM – 9:40 AM")["departure_time"] == "19:15"


def test_list_extraction_dedups_filters_and_sorts():
    items = PageContentExtractor().extract(RESULTS_HTML)

    assert [i.price for i in items] == [620.0, 780.0]
    assert all(i.source == "list-items" for i in items)
    assert items[0].airline == "Iberia"
    assert items[0].stops == 0
    assert items[1].stops == 1


def test_script_content_is_ignored():
    html = "<html><body><script>var p = '700 €'; var q = '800 €';</script></body></html>"
    assert PageContentExtractor().extract(html) == []


def test_five_entries_three_distinct_prices():
    html = """
    <div role="list">
      <div role="listitem">Iberia 950 €</div>
      <div role="listitem">Iberia 620 €</div>
      <div role="listitem">Iberia 780 €</div>
      <div role="listitem">Iberia 620 €</div>
      <div role="listitem">Iberia 950 €</div>
    </div>
    """
    items = PageContentExtractor().extract(html)
    assert [i.price for i in items] == [620.0, 780.0, 950.0]


def test_falls_through_to_aria_labels():
    html = """
    <div>
      <div aria-label="Iberia. Sale a las 10:30. 12 h 45 min. Directo. 640 euros"></div>
      <div aria-label="Level. Sale a las 12:10. 13 h 5 min. Directo. 590 euros"></div>
      <button aria-label="Precio desde 9000 €, ordenar"></button>
    </div>
    """
    items = PageContentExtractor().extract(html)
    assert [i.price for i in items] == [590.0, 640.0]
    assert {i.source for i in items} == {"aria-labels"}


def test_body_text_fallback_is_capped():
    prices = " ".join(f"{100 + n} €" for n in range(30))
    items = PageContentExtractor().extract(f"<html><body><p>{prices}</p></body></html>")
    assert len(items) == 15
    assert items[0].source == "body-text"


def test_single_price_still_returned():
    items = PageContentExtractor().extract("<html><body><p>Desde 455 €</p></body></html>")
    assert [i.price for i in items] == [455.0]


def test_custom_price_bounds():
    items = PageContentExtractor(bounds=PriceBounds(min=700, max=1000)).extract(RESULTS_HTML)
    assert [i.price for i in items] == [780.0]


def test_empty_page():
    assert PageContentExtractor().extract(EMPTY_HTML) == []


def test_fingerprint_is_stable_and_request_scoped():
    request = SearchRequest("MAD", "EZE", "2026-03-28")
    items = PageContentExtractor().extract(RESULTS_HTML, request=request, link="https://x")
    again = PageContentExtractor().extract(RESULTS_HTML, request=request, link="https://x")

    assert len(items[0].normalized_hash) == 16
    assert items[0].normalized_hash == again[0].normalized_hash
    assert items[0].link == "https://x"

    other = SearchRequest("MAD", "EZE", "2026-03-29")
    assert fingerprint(other, items[0]) != items[0].normalized_hash
