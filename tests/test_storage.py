import shutil
from pathlib import Path

import orjson
import pytest

from flight_scraper.browser import PageCapture
from flight_scraper.models import FlightItem, RunSummary, ScrapeResult, SearchRequest, utcnow
from flight_scraper.storage import save_run_report, save_snapshot


def _summary():
    ok = ScrapeResult.start(SearchRequest("MAD", "EZE", "2026-03-28"))
    ok.items = [
        FlightItem(price=p, currency="EUR", source="list-items", airline="Iberia")
        for p in (620.0, 700.0, 780.0, 910.0)
    ]
    ok.found = True
    ok.finalize()

    empty = ScrapeResult.start(SearchRequest("BCN", "EZE", "2026-03-28")).finalize()

    summary = RunSummary(run_id="abc123def456", started_at=utcnow(), results=[ok, empty])
    summary.ended_at = utcnow()
    return summary


@pytest.mark.asyncio
async def test_save_run_report_writes_json(tmp_path: Path):
    path = await save_run_report(_summary(), tmp_path / "reports")

    assert path.name == "report_abc123def456.json"
    assert path.exists(), "Report file should be created"

    report = orjson.loads(path.read_bytes())
    assert report["summary"]["totalRoutes"] == 2
    assert report["summary"]["ok"] == 1
    assert report["summary"]["noResults"] == 1

    route = report["routes"][0]
    assert route["itemCount"] == 4
    assert len(route["sampleItems"]) == 3, "Only a sample of items goes into the report"
    assert route["sampleItems"][0]["airline"] == "Iberia"
    assert route["maxPrice"] == 910.0
    assert report["routes"][1]["status"] == "no-results"
    assert report["routes"][1]["minPrice"] is None


@pytest.mark.asyncio
async def test_save_snapshot_html_only(tmp_path: Path):
    capture = PageCapture(html="<html>hola</html>", url="https://x")
    paths = await save_snapshot(capture, tmp_path, "MAD-EZE", "no-results")

    assert len(paths) == 1
    assert paths[0].suffix == ".html"
    assert paths[0].read_text(encoding="utf-8") == "<html>hola</html>"


@pytest.mark.asyncio
async def test_save_snapshot_with_screenshot(tmp_path: Path):
    capture = PageCapture(html="<html></html>", url="https://x", screenshot=b"\x89PNG")
    paths = await save_snapshot(capture, tmp_path, "MAD-EZE", "blocked")

    assert sorted(p.suffix for p in paths) == [".html", ".png"]
    png = next(p for p in paths if p.suffix == ".png")
    assert png.read_bytes() == b"\x89PNG"


@pytest.mark.asyncio
async def test_save_snapshot_recreates_removed_directory(tmp_path: Path):
    snapshot_dir = tmp_path / "snapshots"
    capture = PageCapture(html="<html></html>", url="https://x")
    await save_snapshot(capture, snapshot_dir, "MAD-EZE", "blocked")

    shutil.rmtree(snapshot_dir)
    paths = await save_snapshot(capture, snapshot_dir, "MAD-EZE", "blocked")

    assert paths[0].exists()
    assert paths[0].parent == snapshot_dir
