"""Run reports and diagnostic snapshots with async I/O"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

import aiofiles
import orjson
from loguru import logger

from .browser import PageCapture
from .config import REPORT_SAMPLE_SIZE
from .models import RunSummary


class AsyncReportStorage:
    """
    Non-blocking writer for run reports and page snapshots.
    Uses aiofiles for async I/O and orjson for serialization.
    """

    def __init__(self, output_dir: Path):
        """
        Initialize report storage.

        Args:
            output_dir: Base output directory, created if missing
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Output directory ready: {self.output_dir}")

    async def _write(self, path: Path, data: bytes) -> int:
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        return len(data)

    async def save_report(self, report: Dict[str, Any]) -> Path:
        """Write a run report document as pretty JSON"""
        path = self.output_dir / f"report_{report['runId']}.json"
        size = await self._write(path, orjson.dumps(report, option=orjson.OPT_INDENT_2))
        logger.info(f"💾 Saved run report: {path.name} ({size / 1024:.1f}KB)")
        return path

    async def save_snapshot(self, capture: PageCapture, route: str, kind: str) -> List[Path]:
        """
        Write rendered markup (and screenshot, when captured) for offline diagnosis.

        Args:
            capture: Page as seen by the search attempt
            route: Route key string, e.g. MAD-EZE
            kind: Why the snapshot was taken (blocked, no-results)

        Returns:
            Paths of the files written
        """
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        base = self.output_dir / f"{route}_{kind}_{stamp}"

        written = []
        html_path = base.with_suffix(".html")
        await self._write(html_path, capture.html.encode("utf-8"))
        written.append(html_path)

        if capture.screenshot:
            png_path = base.with_suffix(".png")
            await self._write(png_path, capture.screenshot)
            written.append(png_path)

        logger.info(f"📸 Snapshot saved: {base.name} ({len(written)} files)")
        return written


async def save_run_report(
    summary: RunSummary,
    output_dir: Path,
    sample_size: int = REPORT_SAMPLE_SIZE,
) -> Path:
    """Serialize a RunSummary into ``report_<runId>.json`` under output_dir"""
    storage = AsyncReportStorage(output_dir)
    return await storage.save_report(summary.to_report(sample_size=sample_size))


async def save_snapshot(
    capture: PageCapture,
    snapshot_dir: Path,
    route: str,
    kind: str,
) -> List[Path]:
    storage = AsyncReportStorage(snapshot_dir)
    return await storage.save_snapshot(capture, route, kind)
