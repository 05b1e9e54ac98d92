import sys
from pathlib import Path

import pytest
from loguru import logger

from flight_scraper.logging_config import setup_logging


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_file_sink_carries_route_column(tmp_path: Path, restore_logger):
    log_file = tmp_path / "logs" / "scraper.log"
    setup_logging(verbose=True, log_file=log_file)

    logger.info("outside a search")
    logger.bind(route="MAD-EZE").warning("inside a search")
    logger.complete()

    text = log_file.read_text(encoding="utf-8")
    assert "| - |" in text
    assert "| MAD-EZE |" in text
    assert "inside a search" in text
