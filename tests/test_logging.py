"""Tests for loguru setup."""

import logging
from pathlib import Path

import pytest
from loguru import logger

from district_lookup.logging import setup_logging


@pytest.fixture
def log_file(test_settings):
    yield Path(test_settings.log_file)
    logger.remove()


class TestSetupLogging:
    def test_writes_to_file(self, test_settings, log_file):
        setup_logging(test_settings)
        logger.info("district lookup ready")

        assert "district lookup ready" in log_file.read_text()

    def test_level_override(self, test_settings, log_file):
        test_settings.log_level = "WARNING"
        setup_logging(test_settings, level="debug")
        logger.debug("verbose detail")

        assert "verbose detail" in log_file.read_text()

    def test_standard_library_records_are_forwarded(self, test_settings, log_file):
        setup_logging(test_settings)
        logging.getLogger("uvicorn.error").warning("Started server process")

        assert "Started server process" in log_file.read_text()
