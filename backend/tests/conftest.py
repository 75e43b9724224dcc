"""Pytest configuration and fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def _debug_logging(caplog):
    """Capture clobwatch debug logs so failures show the full dispatch trail."""
    caplog.set_level(logging.DEBUG, logger="clobwatch")
    yield
