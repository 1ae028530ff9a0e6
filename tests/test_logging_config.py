#!/usr/bin/env python3
"""
Tests for the package logger setup.
"""

import logging

import pytest

from table_catalog.logging_config import get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_package_logger():
    logger = logging.getLogger("table_catalog")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def test_setup_logging_single_handler(monkeypatch):
    """Test that repeated setup keeps exactly one handler."""
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    setup_logging()
    logger = setup_logging("debug")

    assert logger.name == "table_catalog"
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_level_from_environment(monkeypatch):
    """Test LOG_LEVEL and the INFO fallback for unknown names."""
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    assert setup_logging().level == logging.WARNING
    assert setup_logging("verbose").level == logging.INFO


def test_detailed_format(monkeypatch):
    """Test that LOG_FORMAT=detailed adds the logger name."""
    monkeypatch.setenv("LOG_FORMAT", "detailed")
    logger = setup_logging("INFO")
    assert "%(name)s" in logger.handlers[0].formatter._fmt


def test_get_logger_namespace():
    """Test that module loggers end up under table_catalog."""
    assert get_logger().name == "table_catalog"
    assert get_logger("table_catalog.parsers").name == "table_catalog.parsers"
    assert get_logger("parsers").name == "table_catalog.parsers"
    assert get_logger("__main__").name == "table_catalog.cli"
