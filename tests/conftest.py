"""Shared test fixtures for the Slice-Analyzer test suite."""

import logging
from pathlib import Path

import pytest

from core.patterns import Pattern, PatternCatalog
from utils.logger import LOGGER_NAME

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop handlers bound to captured streams between tests."""
    yield
    logging.getLogger(LOGGER_NAME).handlers.clear()


@pytest.fixture
def sql_pattern():
    return Pattern.build(
        "SQL injection",
        "$_GET,$_POST",
        "mysql_real_escape_string",
        "mysql_query",
    )


@pytest.fixture
def xss_pattern():
    return Pattern.build("Cross site scripting", "$_GET", "htmlspecialchars", "echo")


@pytest.fixture
def cmd_pattern():
    return Pattern.build("Command injection", "$_POST", "escapeshellarg", "system")


@pytest.fixture
def catalog(sql_pattern, xss_pattern, cmd_pattern):
    return PatternCatalog([sql_pattern, xss_pattern, cmd_pattern])


@pytest.fixture
def test_cases_dir():
    return PROJECT_ROOT / "test_cases"


@pytest.fixture
def bundled_catalog():
    return PatternCatalog.load(str(PROJECT_ROOT / "core" / "rules" / "patterns.txt"))
