"""
Pytest fixtures for the datetz test suite.

Provides:
- Structured logging configured for the run, with per-test capture
- Settings isolation (no DATETZ_* leakage between tests)
- (tests/db/conftest.py adds the in-memory SQLite engine and session)
"""

import json
import logging
from io import StringIO

import pytest

from datetz.config import set_settings
from datetz.logging_config import StructuredFormatter, configure_logging, reset_logging

_SETTINGS_ENV = (
    "DATETZ_CONFIG",
    "DATETZ_DEFAULT_TIMEZONE",
    "DATETZ_DEFAULT_FORMAT",
    "DATETZ_PARSE_STRINGS",
    "DATETZ_READ_AS",
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture
def captured_logs():
    """
    Capture datetz logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            adapter.cast_on_read({"bogus": 1})
            logs = captured_logs()
            assert any(r["message"] == "datetz_read_fallback" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("datetz")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Settings isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Every test starts from built-in settings and a clean environment."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    set_settings(None)
    yield
    set_settings(None)
