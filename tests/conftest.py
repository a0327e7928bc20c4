"""
Pytest fixtures for the stock reconciliation test suite.

Provides:
- Structured logging configured for the whole session
- captured_logs: parsed JSON log records emitted during a test
- In-memory SQLite session factory for the processed-document store
- A deterministic clock and a recording submission sink
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from stock_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.domain.records import SubmissionResponse
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
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


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stock_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            engine.evaluate(entries)
            logs = captured_logs()
            assert any(r["message"] == "stock_check_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stock_kernel")
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
# Database fixtures
# =============================================================================


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database with the processed_documents table."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(datetime(2025, 3, 14, 9, 30, 0, tzinfo=timezone.utc))


class RecordingSink:
    """Submission sink that records payloads and returns a canned response."""

    def __init__(self, success: bool = True, message: str = "ok"):
        self.success = success
        self.message = message
        self.goods_receipts: list[dict] = []
        self.disposals: list[dict] = []
        self.stock_checks: list[list[dict]] = []

    def _response(self) -> SubmissionResponse:
        return SubmissionResponse(success=self.success, message=self.message)

    def submit_goods_receipt(self, payload):
        self.goods_receipts.append(payload)
        return self._response()

    def submit_disposal(self, payload):
        self.disposals.append(payload)
        return self._response()

    def submit_stock_check(self, payload):
        self.stock_checks.append(payload)
        return self._response()


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def failing_sink():
    return RecordingSink(success=False, message="rejected by ledger")
