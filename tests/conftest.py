"""
Pytest fixtures for the reimbursement policy test suite.

Provides:
- Session-wide structured logging and per-test LogContext isolation
- captured_logs for asserting on emitted JSON log records
- An in-memory SQLite session with every ORM table created
- Tenant / user / context identifiers (builders live in builders.py)
"""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from reimburse_kernel.db.base import Base
from reimburse_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from reimburse_modules._orm_registry import import_all_orm_models
from reimburse_modules.policy.models import EvaluationContext


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
    Capture reimburse_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            evaluate_limit(rule=rule, item=item)
            logs = captured_logs()
            assert any(r["message"] == "limit_evaluated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("reimburse_kernel")
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
def db_session():
    """SQLite in-memory session with all module tables created."""
    import_all_orm_models()
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = Session(engine)
    yield session
    session.close()
    engine.dispose()


# =============================================================================
# Identity fixtures
# =============================================================================


@pytest.fixture
def tenant_id():
    return uuid4()


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def context(tenant_id, user_id):
    return EvaluationContext(tenant_id=tenant_id, user_id=user_id)

