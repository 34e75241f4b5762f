"""
Pytest fixtures for the kazbooks test suite.

Provides:
- Structured logging configuration and log capture
- In-memory SQLite sessions with immutability listeners registered
- A tenant with the NSFO chart installed and monthly periods for 2024

Environment Variables:
- DATABASE_URL: SQLAlchemy URL for the service tests.  Defaults to an
  in-memory SQLite database.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from kazbooks_config import get_posting_defaults, load_chart_template
from kazbooks_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from kazbooks_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from kazbooks_kernel.domain.clock import DeterministicClock
from kazbooks_kernel.domain.dtos import TransactionIntent, TransactionType
from kazbooks_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from kazbooks_kernel.services.chart_service import ChartOfAccountsService
from kazbooks_kernel.services.journal_service import JournalService
from kazbooks_kernel.services.period_service import PeriodService

DEFAULT_DATABASE_URL = "sqlite://"

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


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
    Capture kazbooks logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, journal_service):
            journal_service.post_transaction(...)
            logs = captured_logs()
            assert any(r["message"] == "journal_entry_posted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("kazbooks")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session():
    """A fresh database per test; rolled back and dropped afterwards."""
    init_engine_from_url(os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL))
    create_tables()
    register_immutability_listeners()
    sess = get_session()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()
        unregister_immutability_listeners()
        drop_tables()
        reset_engine()


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(datetime(2024, 3, 15, 10, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def tenant_id():
    return uuid4()


@pytest.fixture
def chart_service(session):
    return ChartOfAccountsService(session)


@pytest.fixture
def period_service(session, deterministic_clock):
    return PeriodService(session, deterministic_clock)


@pytest.fixture
def journal_service(session, period_service, chart_service, deterministic_clock):
    return JournalService(
        session,
        period_service=period_service,
        chart_service=chart_service,
        clock=deterministic_clock,
        posting_accounts=get_posting_defaults().posting_accounts(),
    )


@pytest.fixture
def nsfo_chart(chart_service, tenant_id, actor_id):
    """The NSFO chart installed for the test tenant."""
    chart_service.install_template(tenant_id, load_chart_template(), actor_id)
    return chart_service.load(tenant_id)


@pytest.fixture
def periods_2024(period_service, tenant_id, actor_id):
    """January-February 2024 soft_closed, March 2024 open."""
    return period_service.initialize_periods(tenant_id, actor_id, as_of=date(2024, 3, 15))


@pytest.fixture
def march_period(periods_2024):
    return periods_2024[-1]


@pytest.fixture
def ledger(nsfo_chart, periods_2024):
    """Tenant ready for posting: chart installed, March 2024 open."""
    return nsfo_chart


@pytest.fixture
def make_intent(tenant_id, nsfo_chart):
    """Build a TransactionIntent from account codes."""

    def _make(
        transaction_type: TransactionType,
        amount,
        primary_code: str = "1030",
        counter_code: str | None = None,
        entry_date: date = date(2024, 3, 10),
        description: str | None = None,
    ) -> TransactionIntent:
        return TransactionIntent(
            tenant_id=tenant_id,
            entry_date=entry_date,
            transaction_type=transaction_type,
            amount=Decimal(amount) if isinstance(amount, (int, str)) else amount,
            primary_account_id=nsfo_chart.resolve(primary_code).id,
            counter_account_id=nsfo_chart.resolve(counter_code).id if counter_code else None,
            description=description,
        )

    return _make
