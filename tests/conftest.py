"""
Pytest fixtures for the WBS budget engine test suite.

Provides:
- Structured logging configuration and log capture
- A deterministic clock
- The "Foundations" sample tree used across the engine tests
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from wbs_engines.aggregation import AggregationEngine
from wbs_engines.editing import set_current_quantity
from wbs_kernel.domain.clock import DeterministicClock
from wbs_kernel.domain.nodes import CategoryNode, ItemNode
from wbs_kernel.domain.project import create_project
from wbs_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

SAMPLE_MARKUP_RATE = Decimal("20")
SAMPLE_REFERENCE_DATE = date(2024, 1, 31)


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
    Capture wbs_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            engine.aggregate(nodes, markup_rate=20)
            logs = captured_logs()
            assert any(r["message"] == "aggregation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("wbs_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Domain fixtures
# =============================================================================


def make_foundations_nodes():
    """
    One category with two priced items:

        Foundations
          Excavation   100 m3 @ 10.00
          Backfill      50 m3 @  8.00
    """
    return (
        CategoryNode(id="foundations", name="Foundations", order=0),
        ItemNode(
            id="excavation",
            parent_id="foundations",
            order=0,
            name="Excavation",
            unit="m3",
            contract_quantity=Decimal("100"),
            unit_price_excluding_markup=Decimal("10"),
        ),
        ItemNode(
            id="backfill",
            parent_id="foundations",
            order=1,
            name="Backfill",
            unit="m3",
            contract_quantity=Decimal("50"),
            unit_price_excluding_markup=Decimal("8"),
        ),
    )


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2024, 2, 15, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine():
    return AggregationEngine()


@pytest.fixture
def foundations_nodes():
    return make_foundations_nodes()


@pytest.fixture
def measured_project(engine):
    """Foundations project, aggregated, with 40 m3 of excavation this period."""
    nodes = set_current_quantity(make_foundations_nodes(), "excavation", 40)
    aggregated = engine.aggregate(nodes, markup_rate=SAMPLE_MARKUP_RATE).nodes
    return create_project(
        "Warehouse",
        markup_rate=SAMPLE_MARKUP_RATE,
        measurement_number=1,
        reference_date=SAMPLE_REFERENCE_DATE,
        nodes=aggregated,
        project_id="proj-warehouse",
    )
