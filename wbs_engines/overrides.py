"""
Module: wbs_engines.overrides
Responsibility:
    Manual grand-total overrides for the contract and current-period totals,
    and resolution of the grand totals a dashboard or period close reports.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - An override replaces only the root-level figure it names; node fields
      are never touched.
    - Cumulative, remaining and progress always use computed figures, so an
      override can correct a displayed total without altering the progress
      ledger.
    - Clearing an override sets it to absent (``None``), never to zero.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from wbs_engines.aggregation import AggregationEngine, RootTotals
from wbs_kernel.domain.numeric import Numeric, clamp_non_negative, percentage_of, round_money
from wbs_kernel.domain.project import Project
from wbs_kernel.logging_config import get_logger

logger = get_logger("engines.overrides")


@dataclass(frozen=True)
class GrandTotals:
    """
    Root-level figures after applying any active override.

    Guarantees:
        - ``contract`` / ``current`` are the override when present, otherwise
          the computed root sums.
        - ``cumulative``, ``remaining`` and ``progress`` are always computed.
    """

    contract: Decimal
    current: Decimal
    cumulative: Decimal
    remaining: Decimal
    progress: Decimal
    contract_overridden: bool = False
    current_overridden: bool = False


def effective_total(computed: Decimal, override: Decimal | None) -> Decimal:
    """The override verbatim when present, else the computed figure."""
    return computed if override is None else override


def resolve_grand_totals(totals: RootTotals, project: Project) -> GrandTotals:
    return GrandTotals(
        contract=effective_total(totals.contract_total, project.contract_total_override),
        current=effective_total(totals.current_total, project.current_total_override),
        cumulative=totals.cumulative_total,
        remaining=round_money(totals.contract_total - totals.cumulative_total),
        progress=percentage_of(totals.cumulative_total, totals.contract_total),
        contract_overridden=project.contract_total_override is not None,
        current_overridden=project.current_total_override is not None,
    )


def project_grand_totals(
    project: Project,
    engine: AggregationEngine | None = None,
) -> GrandTotals:
    """Aggregate ``project`` and resolve its grand totals."""
    engine = engine or AggregationEngine()
    result = engine.aggregate(project.nodes, markup_rate=project.markup_rate)
    return resolve_grand_totals(result.totals, project)


def _set(project: Project, field_name: str, amount: Numeric | None) -> Project:
    value = None if amount is None else round_money(clamp_non_negative(amount))
    logger.info("grand_total_override_changed", extra={
        "project_id": project.id,
        "field": field_name,
        "old_value": getattr(project, field_name),
        "new_value": value,
    })
    return replace(project, **{field_name: value})


def set_contract_total_override(project: Project, amount: Numeric) -> Project:
    return _set(project, "contract_total_override", amount)


def set_current_total_override(project: Project, amount: Numeric) -> Project:
    return _set(project, "current_total_override", amount)


def clear_contract_total_override(project: Project) -> Project:
    return _set(project, "contract_total_override", None)


def clear_current_total_override(project: Project) -> Project:
    return _set(project, "current_total_override", None)

