"""
Project -- Project record, measurement snapshots and period totals.

Responsibility:
    Defines the project-level state the measurement rollover operates on:
    the flat node collection, the markup rate, the measurement counter and
    reference date, the snapshot history and the optional grand-total
    overrides.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Snapshots are frozen; their node collection is an explicit structural
      copy taken at close time.
    - ``history`` is ordered oldest first; the last element is the most
      recently closed period.

Non-goals:
    - No persistence. Callers save and load these records verbatim.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import uuid4

from wbs_kernel.domain.nodes import WorkNode, clone_nodes
from wbs_kernel.domain.numeric import ZERO, Numeric, clamp_non_negative, to_decimal


@dataclass(frozen=True, slots=True)
class PeriodTotals:
    """Grand totals recorded when a measurement period is closed."""

    contract: Decimal = ZERO
    period: Decimal = ZERO
    cumulative: Decimal = ZERO
    progress: Decimal = ZERO


@dataclass(frozen=True, slots=True)
class MeasurementSnapshot:
    """
    Immutable record of one closed measurement period.

    Contract:
        Created only by ``MeasurementRollover.close`` and removed only by
        ``MeasurementRollover.reopen``.
    Guarantees:
        - ``nodes`` is the fully processed collection as it stood before the
          period was rotated.
        - ``measurement_number`` and ``reference_date`` are the project's
          values before the close, so reopening restores them exactly.
    """

    measurement_number: int
    close_date: date
    reference_date: date
    nodes: tuple[WorkNode, ...]
    totals: PeriodTotals
    current_total_override: Decimal | None = None


@dataclass(frozen=True, slots=True)
class Project:
    """
    A budget project: tree, markup, measurement counter and history.

    Contract:
        Treated as a single atomic record. Close and reopen return a whole
        new Project; applying only its ``nodes`` without the history and
        counters breaks the rollover invariants.
    """

    id: str
    name: str
    markup_rate: Decimal
    measurement_number: int
    reference_date: date
    nodes: tuple[WorkNode, ...] = ()
    history: tuple[MeasurementSnapshot, ...] = ()
    contract_total_override: Decimal | None = None
    current_total_override: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "markup_rate", to_decimal(self.markup_rate))
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "history", tuple(self.history))
        for name in ("contract_total_override", "current_total_override"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, to_decimal(value))

    @property
    def latest_snapshot(self) -> MeasurementSnapshot | None:
        return self.history[-1] if self.history else None


def create_project(
    name: str,
    *,
    markup_rate: Numeric,
    measurement_number: int,
    reference_date: date,
    nodes: Iterable[WorkNode] = (),
    project_id: str | None = None,
) -> Project:
    """
    Build a new project with an empty history and no overrides.

    A blank ``name`` falls back to "New Project". Negative markup rates are
    clamped to zero.
    """
    return Project(
        id=project_id or str(uuid4()),
        name=name.strip() or "New Project",
        markup_rate=clamp_non_negative(markup_rate),
        measurement_number=measurement_number,
        reference_date=reference_date,
        nodes=tuple(nodes),
    )


def clone_snapshot(snapshot: MeasurementSnapshot) -> MeasurementSnapshot:
    """Structural copy of a snapshot, including its node collection."""
    return MeasurementSnapshot(
        measurement_number=snapshot.measurement_number,
        close_date=snapshot.close_date,
        reference_date=snapshot.reference_date,
        nodes=clone_nodes(snapshot.nodes),
        totals=PeriodTotals(
            contract=snapshot.totals.contract,
            period=snapshot.totals.period,
            cumulative=snapshot.totals.cumulative,
            progress=snapshot.totals.progress,
        ),
        current_total_override=snapshot.current_total_override,
    )
