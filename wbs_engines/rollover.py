"""
Module: wbs_engines.rollover
Responsibility:
    Close a measurement period (snapshot the processed tree, rotate current
    progress into previous progress, open the next period) and reopen the
    most recently closed period as the exact inverse.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Time enters only through the injected Clock.

    States:
        OPEN (period N accepting progress)
          --close-->  snapshot N appended, progress rotated, OPEN (period N+1)
          --reopen--> snapshot N popped, tree/counter/date restored, OPEN (N)

Invariants enforced:
    - Progress conservation: for every item,
      previous_after == previous_before + current_before, current_after == 0.
    - Reversibility: reopen(close(project)) == project, field for field.
    - Atomicity: close either returns a complete new Project plus its
      snapshot, or raises and the caller's Project is untouched.

Failure modes:
    - StaleAggregationError from ``close`` when the project's nodes are not
      the output of a fresh aggregation pass.
    - ``reopen`` on an empty history is not an error: the project is
      returned unchanged with ``reopened=False``.

Usage:
    from wbs_engines.rollover import MeasurementRollover

    rollover = MeasurementRollover(clock=SystemClock())
    result = rollover.close(project)
    save(result.project)          # replaces the whole project record
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date

from wbs_engines.aggregation import AggregationEngine, AggregationResult
from wbs_engines.overrides import resolve_grand_totals
from wbs_engines.tracer import traced_engine
from wbs_kernel.domain.clock import Clock, SystemClock
from wbs_kernel.domain.nodes import CategoryNode, ItemNode, WorkNode, clone_nodes
from wbs_kernel.domain.numeric import ZERO, round_money
from wbs_kernel.domain.project import MeasurementSnapshot, PeriodTotals, Project
from wbs_kernel.exceptions import StaleAggregationError
from wbs_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.rollover")

NOTHING_TO_UNDO = "nothing to undo"


@dataclass(frozen=True)
class RolloverResult:
    """
    Outcome of a period close.

    Guarantees:
        - ``project.history[-1] is snapshot``.
        - ``project.measurement_number == snapshot.measurement_number + 1``.
    """

    project: Project
    snapshot: MeasurementSnapshot


@dataclass(frozen=True)
class ReopenResult:
    """Outcome of a reopen; ``snapshot`` is the one that was removed."""

    project: Project
    snapshot: MeasurementSnapshot | None
    reopened: bool

    @property
    def message(self) -> str:
        if not self.reopened:
            return NOTHING_TO_UNDO
        return f"measurement {self.project.measurement_number} reopened"


def rotate_progress(nodes: Iterable[WorkNode]) -> tuple[WorkNode, ...]:
    """
    Move each item's current progress into its previous progress.

    Items: previous += current (quantity and total), current fields reset.
    Categories: current fields reset; their other totals are rebuilt on the
    next aggregation pass.
    """
    rotated: list[WorkNode] = []
    for node in nodes:
        if isinstance(node, ItemNode):
            rotated.append(replace(
                node,
                previous_quantity=node.previous_quantity + node.current_quantity,
                previous_total=round_money(node.previous_total + node.current_total),
                current_quantity=ZERO,
                current_total=ZERO,
                current_percentage=ZERO,
            ))
        elif isinstance(node, CategoryNode):
            rotated.append(replace(node, current_total=ZERO, current_percentage=ZERO))
        else:
            rotated.append(node)
    return tuple(rotated)


class MeasurementRollover:
    """
    Measurement period state machine.

    Contract:
        Pure with respect to its inputs: the Project passed in is never
        modified. Callers persist the returned Project as one atomic
        replacement (tree, history, counter and date together).
    Non-goals:
        - No partial closes and no concurrent closes; edits are serialized
          by the caller.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        engine: AggregationEngine | None = None,
    ):
        self._clock = clock or SystemClock()
        self._engine = engine or AggregationEngine()

    def _require_aggregated(self, project: Project) -> AggregationResult:
        result = self._engine.aggregate(project.nodes, markup_rate=project.markup_rate)
        fresh_by_id = {n.id: n for n in result.nodes}
        mismatched: list[str] = []
        seen: set[str] = set()
        for stored in project.nodes:
            # Duplicated ids never survive aggregation, so they count as stale.
            if stored.id in seen or fresh_by_id[stored.id] != stored:
                mismatched.append(stored.id)
            seen.add(stored.id)
        if mismatched:
            logger.warning("measurement_close_rejected_stale", extra={
                "project_id": project.id,
                "mismatched_count": len(mismatched),
            })
            raise StaleAggregationError(project.id, mismatched)
        return result

    @traced_engine("measurement_close", "1.0", fingerprint_fields=("close_date",))
    def close(
        self,
        project: Project,
        close_date: date | None = None,
        next_reference_date: date | None = None,
    ) -> RolloverResult:
        """
        Close the current measurement period.

        Args:
            project: Project whose nodes are already aggregated.
            close_date: Date recorded on the snapshot (default: clock today).
            next_reference_date: Reference date of the next period
                (default: ``close_date``).

        Returns:
            RolloverResult with the rotated, re-aggregated project and the
            snapshot that was appended to its history.

        Raises:
            StaleAggregationError: if ``project.nodes`` is not aggregated.
        """
        close_date = close_date or self._clock.today()
        with LogContext.bind(
            project_id=project.id,
            measurement_number=project.measurement_number,
        ):
            aggregated = self._require_aggregated(project)
            grand = resolve_grand_totals(aggregated.totals, project)

            snapshot = MeasurementSnapshot(
                measurement_number=project.measurement_number,
                close_date=close_date,
                reference_date=project.reference_date,
                nodes=clone_nodes(project.nodes),
                totals=PeriodTotals(
                    contract=grand.contract,
                    period=grand.current,
                    cumulative=grand.cumulative,
                    progress=grand.progress,
                ),
                current_total_override=project.current_total_override,
            )

            rotated = self._engine.aggregate(
                rotate_progress(project.nodes),
                markup_rate=project.markup_rate,
            ).nodes
            closed = replace(
                project,
                nodes=rotated,
                history=project.history + (snapshot,),
                measurement_number=project.measurement_number + 1,
                reference_date=next_reference_date or close_date,
                current_total_override=None,
            )

            logger.info("measurement_closed", extra={
                "closed_measurement": snapshot.measurement_number,
                "next_measurement": closed.measurement_number,
                "close_date": close_date,
                "period_total": str(snapshot.totals.period),
                "cumulative_total": str(snapshot.totals.cumulative),
                "progress": str(snapshot.totals.progress),
                "history_length": len(closed.history),
            })
        return RolloverResult(project=closed, snapshot=snapshot)

    def reopen(self, project: Project) -> ReopenResult:
        """
        Undo the most recent close.

        Restores the snapshot's node collection, measurement number,
        reference date and current-total override, and removes the snapshot
        from history. With an empty history the project is returned as is.
        """
        with LogContext.bind(
            project_id=project.id,
            measurement_number=project.measurement_number,
        ):
            snapshot = project.latest_snapshot
            if snapshot is None:
                logger.info("measurement_reopen_nothing_to_undo")
                return ReopenResult(project=project, snapshot=None, reopened=False)

            restored = replace(
                project,
                nodes=clone_nodes(snapshot.nodes),
                history=project.history[:-1],
                measurement_number=snapshot.measurement_number,
                reference_date=snapshot.reference_date,
                current_total_override=snapshot.current_total_override,
            )
            logger.info("measurement_reopened", extra={
                "reopened_measurement": snapshot.measurement_number,
                "history_length": len(restored.history),
            })
        return ReopenResult(project=restored, snapshot=snapshot, reopened=True)
