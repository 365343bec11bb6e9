"""
Module: wbs_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines. This is the canonical import surface for callers
    (editing surfaces, period-close screens, storage adapters).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import wbs_kernel (and sibling engine modules).
    MUST NOT import wbs_config.

Invariants enforced:
    - Purity: engines never call ``datetime.now()`` or ``date.today()``.
      The rollover reads dates from an injected Clock.
    - Decimal-only arithmetic: every amount is a ``Decimal``.
    - Determinism: identical inputs always produce identical outputs.

Failure modes:
    - CyclicReparentError from ``reparent``.
    - NodeNotFoundError / NodeKindError from editing and insert/remove.
    - StaleAggregationError from ``MeasurementRollover.close``.

Audit relevance:
    ``aggregate``, ``force_recalculate`` and ``close`` are traced via the
    ``@traced_engine`` decorator, emitting WBS_ENGINE_TRACE log records with
    engine name, version, input fingerprint and duration.

Usage:
    from wbs_engines import AggregationEngine, flatten, reparent, Position

    result = AggregationEngine().aggregate(nodes, markup_rate=project.markup_rate)
    rows = flatten(result.forest, expanded_ids)
"""

from wbs_kernel.logging_config import get_logger

logger = get_logger("engines")

from wbs_engines.aggregation import (
    AggregationEngine,
    AggregationResult,
    RootTotals,
    derive_category,
    derive_item,
)
from wbs_engines.editing import (
    rename_node,
    set_contract_quantity,
    set_contract_total,
    set_current_percentage,
    set_current_quantity,
    set_item_labels,
    set_markup_rate,
    set_unit_price_excluding_markup,
    set_unit_price_including_markup,
)
from wbs_engines.flattener import FlatRow, expand_all_ids, filter_rows, flatten
from wbs_engines.overrides import (
    GrandTotals,
    clear_contract_total_override,
    clear_current_total_override,
    project_grand_totals,
    resolve_grand_totals,
    set_contract_total_override,
    set_current_total_override,
)
from wbs_engines.rollover import (
    MeasurementRollover,
    ReopenResult,
    RolloverResult,
    rotate_progress,
)
from wbs_engines.structure import (
    Direction,
    Position,
    descendant_ids,
    insert_node,
    normalize_sibling_order,
    remove_node,
    reparent,
    swap_with_sibling,
)
from wbs_engines.tree_builder import build_tree, iter_forest

__all__ = [
    # Aggregation
    "AggregationEngine",
    "AggregationResult",
    "RootTotals",
    "derive_category",
    "derive_item",
    # Editing
    "rename_node",
    "set_contract_quantity",
    "set_contract_total",
    "set_current_percentage",
    "set_current_quantity",
    "set_item_labels",
    "set_markup_rate",
    "set_unit_price_excluding_markup",
    "set_unit_price_including_markup",
    # Flattener
    "FlatRow",
    "expand_all_ids",
    "filter_rows",
    "flatten",
    # Overrides
    "GrandTotals",
    "clear_contract_total_override",
    "clear_current_total_override",
    "project_grand_totals",
    "resolve_grand_totals",
    "set_contract_total_override",
    "set_current_total_override",
    # Rollover
    "MeasurementRollover",
    "ReopenResult",
    "RolloverResult",
    "rotate_progress",
    # Structure
    "Direction",
    "Position",
    "descendant_ids",
    "insert_node",
    "normalize_sibling_order",
    "remove_node",
    "reparent",
    "swap_with_sibling",
    # Tree builder
    "build_tree",
    "iter_forest",
]

logger.debug("engines_package_loaded", extra={
    "module_count": 7,
    "modules": [
        "tree_builder", "aggregation", "structure", "flattener",
        "editing", "overrides", "rollover",
    ],
})
