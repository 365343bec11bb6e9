"""
Pure domain layer.

This module contains the budget tree's data types and numeric policy
with NO dependencies on:
- Storage
- Time/clock (except the injectable Clock interface)
- I/O

All domain objects are immutable and deterministic.
"""

from wbs_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from wbs_kernel.domain.nodes import (
    CategoryNode,
    ItemNode,
    NodeKind,
    TreeNode,
    WorkNode,
    clone_node,
    clone_nodes,
    index_by_id,
    with_parent,
)
from wbs_kernel.domain.numeric import (
    ZERO,
    apply_markup,
    clamp_non_negative,
    extended_total,
    markup_factor,
    percentage_of,
    round_money,
    sum_money,
    to_decimal,
    truncate_money,
)
from wbs_kernel.domain.project import (
    MeasurementSnapshot,
    PeriodTotals,
    Project,
    clone_snapshot,
    create_project,
)

__all__ = [
    "CategoryNode",
    "Clock",
    "DeterministicClock",
    "ItemNode",
    "MeasurementSnapshot",
    "NodeKind",
    "PeriodTotals",
    "Project",
    "SystemClock",
    "TreeNode",
    "WorkNode",
    "ZERO",
    "apply_markup",
    "clamp_non_negative",
    "clone_node",
    "clone_nodes",
    "clone_snapshot",
    "create_project",
    "extended_total",
    "index_by_id",
    "markup_factor",
    "percentage_of",
    "round_money",
    "sum_money",
    "to_decimal",
    "truncate_money",
    "with_parent",
]
