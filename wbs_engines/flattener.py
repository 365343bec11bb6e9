"""
Module: wbs_engines.flattener
Responsibility:
    Turn a processed forest into the ordered, depth-annotated rows a tabular
    view renders, honouring a set of expanded category ids.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Pre-order: every node appears once, its visible children directly
      after it at ``depth + 1``.
    - Collapsing hides a whole subtree without altering any node.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from wbs_kernel.domain.nodes import TreeNode, WorkNode


@dataclass(frozen=True)
class FlatRow:
    """One visible row: the node, its depth, and whether it can expand."""

    node: WorkNode
    depth: int
    has_children: bool = False

    @property
    def id(self) -> str:
        return self.node.id


def _iter_rows(
    forest: Iterable[TreeNode],
    expanded_ids: frozenset[str],
    depth: int,
) -> Iterator[FlatRow]:
    for tree in forest:
        yield FlatRow(node=tree.node, depth=depth, has_children=bool(tree.children))
        if tree.is_category and tree.id in expanded_ids:
            yield from _iter_rows(tree.children, expanded_ids, depth + 1)


def flatten(
    forest: Sequence[TreeNode],
    expanded_ids: Iterable[str] = (),
    depth: int = 0,
) -> tuple[FlatRow, ...]:
    """
    Pre-order rows for ``forest``.

    Children are included only for categories whose id is in
    ``expanded_ids``. The result is a tuple, so it can be iterated any number
    of times.
    """
    return tuple(_iter_rows(forest, frozenset(expanded_ids), depth))


def expand_all_ids(nodes: Iterable[WorkNode]) -> frozenset[str]:
    """Every category id: the "expand all" set. "Collapse all" is empty."""
    return frozenset(n.id for n in nodes if n.is_category)


def filter_rows(rows: Iterable[FlatRow], query: str) -> tuple[FlatRow, ...]:
    """
    Rows whose name contains ``query`` (case-insensitive) or whose WBS path
    contains it. A blank query keeps every row.
    """
    rows = tuple(rows)
    needle = query.strip()
    if not needle:
        return rows
    lowered = needle.lower()
    return tuple(
        row for row in rows
        if lowered in row.node.name.lower() or needle in row.node.wbs_path
    )
