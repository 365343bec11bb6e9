"""
Module: wbs_engines.tree_builder
Responsibility:
    Convert a flat node collection (id, parent_id, order) into a forest of
    ``TreeNode`` values with children sorted by ``order``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import wbs_kernel.

Invariants enforced:
    - No node is silently dropped: a node whose parent id is unknown, whose
      parent is an item, or whose parent chain loops back to itself becomes
      a root.
    - The produced forest is acyclic, so recursive consumers terminate.
    - Sorting is stable: equal ``order`` values keep input sequence.

Failure modes:
    - None raised. Duplicate ids keep the first occurrence; later duplicates
      are logged and left out of the forest.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from wbs_kernel.domain.nodes import TreeNode, WorkNode
from wbs_kernel.logging_config import get_logger

logger = get_logger("engines.tree_builder")


def _order_key(node: WorkNode) -> int:
    return node.order


def _loops_back(node: WorkNode, index: Mapping[str, WorkNode]) -> bool:
    """True when following parent ids from ``node`` returns to ``node``."""
    visited: set[str] = set()
    current = index.get(node.parent_id) if node.parent_id is not None else None
    while current is not None:
        if current.id == node.id:
            return True
        if current.id in visited:
            # A loop further up the chain that does not include this node.
            return False
        visited.add(current.id)
        if current.parent_id is None:
            return False
        current = index.get(current.parent_id)
    return False


_PROMOTION_LEVELS = {
    "tree_orphan_promoted": logging.DEBUG,
    "tree_item_parent_promoted": logging.WARNING,
    "tree_cycle_broken": logging.WARNING,
}


def _promotion_event(node: WorkNode, index: Mapping[str, WorkNode]) -> str | None:
    """Event name for a node that cannot sit under its parent, else None."""
    if node.parent_id is None:
        return None
    parent = index.get(node.parent_id)
    if parent is None:
        return "tree_orphan_promoted"
    if not parent.is_category:
        return "tree_item_parent_promoted"
    if _loops_back(node, index):
        return "tree_cycle_broken"
    return None


def resolve_parent(node: WorkNode, index: Mapping[str, WorkNode]) -> str | None:
    """
    Parent id the forest places ``node`` under.

    None for roots and for nodes promoted to roots: unknown parent, item
    parent, or a parent chain that loops back. Structural edits group
    siblings by this value so their orders match the built forest.
    """
    if _promotion_event(node, index) is not None:
        return None
    return node.parent_id


def _resolve_parent(node: WorkNode, index: Mapping[str, WorkNode]) -> str | None:
    event = _promotion_event(node, index)
    if event is None:
        return node.parent_id
    logger.log(_PROMOTION_LEVELS[event], event, extra={
        "node_id": node.id,
        "parent_id": node.parent_id,
    })
    return None


def _assemble(node: WorkNode, children: Mapping[str, list[WorkNode]]) -> TreeNode:
    ordered = sorted(children[node.id], key=_order_key)
    return TreeNode(
        node=node,
        children=tuple(_assemble(child, children) for child in ordered),
    )


def build_tree(nodes: Iterable[WorkNode]) -> tuple[TreeNode, ...]:
    """
    Build the forest for a flat node collection.

    Preconditions:
        Each node carries ``id``, ``parent_id`` and ``order``. ``children``
        is never required as input.

    Postconditions:
        Returns root ``TreeNode`` values sorted ascending by ``order``, each
        with its children sorted the same way, recursively.
    """
    index: dict[str, WorkNode] = {}
    sequence: list[WorkNode] = []
    for node in nodes:
        if node.id in index:
            logger.warning("tree_duplicate_node_skipped", extra={
                "node_id": node.id,
            })
            continue
        index[node.id] = node
        sequence.append(node)

    children: dict[str, list[WorkNode]] = {node_id: [] for node_id in index}
    roots: list[WorkNode] = []
    for node in sequence:
        parent_id = _resolve_parent(node, index)
        if parent_id is None:
            roots.append(node)
        else:
            children[parent_id].append(node)

    roots.sort(key=_order_key)
    return tuple(_assemble(root, children) for root in roots)


def iter_forest(forest: Sequence[TreeNode]) -> Iterable[TreeNode]:
    """Pre-order traversal across every tree of the forest."""
    for root in forest:
        yield from root.walk()
