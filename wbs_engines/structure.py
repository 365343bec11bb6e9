"""
Module: wbs_engines.structure
Responsibility:
    Structural edits on the flat node collection: move a node relative to
    another (before / after / inside a category), swap a node with its
    adjacent sibling, insert and remove nodes, and keep sibling ``order``
    values dense.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Every function takes a collection and returns a new one; inputs are
    never mutated.

Invariants enforced:
    - Dense sibling order: after every successful edit each sibling group
      carries orders 0..n-1 with no gaps or duplicates. Groups follow
      ``tree_builder.resolve_parent``, so they are the groups the built
      forest shows.
    - Only categories parent: a node whose parent cannot be resolved is
      rewritten to a root by any edit that changes the collection.
    - Acyclic tree: ``reparent`` refuses to place a node under itself or any
      of its descendants.

Failure modes:
    - CyclicReparentError from ``reparent`` when the move would create a
      cycle. This is the one structural error meant for the end user.
    - NodeNotFoundError / NodeKindError from ``insert_node`` and
      ``remove_node`` on unknown ids or non-category parents.
    - DuplicateNodeError from ``insert_node`` when the id is taken.
    - ``reparent`` and ``swap_with_sibling`` are no-ops (input returned
      unchanged) for unknown ids, self-moves and missing neighbours.

Callers re-run ``AggregationEngine.aggregate`` after any edit before
trusting derived totals or WBS paths.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import replace
from enum import Enum

from wbs_engines.tree_builder import resolve_parent
from wbs_kernel.domain.nodes import WorkNode, index_by_id
from wbs_kernel.exceptions import (
    CyclicReparentError,
    DuplicateNodeError,
    NodeKindError,
    NodeNotFoundError,
)
from wbs_kernel.logging_config import get_logger

logger = get_logger("engines.structure")


class Position(str, Enum):
    """Where to drop a node relative to a target."""

    BEFORE = "before"
    AFTER = "after"
    INSIDE = "inside"  # Last child of a category target


class Direction(str, Enum):
    """Sibling swap direction."""

    UP = "up"
    DOWN = "down"


def _sorted_group(nodes: Sequence[WorkNode], parent_id: str | None) -> list[WorkNode]:
    # sorted() is stable, so equal orders keep collection sequence
    return sorted(
        (n for n in nodes if n.parent_id == parent_id),
        key=lambda n: n.order,
    )


def _apply_orders(
    nodes: Iterable[WorkNode],
    orders: dict[str, int],
) -> tuple[WorkNode, ...]:
    return tuple(
        replace(n, order=orders[n.id]) if n.id in orders and n.order != orders[n.id] else n
        for n in nodes
    )


def normalize_sibling_order(nodes: Iterable[WorkNode]) -> tuple[WorkNode, ...]:
    """
    Renumber every sibling group to 0..n-1.

    Siblings are grouped the way ``build_tree`` places them: a node whose
    parent is unknown, an item, or part of a parent cycle joins the root
    group and its ``parent_id`` is rewritten to None. Relative position is
    kept: siblings are ranked by their current ``order`` and ties keep
    collection sequence.
    """
    nodes = tuple(nodes)
    index = index_by_id(nodes)
    parents: dict[str, str | None] = {}
    groups: dict[str | None, list[WorkNode]] = defaultdict(list)
    for node in index.values():
        parents[node.id] = resolve_parent(node, index)
        groups[parents[node.id]].append(node)

    promoted = [
        node_id for node_id, node in index.items()
        if node.parent_id is not None and parents[node_id] is None
    ]
    if promoted:
        logger.warning("structure_nodes_promoted_to_root", extra={
            "node_ids": promoted,
        })

    orders: dict[str, int] = {}
    for members in groups.values():
        for position, node in enumerate(sorted(members, key=lambda n: n.order)):
            orders[node.id] = position

    # Later duplicates of an id are left as they are; build_tree drops them.
    return tuple(
        replace(n, parent_id=parents[n.id], order=orders[n.id])
        if n is index[n.id] and (n.parent_id, n.order) != (parents[n.id], orders[n.id])
        else n
        for n in nodes
    )


def descendant_ids(nodes: Iterable[WorkNode], node_id: str) -> set[str]:
    """Ids of every node below ``node_id``; ``node_id`` itself excluded."""
    children: dict[str, list[str]] = defaultdict(list)
    for node in nodes:
        if node.parent_id is not None:
            children[node.parent_id].append(node.id)

    found: set[str] = set()
    pending = list(children.get(node_id, ()))
    while pending:
        current = pending.pop()
        if current in found or current == node_id:
            continue
        found.add(current)
        pending.extend(children.get(current, ()))
    return found


def reparent(
    nodes: Sequence[WorkNode],
    source_id: str,
    target_id: str,
    position: Position | str,
) -> tuple[WorkNode, ...]:
    """
    Move ``source_id`` before, after or inside ``target_id``.

    Preconditions:
        ``position`` is a Position or its string value.

    Postconditions:
        - ``inside``: source becomes the last child of the target category.
        - ``before`` / ``after``: source joins the target's sibling group
          directly before / after the target.
        - Every sibling group is dense (0..n-1).
        - Input returned unchanged when ``source_id == target_id``, when
          either id is unknown, or when ``inside`` targets an item.

    Raises:
        CyclicReparentError: if the new parent would be the source itself
            or one of its descendants.
    """
    position = Position(position)
    nodes = tuple(nodes)

    if source_id == target_id:
        logger.debug("reparent_noop_self", extra={"node_id": source_id})
        return nodes

    index = index_by_id(nodes)
    source = index.get(source_id)
    target = index.get(target_id)
    if source is None or target is None:
        logger.debug("reparent_noop_unknown_id", extra={
            "source_id": source_id,
            "target_id": target_id,
        })
        return nodes

    if position is Position.INSIDE and not target.is_category:
        logger.warning("reparent_noop_item_target", extra={
            "source_id": source_id,
            "target_id": target_id,
        })
        return nodes

    old_parent_id = source.parent_id
    nodes = normalize_sibling_order(nodes)
    index = index_by_id(nodes)
    source, target = index[source_id], index[target_id]
    if position is Position.INSIDE:
        new_parent_id: str | None = target.id
    else:
        new_parent_id = target.parent_id

    if new_parent_id is not None and (
        new_parent_id == source.id or new_parent_id in descendant_ids(nodes, source.id)
    ):
        logger.warning("reparent_rejected_cycle", extra={
            "source_id": source_id,
            "target_id": target_id,
            "position": position.value,
        })
        raise CyclicReparentError(source_id, target_id, position.value)

    siblings = [n for n in _sorted_group(nodes, new_parent_id) if n.id != source.id]
    if position is Position.INSIDE:
        insert_at = len(siblings)
    else:
        target_at = next(i for i, n in enumerate(siblings) if n.id == target.id)
        insert_at = target_at if position is Position.BEFORE else target_at + 1
    siblings.insert(insert_at, source)
    orders = {n.id: i for i, n in enumerate(siblings)}

    moved = tuple(
        replace(n, parent_id=new_parent_id, order=orders[n.id]) if n.id == source.id else n
        for n in nodes
    )
    result = normalize_sibling_order(_apply_orders(moved, orders))

    logger.info("reparent_applied", extra={
        "source_id": source_id,
        "target_id": target_id,
        "position": position.value,
        "old_parent_id": old_parent_id,
        "new_parent_id": new_parent_id,
        "new_order": orders[source.id],
    })
    return result


def swap_with_sibling(
    nodes: Sequence[WorkNode],
    node_id: str,
    direction: Direction | str,
) -> tuple[WorkNode, ...]:
    """
    Exchange ``order`` with the adjacent sibling in ``direction``.

    Only the two ``order`` values change when the group is already dense;
    a group with gaps or duplicates is densified first. Input returned
    unchanged when the node is unknown or has no neighbour that way.
    """
    direction = Direction(direction)
    nodes = tuple(nodes)
    if node_id not in index_by_id(nodes):
        return nodes

    normalized = normalize_sibling_order(nodes)
    node = index_by_id(normalized)[node_id]
    group = _sorted_group(normalized, node.parent_id)
    at = next(i for i, n in enumerate(group) if n.id == node_id)
    neighbour_at = at - 1 if direction is Direction.UP else at + 1
    if neighbour_at < 0 or neighbour_at >= len(group):
        logger.debug("swap_noop_no_neighbour", extra={
            "node_id": node_id,
            "direction": direction.value,
        })
        return nodes

    neighbour = group[neighbour_at]
    orders = {node_id: neighbour.order, neighbour.id: node.order}
    logger.info("swap_applied", extra={
        "node_id": node_id,
        "neighbour_id": neighbour.id,
        "direction": direction.value,
    })
    return _apply_orders(normalized, orders)


def insert_node(
    nodes: Sequence[WorkNode],
    node: WorkNode,
    parent_id: str | None = None,
) -> tuple[WorkNode, ...]:
    """
    Append ``node`` as the last child of ``parent_id`` (or last root).

    Raises:
        NodeNotFoundError: unknown ``parent_id``.
        NodeKindError: ``parent_id`` names an item.
        DuplicateNodeError: a node with the same id already exists.
    """
    nodes = normalize_sibling_order(nodes)
    index = index_by_id(nodes)
    if node.id in index:
        raise DuplicateNodeError(node.id)
    if parent_id is not None:
        parent = index.get(parent_id)
        if parent is None:
            raise NodeNotFoundError(parent_id)
        if not parent.is_category:
            raise NodeKindError(parent_id, expected="category", actual=parent.kind.value)

    order = max((n.order for n in nodes if n.parent_id == parent_id), default=-1) + 1
    logger.info("node_inserted", extra={
        "node_id": node.id,
        "kind": node.kind.value,
        "parent_id": parent_id,
        "order": order,
    })
    return normalize_sibling_order(nodes + (replace(node, parent_id=parent_id, order=order),))


def remove_node(nodes: Sequence[WorkNode], node_id: str) -> tuple[WorkNode, ...]:
    """
    Delete ``node_id`` together with its entire subtree.

    Raises:
        NodeNotFoundError: unknown ``node_id``.
    """
    nodes = tuple(nodes)
    if node_id not in index_by_id(nodes):
        raise NodeNotFoundError(node_id)

    doomed = descendant_ids(nodes, node_id) | {node_id}
    remaining = tuple(n for n in nodes if n.id not in doomed)
    logger.info("node_removed", extra={
        "node_id": node_id,
        "removed_count": len(nodes) - len(remaining),
    })
    return normalize_sibling_order(remaining)
