"""
Module: wbs_engines.editing
Responsibility:
    Source-field writes coming from editing surfaces: quantities, prices,
    progress and labels. Every numeric input is clamped to zero or above at
    this boundary, before it is stored on a node.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Functions take the flat collection and return a new one.

Invariants enforced:
    - Quantities and prices stored on nodes are never negative.
    - Derived fields are never written here, apart from the back-derived
      prices of ``set_unit_price_including_markup`` / ``set_contract_total``.
      Callers re-run aggregation afterwards.

Failure modes:
    - NodeNotFoundError for an unknown id.
    - NodeKindError when an item-only field is written on a category.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from wbs_engines.aggregation import AggregationEngine
from wbs_kernel.domain.nodes import ItemNode, NodeKind, WorkNode, index_by_id
from wbs_kernel.domain.numeric import (
    HUNDRED,
    ZERO,
    Numeric,
    clamp_non_negative,
    markup_factor,
    round_money,
    truncate_money,
)
from wbs_kernel.domain.project import Project
from wbs_kernel.exceptions import NodeKindError, NodeNotFoundError
from wbs_kernel.logging_config import get_logger

logger = get_logger("engines.editing")


def _update(nodes: Sequence[WorkNode], node_id: str, **changes: Any) -> tuple[WorkNode, ...]:
    nodes = tuple(nodes)
    if node_id not in index_by_id(nodes):
        raise NodeNotFoundError(node_id)
    logger.debug("node_fields_updated", extra={
        "node_id": node_id,
        "fields": sorted(changes),
    })
    return tuple(replace(n, **changes) if n.id == node_id else n for n in nodes)


def _item(nodes: Sequence[WorkNode], node_id: str) -> ItemNode:
    node = index_by_id(nodes).get(node_id)
    if node is None:
        raise NodeNotFoundError(node_id)
    if not isinstance(node, ItemNode):
        raise NodeKindError(node_id, expected=NodeKind.ITEM.value, actual=node.kind.value)
    return node


def rename_node(nodes: Sequence[WorkNode], node_id: str, name: str) -> tuple[WorkNode, ...]:
    return _update(nodes, node_id, name=name.strip())


def set_item_labels(
    nodes: Sequence[WorkNode],
    node_id: str,
    *,
    unit: str | None = None,
    code: str | None = None,
    source: str | None = None,
) -> tuple[WorkNode, ...]:
    """Update unit / code / source metadata; ``None`` leaves a label as is."""
    _item(nodes, node_id)
    changes = {
        key: value
        for key, value in (("unit", unit), ("code", code), ("source", source))
        if value is not None
    }
    if not changes:
        return tuple(nodes)
    return _update(nodes, node_id, **changes)


def set_contract_quantity(
    nodes: Sequence[WorkNode], node_id: str, quantity: Numeric
) -> tuple[WorkNode, ...]:
    _item(nodes, node_id)
    return _update(nodes, node_id, contract_quantity=clamp_non_negative(quantity))


def set_unit_price_excluding_markup(
    nodes: Sequence[WorkNode], node_id: str, price: Numeric
) -> tuple[WorkNode, ...]:
    _item(nodes, node_id)
    return _update(nodes, node_id, unit_price_excluding_markup=clamp_non_negative(price))


def set_unit_price_including_markup(
    nodes: Sequence[WorkNode],
    node_id: str,
    price: Numeric,
    markup_rate: Numeric,
) -> tuple[WorkNode, ...]:
    """
    Enter the marked-up unit price directly.

    The stored base price is back-derived as
    ``truncate(price / (1 + markup_rate / 100))``; aggregation then rebuilds
    the marked-up price from that base.
    """
    _item(nodes, node_id)
    marked_up = clamp_non_negative(price)
    factor = markup_factor(clamp_non_negative(markup_rate))
    return _update(
        nodes,
        node_id,
        unit_price_including_markup=marked_up,
        unit_price_excluding_markup=truncate_money(marked_up / factor),
    )


def set_contract_total(
    nodes: Sequence[WorkNode],
    node_id: str,
    total: Numeric,
    markup_rate: Numeric,
) -> tuple[WorkNode, ...]:
    """
    Enter the contract total; the unit price is solved from the quantity.

    Ignored (collection returned unchanged) when the contract quantity is 0,
    since no price can produce a non-zero total.
    """
    item = _item(nodes, node_id)
    if item.contract_quantity <= ZERO:
        logger.debug("contract_total_ignored_zero_quantity", extra={"node_id": node_id})
        return tuple(nodes)
    unit_price = round_money(clamp_non_negative(total) / item.contract_quantity)
    factor = markup_factor(clamp_non_negative(markup_rate))
    return _update(
        nodes,
        node_id,
        unit_price_including_markup=unit_price,
        unit_price_excluding_markup=round_money(unit_price / factor),
    )


def set_current_quantity(
    nodes: Sequence[WorkNode], node_id: str, quantity: Numeric
) -> tuple[WorkNode, ...]:
    _item(nodes, node_id)
    return _update(nodes, node_id, current_quantity=clamp_non_negative(quantity))


def set_current_percentage(
    nodes: Sequence[WorkNode], node_id: str, percentage: Numeric
) -> tuple[WorkNode, ...]:
    """Record this period's progress as a percentage of the contract quantity."""
    item = _item(nodes, node_id)
    pct = clamp_non_negative(percentage)
    return _update(
        nodes,
        node_id,
        current_quantity=round_money(pct / HUNDRED * item.contract_quantity),
        current_percentage=pct,
    )


def set_markup_rate(
    project: Project,
    markup_rate: Numeric,
    engine: AggregationEngine | None = None,
) -> Project:
    """
    Change the project markup rate and resynchronise every item price.

    Recorded progress is preserved; only the marked-up prices and the totals
    that depend on them are re-derived. Categories are refreshed on the next
    aggregation pass.
    """
    rate = clamp_non_negative(markup_rate)
    engine = engine or AggregationEngine()
    nodes = engine.force_recalculate(project.nodes, markup_rate=rate)
    logger.info("markup_rate_changed", extra={
        "project_id": project.id,
        "old_markup_rate": str(project.markup_rate),
        "new_markup_rate": str(rate),
    })
    return replace(project, markup_rate=rate, nodes=nodes)
