"""
Nodes -- Work breakdown structure entries as a tagged union.

Responsibility:
    Defines the two node variants of the budget tree: ``CategoryNode``
    (groups that only aggregate) and ``ItemNode`` (priced line items that
    carry quantities). ``WorkNode`` is their union. ``TreeNode`` wraps a node
    with its ordered children once the flat collection has been built into a
    forest.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Every numeric field is a ``Decimal`` after construction.
    - ``order`` is an ``int``.
    - Items and categories only carry the fields valid for their kind.

Failure modes:
    - ValueError on construction with a non-numeric value in a numeric field.

Non-goals:
    - Nodes do not validate the tree they belong to (parent existence,
      cycles, order density). The engines own those rules.
    - ``wbs_path`` is never a source of truth; it is recomputed on every
      aggregation pass.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from enum import Enum
from typing import ClassVar

from wbs_kernel.domain.numeric import ZERO, to_decimal


class NodeKind(str, Enum):
    """Kind discriminator for work breakdown nodes."""

    CATEGORY = "category"
    ITEM = "item"


def _coerce_numeric_fields(node: object, names: tuple[str, ...]) -> None:
    for name in names:
        value = getattr(node, name)
        if not isinstance(value, Decimal):
            object.__setattr__(node, name, to_decimal(value))
    object.__setattr__(node, "order", int(getattr(node, "order")))


@dataclass(frozen=True, slots=True)
class CategoryNode:
    """
    Grouping entry of the budget tree.

    Contract:
        Every total and percentage is derived from the node's children by the
        aggregation engine. Callers never write them.
    Guarantees:
        - Immutable; edits produce new instances via ``dataclasses.replace``.
    """

    id: str
    parent_id: str | None = None
    order: int = 0
    name: str = ""
    kind: NodeKind = field(default=NodeKind.CATEGORY, init=False)

    # Derived
    wbs_path: str = ""
    contract_total: Decimal = ZERO
    previous_total: Decimal = ZERO
    current_total: Decimal = ZERO
    current_percentage: Decimal = ZERO
    cumulative_total: Decimal = ZERO
    cumulative_percentage: Decimal = ZERO
    remaining_total: Decimal = ZERO

    NUMERIC_FIELDS: ClassVar[tuple[str, ...]] = (
        "contract_total",
        "previous_total",
        "current_total",
        "current_percentage",
        "cumulative_total",
        "cumulative_percentage",
        "remaining_total",
    )

    def __post_init__(self) -> None:
        _coerce_numeric_fields(self, self.NUMERIC_FIELDS)

    @property
    def is_category(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class ItemNode:
    """
    Priced line item of the budget tree.

    Contract:
        Source fields are ``contract_quantity``, ``unit_price_excluding_markup``,
        ``previous_quantity`` and ``current_quantity`` plus the labels.
        Everything else is derived by the aggregation engine from those and
        the project markup rate.
    Guarantees:
        - Immutable; edits produce new instances via ``dataclasses.replace``.
    Non-goals:
        - Does not clamp negative values. Clamping happens at the point of
          mutation (see ``wbs_engines.editing``).
    """

    id: str
    parent_id: str | None = None
    order: int = 0
    name: str = ""
    unit: str = ""
    code: str | None = None
    source: str | None = None
    kind: NodeKind = field(default=NodeKind.ITEM, init=False)

    # Contract
    contract_quantity: Decimal = ZERO
    unit_price_excluding_markup: Decimal = ZERO
    unit_price_including_markup: Decimal = ZERO
    contract_total: Decimal = ZERO

    # Progress
    previous_quantity: Decimal = ZERO
    previous_total: Decimal = ZERO
    current_quantity: Decimal = ZERO
    current_total: Decimal = ZERO
    current_percentage: Decimal = ZERO
    cumulative_quantity: Decimal = ZERO
    cumulative_total: Decimal = ZERO
    cumulative_percentage: Decimal = ZERO
    remaining_quantity: Decimal = ZERO
    remaining_total: Decimal = ZERO

    wbs_path: str = ""

    NUMERIC_FIELDS: ClassVar[tuple[str, ...]] = (
        "contract_quantity",
        "unit_price_excluding_markup",
        "unit_price_including_markup",
        "contract_total",
        "previous_quantity",
        "previous_total",
        "current_quantity",
        "current_total",
        "current_percentage",
        "cumulative_quantity",
        "cumulative_total",
        "cumulative_percentage",
        "remaining_quantity",
        "remaining_total",
    )

    def __post_init__(self) -> None:
        _coerce_numeric_fields(self, self.NUMERIC_FIELDS)

    @property
    def is_category(self) -> bool:
        return False


WorkNode = CategoryNode | ItemNode


@dataclass(frozen=True, slots=True)
class TreeNode:
    """A node together with its children, sorted by ``order``."""

    node: WorkNode
    children: tuple[TreeNode, ...] = ()

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def is_category(self) -> bool:
        return self.node.is_category

    def walk(self) -> Iterable[TreeNode]:
        """Pre-order traversal of this subtree."""
        yield self
        for child in self.children:
            yield from child.walk()


def clone_node(node: WorkNode) -> WorkNode:
    """Field-by-field copy of a node."""
    values = {f.name: getattr(node, f.name) for f in fields(node) if f.init}
    return type(node)(**values)


def clone_nodes(nodes: Iterable[WorkNode]) -> tuple[WorkNode, ...]:
    """Copy a flat node collection, preserving sequence."""
    return tuple(clone_node(n) for n in nodes)


def with_parent(node: WorkNode, parent_id: str | None, order: int) -> WorkNode:
    """Return the node re-homed under ``parent_id`` at ``order``."""
    return replace(node, parent_id=parent_id, order=order)


def index_by_id(nodes: Iterable[WorkNode]) -> dict[str, WorkNode]:
    """Map id -> node; the first occurrence of a duplicated id wins."""
    index: dict[str, WorkNode] = {}
    for node in nodes:
        index.setdefault(node.id, node)
    return index
