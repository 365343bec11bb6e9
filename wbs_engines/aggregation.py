"""
Module: wbs_engines.aggregation
Responsibility:
    Walk the forest, assign WBS path labels, and derive every monetary and
    percentage field: item figures from quantities, prices and the project
    markup rate; category figures as sums of their children.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import wbs_kernel and sibling engine modules.

Invariants enforced:
    - Rollup: every category total equals the rounded sum of its direct
      children's totals, recursively.
    - Price policy: marked-up unit price and every quantity x price total
      are truncated to cents; sums and percentages are rounded half-up.
    - Percentages of a zero contract are 0.
    - WBS paths are positional ("2.1.3") and recomputed on every pass.

Failure modes:
    - None raised for well-formed nodes. The forest produced by
      ``build_tree`` is acyclic, so recursion always terminates.

Usage:
    from wbs_engines.aggregation import AggregationEngine

    engine = AggregationEngine()
    result = engine.aggregate(nodes=project.nodes, markup_rate=project.markup_rate)
    result.totals.contract_total
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal

from wbs_engines.tracer import traced_engine
from wbs_engines.tree_builder import build_tree, iter_forest
from wbs_kernel.domain.nodes import CategoryNode, ItemNode, TreeNode, WorkNode
from wbs_kernel.domain.numeric import (
    ZERO,
    Numeric,
    apply_markup,
    extended_total,
    percentage_of,
    round_money,
    sum_money,
    to_decimal,
)
from wbs_kernel.logging_config import get_logger

logger = get_logger("engines.aggregation")


@dataclass(frozen=True)
class RootTotals:
    """
    Computed grand totals across all root nodes.

    Guarantees:
        - Each field is the rounded sum of the corresponding root field.
        - Never reflects a manual override; see ``wbs_engines.overrides``.
    """

    contract_total: Decimal = ZERO
    previous_total: Decimal = ZERO
    current_total: Decimal = ZERO
    cumulative_total: Decimal = ZERO
    remaining_total: Decimal = ZERO
    cumulative_percentage: Decimal = ZERO

    @classmethod
    def from_roots(cls, roots: Iterable[WorkNode]) -> RootTotals:
        roots = list(roots)
        contract = sum_money(r.contract_total for r in roots)
        cumulative = sum_money(r.cumulative_total for r in roots)
        return cls(
            contract_total=contract,
            previous_total=sum_money(r.previous_total for r in roots),
            current_total=sum_money(r.current_total for r in roots),
            cumulative_total=cumulative,
            remaining_total=sum_money(r.remaining_total for r in roots),
            cumulative_percentage=percentage_of(cumulative, contract),
        )


@dataclass(frozen=True)
class AggregationResult:
    """
    Output of a whole-forest aggregation pass.

    Guarantees:
        - ``nodes`` holds the processed nodes in input sequence (duplicates
          after the first occurrence are left out).
        - ``forest`` holds the same processed nodes, nested and ordered.
    """

    forest: tuple[TreeNode, ...]
    nodes: tuple[WorkNode, ...]
    totals: RootTotals

    def node(self, node_id: str) -> WorkNode | None:
        for candidate in self.nodes:
            if candidate.id == node_id:
                return candidate
        return None


def derive_item(item: ItemNode, markup_rate: Numeric, wbs_path: str | None = None) -> ItemNode:
    """
    Recompute every derived field of an item.

    ``previous_quantity`` and ``current_quantity`` are read, never changed.
    """
    unit_price = apply_markup(item.unit_price_excluding_markup, markup_rate)
    cumulative_quantity = item.previous_quantity + item.current_quantity
    remaining_quantity = item.contract_quantity - cumulative_quantity

    return replace(
        item,
        wbs_path=item.wbs_path if wbs_path is None else wbs_path,
        unit_price_including_markup=unit_price,
        contract_total=extended_total(item.contract_quantity, unit_price),
        previous_total=extended_total(item.previous_quantity, unit_price),
        current_total=extended_total(item.current_quantity, unit_price),
        current_percentage=percentage_of(item.current_quantity, item.contract_quantity),
        cumulative_quantity=cumulative_quantity,
        cumulative_total=extended_total(cumulative_quantity, unit_price),
        cumulative_percentage=percentage_of(cumulative_quantity, item.contract_quantity),
        remaining_quantity=remaining_quantity,
        remaining_total=extended_total(remaining_quantity, unit_price),
    )


def derive_category(
    category: CategoryNode,
    children: Sequence[WorkNode],
    wbs_path: str,
) -> CategoryNode:
    """Roll the children's totals up into the category."""
    if not children:
        zero = round_money(ZERO)
        return replace(
            category,
            wbs_path=wbs_path,
            contract_total=zero,
            previous_total=zero,
            current_total=zero,
            current_percentage=zero,
            cumulative_total=zero,
            cumulative_percentage=zero,
            remaining_total=zero,
        )

    contract = sum_money(c.contract_total for c in children)
    current = sum_money(c.current_total for c in children)
    cumulative = sum_money(c.cumulative_total for c in children)
    return replace(
        category,
        wbs_path=wbs_path,
        contract_total=contract,
        previous_total=sum_money(c.previous_total for c in children),
        current_total=current,
        current_percentage=percentage_of(current, contract),
        cumulative_total=cumulative,
        cumulative_percentage=percentage_of(cumulative, contract),
        remaining_total=sum_money(c.remaining_total for c in children),
    )


def wbs_label(wbs_prefix: str, sibling_index: int) -> str:
    position = sibling_index + 1
    return f"{wbs_prefix}.{position}" if wbs_prefix else f"{position}"


class AggregationEngine:
    """
    Derive all budget figures for a forest.

    Contract:
        Pure functions, no I/O. Nothing is memoized: callers re-run the
        engine over the whole forest whenever the markup rate or any source
        field changes.
    Guarantees:
        - The markup rate is a project-level argument, never a node field.
        - Identical input always yields identical output, WBS paths included.
    Non-goals:
        - Does not clamp or validate source values; editing clamps them.
    """

    def process(
        self,
        tree: TreeNode,
        wbs_prefix: str = "",
        sibling_index: int = 0,
        markup_rate: Numeric = ZERO,
    ) -> TreeNode:
        """
        Label ``tree`` and derive its figures, children first.

        Args:
            tree: Subtree to process.
            wbs_prefix: WBS path of the parent ("" at root level).
            sibling_index: Zero-based position among its siblings.
            markup_rate: Project markup rate in percent.

        Returns:
            A new TreeNode with derived nodes throughout.
        """
        wbs_path = wbs_label(wbs_prefix, sibling_index)
        node = tree.node

        if isinstance(node, ItemNode):
            return TreeNode(node=derive_item(node, markup_rate, wbs_path))

        children = tuple(
            self.process(child, wbs_path, idx, markup_rate)
            for idx, child in enumerate(tree.children)
        )
        return TreeNode(
            node=derive_category(node, [c.node for c in children], wbs_path),
            children=children,
        )

    @traced_engine("aggregation", "1.0", fingerprint_fields=("markup_rate",))
    def aggregate(
        self,
        nodes: Sequence[WorkNode],
        markup_rate: Numeric,
    ) -> AggregationResult:
        """
        Build the forest from ``nodes`` and process every root.

        Returns:
            AggregationResult with the processed forest, the processed flat
            collection and the computed root totals.
        """
        rate = to_decimal(markup_rate)
        forest = tuple(
            self.process(root, "", idx, rate)
            for idx, root in enumerate(build_tree(nodes))
        )

        processed = {tree.id: tree.node for tree in iter_forest(forest)}
        flat: list[WorkNode] = []
        seen: set[str] = set()
        for node in nodes:
            if node.id in seen:
                continue
            seen.add(node.id)
            flat.append(processed[node.id])

        totals = RootTotals.from_roots(root.node for root in forest)
        logger.info("aggregation_completed", extra={
            "node_count": len(flat),
            "root_count": len(forest),
            "markup_rate": str(rate),
            "contract_total": str(totals.contract_total),
            "cumulative_total": str(totals.cumulative_total),
        })
        return AggregationResult(forest=forest, nodes=tuple(flat), totals=totals)

    @traced_engine("force_recalculate", "1.0", fingerprint_fields=("markup_rate",))
    def force_recalculate(
        self,
        nodes: Sequence[WorkNode],
        markup_rate: Numeric,
    ) -> tuple[WorkNode, ...]:
        """
        Re-derive every item's marked-up price and totals at ``markup_rate``.

        Used after the project markup rate changes. Quantities, recorded
        progress and the structure are untouched. Category totals are left
        as they were; run ``aggregate`` before reading them.
        """
        rate = to_decimal(markup_rate)
        recalculated = tuple(
            derive_item(node, rate) if isinstance(node, ItemNode) else node
            for node in nodes
        )
        logger.info("force_recalculate_completed", extra={
            "node_count": len(recalculated),
            "item_count": sum(1 for n in recalculated if isinstance(n, ItemNode)),
            "markup_rate": str(rate),
        })
        return recalculated
