"""
Hypothesis-based property tests for the budget tree.

Property-based testing using Hypothesis to generate random forests and edit
sequences, and verify the structural invariants hold.

Properties checked here:
- Rollup: every category total is the sum of its children's totals
- Price policy: item totals are truncated quantity x marked-up price
- Determinism: aggregation yields identical output for identical input
- Dense sibling order after any sequence of reparent / swap edits, in the
  collection and in the built forest, including orphans and item parents
- No node lost by structural edits
- Close then reopen restores the project exactly
- Progress conservation across a close
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from wbs_engines.aggregation import AggregationEngine
from wbs_engines.rollover import MeasurementRollover
from wbs_engines.structure import (
    Direction,
    Position,
    normalize_sibling_order,
    reparent,
    swap_with_sibling,
)
from wbs_engines.tree_builder import build_tree, iter_forest
from wbs_kernel.domain.nodes import CategoryNode, ItemNode, index_by_id
from wbs_kernel.domain.numeric import apply_markup, truncate_money
from wbs_kernel.domain.project import create_project
from wbs_kernel.exceptions import CyclicReparentError

PROPERTY_SETTINGS = settings(
    max_examples=60,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

quantities = st.decimals(
    min_value=0, max_value=10000, places=2, allow_nan=False, allow_infinity=False
)
prices = st.decimals(
    min_value=0, max_value=5000, places=2, allow_nan=False, allow_infinity=False
)
markup_rates = st.decimals(
    min_value=0, max_value=100, places=2, allow_nan=False, allow_infinity=False
)


@composite
def work_nodes(draw, max_nodes=20, lenient=False):
    """
    A flat collection whose parents are always earlier categories and whose
    sibling groups are dense. Collection sequence is shuffled afterwards.

    With ``lenient`` some nodes instead point at an unknown id or at an
    earlier item, with an arbitrary order, the way hand-edited or imported
    data can.
    """
    count = draw(st.integers(min_value=1, max_value=max_nodes))
    nodes = []
    category_ids: list[str] = []
    item_ids: list[str] = []
    next_order: dict[str | None, int] = defaultdict(int)

    for index in range(count):
        node_id = f"n{index}"
        if lenient and draw(st.integers(min_value=0, max_value=4)) == 0:
            parent_id = draw(st.sampled_from([f"ghost{index}", *item_ids]))
            order = draw(st.integers(min_value=0, max_value=3))
        else:
            parent_id = draw(st.sampled_from([None, *category_ids]))
            order = next_order[parent_id]
            next_order[parent_id] += 1

        if draw(st.booleans()):
            nodes.append(CategoryNode(
                id=node_id, parent_id=parent_id, order=order, name=f"Group {index}",
            ))
            category_ids.append(node_id)
        else:
            nodes.append(ItemNode(
                id=node_id,
                parent_id=parent_id,
                order=order,
                name=f"Item {index}",
                contract_quantity=draw(quantities),
                unit_price_excluding_markup=draw(prices),
                previous_quantity=draw(quantities),
                current_quantity=draw(quantities),
            ))
            item_ids.append(node_id)
    return tuple(draw(st.permutations(nodes)))


edit_steps = st.lists(
    st.tuples(
        st.sampled_from(["before", "after", "inside", "up", "down"]),
        st.integers(min_value=0, max_value=1000),
        st.integers(min_value=0, max_value=1000),
    ),
    max_size=15,
)


def _assert_dense(nodes):
    groups = defaultdict(list)
    for node in nodes:
        groups[node.parent_id].append(node.order)
    for parent_id, orders in groups.items():
        assert sorted(orders) == list(range(len(orders))), parent_id


def _assert_forest_dense(forest):
    groups = [(None, forest)]
    groups.extend((t.id, t.children) for t in iter_forest(forest) if t.children)
    for parent_id, members in groups:
        assert [t.node.order for t in members] == list(range(len(members))), parent_id


class TestAggregationProperties:

    @PROPERTY_SETTINGS
    @given(nodes=work_nodes(), markup_rate=markup_rates)
    def test_category_totals_roll_up(self, nodes, markup_rate):
        result = AggregationEngine().aggregate(nodes, markup_rate=markup_rate)

        for tree in iter_forest(result.forest):
            if not tree.is_category or not tree.children:
                continue
            node = tree.node
            children = [c.node for c in tree.children]
            for name in (
                "contract_total",
                "previous_total",
                "current_total",
                "cumulative_total",
                "remaining_total",
            ):
                assert getattr(node, name) == sum(getattr(c, name) for c in children), name

    @PROPERTY_SETTINGS
    @given(nodes=work_nodes(), markup_rate=markup_rates)
    def test_item_totals_use_truncated_prices(self, nodes, markup_rate):
        result = AggregationEngine().aggregate(nodes, markup_rate=markup_rate)

        for node in result.nodes:
            if isinstance(node, ItemNode):
                unit_price = apply_markup(node.unit_price_excluding_markup, markup_rate)
                assert node.unit_price_including_markup == unit_price
                assert node.contract_total == truncate_money(
                    node.contract_quantity * unit_price
                )

    @PROPERTY_SETTINGS
    @given(nodes=work_nodes(), markup_rate=markup_rates)
    def test_every_node_placed_once(self, nodes, markup_rate):
        result = AggregationEngine().aggregate(nodes, markup_rate=markup_rate)
        placed = [t.id for t in iter_forest(result.forest)]
        assert sorted(placed) == sorted(n.id for n in nodes)

    @PROPERTY_SETTINGS
    @given(nodes=work_nodes(), markup_rate=markup_rates)
    def test_deterministic_wbs_paths(self, nodes, markup_rate):
        engine = AggregationEngine()
        first = engine.aggregate(nodes, markup_rate=markup_rate)
        second = engine.aggregate(nodes, markup_rate=markup_rate)
        assert [n.wbs_path for n in first.nodes] == [n.wbs_path for n in second.nodes]
        assert first.totals == second.totals


class TestStructuralEditProperties:

    @PROPERTY_SETTINGS
    @given(nodes=work_nodes(lenient=True), steps=edit_steps)
    def test_dense_order_and_no_loss(self, nodes, steps):
        original_ids = sorted(n.id for n in nodes)
        nodes = normalize_sibling_order(nodes)
        for action, a, b in steps:
            source_id = nodes[a % len(nodes)].id
            target_id = nodes[b % len(nodes)].id
            if action in ("up", "down"):
                nodes = swap_with_sibling(nodes, source_id, Direction(action))
                continue
            try:
                nodes = reparent(nodes, source_id, target_id, Position(action))
            except CyclicReparentError:
                pass

        _assert_dense(nodes)
        forest = build_tree(nodes)
        _assert_forest_dense(forest)
        assert sorted(t.id for t in iter_forest(forest)) == original_ids

        index = index_by_id(nodes)
        for node in nodes:
            if node.parent_id is not None:
                assert index[node.parent_id].is_category

    @PROPERTY_SETTINGS
    @given(nodes=work_nodes(lenient=True))
    def test_normalize_matches_forest(self, nodes):
        normalized = normalize_sibling_order(nodes)
        before = [t.id for t in iter_forest(build_tree(nodes))]
        after = [t.id for t in iter_forest(build_tree(normalized))]
        assert after == before
        assert normalize_sibling_order(normalized) == normalized


class TestRolloverProperties:

    def _project(self, nodes, markup_rate):
        aggregated = AggregationEngine().aggregate(nodes, markup_rate=markup_rate).nodes
        return create_project(
            "Property",
            markup_rate=markup_rate,
            measurement_number=1,
            reference_date=date(2024, 1, 1),
            nodes=aggregated,
            project_id="prop",
        )

    @PROPERTY_SETTINGS
    @given(nodes=work_nodes(), markup_rate=markup_rates)
    def test_reopen_inverts_close(self, nodes, markup_rate):
        project = self._project(nodes, markup_rate)
        rollover = MeasurementRollover()

        closed = rollover.close(project, close_date=date(2024, 1, 31)).project
        assert rollover.reopen(closed).project == project

    @PROPERTY_SETTINGS
    @given(nodes=work_nodes(), markup_rate=markup_rates)
    def test_progress_conserved(self, nodes, markup_rate):
        project = self._project(nodes, markup_rate)
        closed = MeasurementRollover().close(project, close_date=date(2024, 1, 31)).project

        after = index_by_id(closed.nodes)
        for before in project.nodes:
            if isinstance(before, ItemNode):
                rotated = after[before.id]
                assert rotated.previous_quantity == (
                    before.previous_quantity + before.current_quantity
                )
                assert rotated.current_quantity == Decimal("0")
                assert rotated.cumulative_quantity == before.cumulative_quantity
