"""
Tests for the kernel domain types: nodes, tree nodes, projects, snapshots.
"""

from dataclasses import FrozenInstanceError, replace
from datetime import date
from decimal import Decimal

import pytest

from wbs_kernel.domain.nodes import (
    CategoryNode,
    ItemNode,
    NodeKind,
    TreeNode,
    clone_node,
    clone_nodes,
    index_by_id,
    with_parent,
)
from wbs_kernel.domain.project import (
    MeasurementSnapshot,
    PeriodTotals,
    Project,
    clone_snapshot,
    create_project,
)


class TestNodes:

    def test_kind_is_fixed_per_variant(self):
        assert CategoryNode(id="c").kind is NodeKind.CATEGORY
        assert ItemNode(id="i").kind is NodeKind.ITEM

    def test_is_category(self):
        assert CategoryNode(id="c").is_category is True
        assert ItemNode(id="i").is_category is False

    def test_numeric_fields_coerced_to_decimal(self):
        item = ItemNode(id="i", contract_quantity=3, unit_price_excluding_markup=1.1)
        assert item.contract_quantity == Decimal("3")
        assert isinstance(item.contract_quantity, Decimal)
        assert item.unit_price_excluding_markup == Decimal("1.1")

    def test_order_coerced_to_int(self):
        assert CategoryNode(id="c", order="2").order == 2

    def test_non_numeric_value_raises(self):
        with pytest.raises(ValueError):
            ItemNode(id="i", contract_quantity="lots")

    def test_nodes_are_frozen(self):
        item = ItemNode(id="i")
        with pytest.raises(FrozenInstanceError):
            item.name = "changed"

    def test_replace_keeps_kind(self):
        item = replace(ItemNode(id="i"), name="Concrete")
        assert item.kind is NodeKind.ITEM
        assert item.name == "Concrete"


class TestNodeHelpers:

    def test_clone_is_equal_but_distinct(self):
        item = ItemNode(id="i", name="Rebar", contract_quantity=10)
        copy = clone_node(item)
        assert copy == item
        assert copy is not item

    def test_clone_nodes_keeps_sequence(self):
        nodes = (CategoryNode(id="a"), ItemNode(id="b"), ItemNode(id="c"))
        assert [n.id for n in clone_nodes(nodes)] == ["a", "b", "c"]

    def test_with_parent(self):
        moved = with_parent(ItemNode(id="i"), "cat", 3)
        assert moved.parent_id == "cat"
        assert moved.order == 3

    def test_index_first_occurrence_wins(self):
        first = ItemNode(id="dup", name="first")
        second = ItemNode(id="dup", name="second")
        assert index_by_id([first, second])["dup"] is first


class TestTreeNode:

    def test_walk_is_pre_order(self):
        tree = TreeNode(
            node=CategoryNode(id="root"),
            children=(
                TreeNode(node=CategoryNode(id="a"), children=(TreeNode(node=ItemNode(id="a1")),)),
                TreeNode(node=ItemNode(id="b")),
            ),
        )
        assert [t.id for t in tree.walk()] == ["root", "a", "a1", "b"]

    def test_id_and_kind_delegate_to_node(self):
        tree = TreeNode(node=ItemNode(id="x"))
        assert tree.id == "x"
        assert tree.is_category is False


class TestCreateProject:

    def test_defaults(self):
        project = create_project(
            "Bridge",
            markup_rate=25,
            measurement_number=1,
            reference_date=date(2024, 1, 1),
        )
        assert project.name == "Bridge"
        assert project.markup_rate == Decimal("25")
        assert project.history == ()
        assert project.nodes == ()
        assert project.contract_total_override is None
        assert project.current_total_override is None
        assert project.latest_snapshot is None
        assert project.id

    def test_blank_name_falls_back(self):
        project = create_project(
            "   ",
            markup_rate=0,
            measurement_number=1,
            reference_date=date(2024, 1, 1),
        )
        assert project.name == "New Project"

    def test_negative_markup_clamped(self):
        project = create_project(
            "Bridge",
            markup_rate=-10,
            measurement_number=1,
            reference_date=date(2024, 1, 1),
        )
        assert project.markup_rate == Decimal("0")

    def test_ids_are_unique(self):
        kwargs = dict(markup_rate=0, measurement_number=1, reference_date=date(2024, 1, 1))
        assert create_project("a", **kwargs).id != create_project("b", **kwargs).id

    def test_explicit_id(self):
        project = create_project(
            "Bridge",
            markup_rate=0,
            measurement_number=1,
            reference_date=date(2024, 1, 1),
            project_id="p-1",
        )
        assert project.id == "p-1"

    def test_overrides_coerced(self):
        project = Project(
            id="p",
            name="p",
            markup_rate="10",
            measurement_number=1,
            reference_date=date(2024, 1, 1),
            contract_total_override=100,
        )
        assert project.contract_total_override == Decimal("100")
        assert project.markup_rate == Decimal("10")


class TestSnapshots:

    def _snapshot(self):
        return MeasurementSnapshot(
            measurement_number=3,
            close_date=date(2024, 3, 31),
            reference_date=date(2024, 3, 1),
            nodes=(CategoryNode(id="c"), ItemNode(id="i", parent_id="c")),
            totals=PeriodTotals(
                contract=Decimal("100.00"),
                period=Decimal("10.00"),
                cumulative=Decimal("30.00"),
                progress=Decimal("30.00"),
            ),
            current_total_override=Decimal("12.00"),
        )

    def test_clone_snapshot_is_equal(self):
        snapshot = self._snapshot()
        copy = clone_snapshot(snapshot)
        assert copy == snapshot
        assert copy.nodes[1] is not snapshot.nodes[1]

    def test_latest_snapshot_is_last(self):
        older = self._snapshot()
        newer = replace(older, measurement_number=4)
        project = Project(
            id="p",
            name="p",
            markup_rate=0,
            measurement_number=5,
            reference_date=date(2024, 4, 1),
            history=[older, newer],
        )
        assert project.history == (older, newer)
        assert project.latest_snapshot is newer
