"""
Tests for grand-total overrides and grand-total resolution.
"""

from decimal import Decimal

from wbs_engines.aggregation import RootTotals
from wbs_engines.overrides import (
    clear_contract_total_override,
    clear_current_total_override,
    effective_total,
    project_grand_totals,
    resolve_grand_totals,
    set_contract_total_override,
    set_current_total_override,
)


class TestEffectiveTotal:

    def test_override_wins(self):
        assert effective_total(Decimal("10.00"), Decimal("12.00")) == Decimal("12.00")

    def test_zero_override_is_still_an_override(self):
        assert effective_total(Decimal("10.00"), Decimal("0")) == Decimal("0")

    def test_absent_override(self):
        assert effective_total(Decimal("10.00"), None) == Decimal("10.00")


class TestGrandTotals:

    def test_computed_without_overrides(self, measured_project):
        grand = project_grand_totals(measured_project)
        assert grand.contract == Decimal("1680.00")
        assert grand.current == Decimal("480.00")
        assert grand.cumulative == Decimal("480.00")
        assert grand.remaining == Decimal("1200.00")
        assert grand.progress == Decimal("28.57")
        assert grand.contract_overridden is False
        assert grand.current_overridden is False

    def test_contract_override_does_not_move_progress(self, measured_project):
        project = set_contract_total_override(measured_project, 1700)
        grand = project_grand_totals(project)
        assert grand.contract == Decimal("1700.00")
        assert grand.contract_overridden is True
        assert grand.remaining == Decimal("1200.00")
        assert grand.progress == Decimal("28.57")

    def test_current_override(self, measured_project):
        project = set_current_total_override(measured_project, "500")
        grand = project_grand_totals(project)
        assert grand.current == Decimal("500.00")
        assert grand.current_overridden is True
        assert grand.cumulative == Decimal("480.00")

    def test_resolve_from_totals(self, measured_project):
        totals = RootTotals(
            contract_total=Decimal("100.00"),
            current_total=Decimal("10.00"),
            cumulative_total=Decimal("25.00"),
        )
        grand = resolve_grand_totals(totals, measured_project)
        assert grand.contract == Decimal("100.00")
        assert grand.remaining == Decimal("75.00")
        assert grand.progress == Decimal("25.00")

    def test_zero_contract_progress(self, measured_project):
        grand = resolve_grand_totals(RootTotals(), measured_project)
        assert grand.progress == Decimal("0")


class TestOverrideSetters:

    def test_values_rounded(self, measured_project):
        project = set_contract_total_override(measured_project, "1700.005")
        assert project.contract_total_override == Decimal("1700.01")

    def test_negative_clamped(self, measured_project):
        project = set_current_total_override(measured_project, -20)
        assert project.current_total_override == Decimal("0.00")

    def test_nodes_untouched(self, measured_project):
        project = set_contract_total_override(measured_project, 1)
        assert project.nodes == measured_project.nodes

    def test_clear_sets_absent(self, measured_project):
        project = set_contract_total_override(measured_project, 1700)
        project = set_current_total_override(project, 500)
        project = clear_contract_total_override(project)
        project = clear_current_total_override(project)
        assert project.contract_total_override is None
        assert project.current_total_override is None
        assert project_grand_totals(project).contract == Decimal("1680.00")

    def test_change_logged(self, measured_project, captured_logs):
        set_contract_total_override(measured_project, 1700)
        changed = [r for r in captured_logs() if r["message"] == "grand_total_override_changed"]
        assert changed[-1]["field"] == "contract_total_override"
        assert changed[-1]["old_value"] is None
        assert changed[-1]["new_value"] == "1700.00"
