"""Tests for the dependency graph and recalculation passes."""

import logging

from calc.cells import CellData
from calc.recalculation import (
    DependencyGraph, apply_edit, cells_to_recalculate, recalculate, recalculate_dependents,
)


class TestRecalculate:
    def test_fills_missing_display_values(self, make_cells):
        cells = make_cells({"A1": "1", "A2": "2", "A3": ("=SUM(A1:A2)", None)})
        assert recalculate(cells) == {"A3": "3"}

    def test_does_not_mutate_the_store(self, make_cells):
        cells = make_cells({"A1": "1", "A2": ("=A1+1", None)})
        recalculate(cells)
        assert cells["A2"].display_value is None

    def test_unchanged_cells_are_omitted(self, make_cells):
        cells = make_cells({"A1": "1", "A2": "2", "A3": ("=SUM(A1:A2)", "3")})
        assert recalculate(cells) == {}

    def test_single_pass_reads_the_snapshot(self, make_cells):
        # A1 changed from 1 to 5; B1 and C1 still show the old results
        cells = make_cells({"A1": "5", "B1": ("=A1*2", "2"), "C1": ("=B1+1", "3")})
        assert recalculate(cells) == {"B1": "10"}

    def test_cycle_terminates(self, make_cells):
        cells = make_cells({"A1": ("=B1+1", "1"), "B1": ("=A1+1", "2")})
        assert recalculate(cells) == {"A1": "3"}


class TestDependencyGraph:
    def test_dependents_are_transitive(self, make_cells):
        cells = make_cells({
            "A1": "5", "B1": ("=A1*2", None), "C1": ("=B1+1", None), "D1": ("=7", None),
        })
        dep_graph = DependencyGraph.from_cells(cells)
        assert dep_graph.dependents_of("A1") == {"B1", "C1"}
        assert dep_graph.dependents_of("D1") == set()

    def test_ranges_create_dependencies(self, make_cells):
        cells = make_cells({"D1": ("=SUM(A1:A3)", None)})
        assert DependencyGraph.from_cells(cells).dependents_of("A2") == {"D1"}

    def test_detects_cycles(self, make_cells):
        cells = make_cells({"A1": ("=B1+1", None), "B1": ("=A1+1", None)})
        assert DependencyGraph.from_cells(cells).detect_circular_references() == ["A1", "B1", "A1"]

    def test_self_reference_is_a_cycle(self, make_cells):
        cells = make_cells({"A1": ("=A1+1", None)})
        assert DependencyGraph.from_cells(cells).detect_circular_references() == ["A1", "A1"]

    def test_no_cycle(self, make_cells):
        cells = make_cells({"A1": "1", "B1": ("=A1", None)})
        assert DependencyGraph.from_cells(cells).detect_circular_references() is None

    def test_cycle_check_is_cached_until_the_graph_changes(self, make_cells):
        dep_graph = DependencyGraph.from_cells(make_cells({"A1": ("=B1", None)}))
        assert dep_graph.detect_circular_references() is None
        dep_graph.add_dependency("B1", "A1")
        assert dep_graph.detect_circular_references() == ["A1", "B1", "A1"]

    def test_long_chain_without_cycle(self, make_cells):
        # A1 = A2+1, A2 = A3+1, ... down to a plain value in A2000
        chain = {f"A{row}": (f"=A{row + 1}+1", None) for row in range(1, 2000)}
        chain["A2000"] = "1"
        dep_graph = DependencyGraph.from_cells(make_cells(chain))
        assert dep_graph.detect_circular_references() is None

    def test_long_chain_closing_into_a_cycle(self, make_cells):
        chain = {f"A{row}": (f"=A{row + 1}+1", None) for row in range(1, 2000)}
        chain["A2000"] = ("=A1", None)
        cycle = DependencyGraph.from_cells(make_cells(chain)).detect_circular_references()
        assert len(cycle) == 2001
        assert cycle[0] == cycle[-1] == "A1"

    def test_evaluation_order_puts_inputs_first(self, make_cells):
        cells = make_cells({"C1": ("=B1+1", None), "B1": ("=A1*2", None), "A1": ("=5", None)})
        dep_graph = DependencyGraph.from_cells(cells)
        assert dep_graph.evaluation_order(["C1", "A1", "B1"]) == ["A1", "B1", "C1"]


class TestRecalculateDependents:
    def test_cells_to_recalculate(self, make_cells):
        cells = make_cells({
            "A1": "5", "B1": ("=A1*2", "2"), "C1": ("=B1+1", "3"), "D1": ("=7", "7"),
        })
        assert cells_to_recalculate("A1", cells) == ["B1", "C1"]

    def test_chain_settles_in_one_pass(self, make_cells):
        cells = make_cells({"A1": "5", "B1": ("=A1*2", "2"), "C1": ("=B1+1", "3")})
        assert recalculate_dependents("A1", cells) == {"B1": "10", "C1": "11"}
        assert cells["C1"].display_value == "3"

    def test_running_total_column(self, make_cells):
        # A1 = A2+1, ..., A1499 = A1500+1
        values = {f"A{row}": (f"=A{row + 1}+1", None) for row in range(1, 1500)}
        values["A1500"] = "1"
        changes = recalculate_dependents("A1500", make_cells(values))
        assert len(changes) == 1499
        assert changes["A1499"] == "2"
        assert changes["A1"] == "1500"

    def test_prebuilt_graph_is_used(self, make_cells):
        cells = make_cells({"A1": "5", "B1": ("=A1*2", "2")})
        dep_graph = DependencyGraph.from_cells(cells)
        assert cells_to_recalculate("A1", cells, dep_graph) == ["B1"]
        assert recalculate_dependents("A1", cells, dep_graph=dep_graph) == {"B1": "10"}

    def test_cycle_is_logged_and_evaluated_once(self, make_cells, caplog):
        cells = make_cells({"A1": ("=B1+1", "1"), "B1": ("=A1+1", "2")})
        with caplog.at_level(logging.WARNING, logger="calc.recalculation"):
            changes = recalculate_dependents("A1", cells)
        assert changes == {"A1": "3", "B1": "4"}
        assert "Circular reference" in caplog.text


class TestApplyEdit:
    def test_value_edit_refreshes_dependents(self, make_cells):
        cells = make_cells({"A1": "1", "B1": ("=A1*10", "10")})
        updated = apply_edit(cells, "a1", "7")
        assert updated["A1"] == CellData(value="7")
        assert updated["B1"].display_value == "70"
        assert cells["A1"].value == "1"

    def test_formula_edit_is_evaluated(self, make_cells):
        updated = apply_edit(make_cells({}), "C1", "=2+3")
        assert updated["C1"] == CellData(value="", formula="=2+3", display_value="5")
