"""Tests for the dependency graph and recalculation scheduling."""

import pytest

from unitgrid.formula import ErrorKind, Evaluator, Number
from unitgrid.sheet.sheetgraph import DependencyGraph
from unitgrid.sheet.sheetrecalc import RecalcScheduler, is_name_node
from unitgrid.sheet.sheetstore import Cell, InMemoryCellStore


def chain_graph(edges):
    graph = DependencyGraph()
    for node, refs in edges:
        graph.set_references(node, refs)
    return graph


class TestDependencyGraph:
    """Edges, closure, cycles and ordering"""

    def test_set_references_replaces_edges(self):
        graph = chain_graph([("B1", ["A1", "A2", "A1"])])
        assert graph.precedents("B1") == ["A1", "A2"]
        graph.set_references("B1", ["A3"])
        assert graph.precedents("B1") == ["A3"]
        assert graph.dependents("A1") == []
        assert graph.dependents("A3") == ["B1"]

    def test_remove_cell_keeps_incoming_edges(self):
        graph = chain_graph([("B1", ["A1"]), ("C1", ["B1"])])
        graph.remove_cell("B1")
        assert graph.precedents("B1") == []
        assert graph.dependents("B1") == ["C1"]

    def test_affected_closure_breadth_first(self):
        graph = chain_graph([("B1", ["A1"]), ("C1", ["A1", "B1"]), ("D1", ["C1"]), ("E1", ["Z9"])])
        assert graph.affected_closure("A1") == ["B1", "C1", "D1"]
        assert graph.affected_closure("D1") == []

    def test_reaches_self(self):
        graph = chain_graph([("A1", ["B1"]), ("B1", ["A1"]), ("C1", ["A1"])])
        assert graph.reaches_self("A1")
        assert not graph.reaches_self("C1")

    def test_cycles(self):
        graph = chain_graph([
            ("A1", ["C1"]), ("B1", ["A1"]), ("C1", ["B1"]),
            ("D1", ["A1"]),
            ("E1", ["E1"]),
        ])
        cycles = graph.strongly_connected_cycles(["A1", "B1", "C1", "D1", "E1"])
        assert cycles == [["A1", "B1", "C1"], ["E1"]] or cycles == [["E1"], ["A1", "B1", "C1"]]

    def test_cycles_restricted_to_given_nodes(self):
        graph = chain_graph([("A1", ["B1"]), ("B1", ["A1"])])
        assert graph.strongly_connected_cycles(["A1"]) == []

    def test_long_chain_does_not_recurse(self):
        edges = [(f"A{i + 1}", [f"A{i}"]) for i in range(1, 5000)]
        graph = chain_graph(edges)
        nodes = [f"A{i}" for i in range(2, 5001)]
        assert graph.strongly_connected_cycles(nodes) == []
        assert graph.topological_order(reversed(nodes)) == nodes

    def test_topological_order_ties_follow_input(self):
        graph = chain_graph([("C1", ["A1", "B1"]), ("B1", ["A1"])])
        assert graph.topological_order(["C1", "B1", "A1"]) == ["A1", "B1", "C1"]
        assert graph.topological_order(["X1", "Y1"]) == ["X1", "Y1"]

    def test_topological_order_excludes(self):
        graph = chain_graph([("B1", ["A1"]), ("C1", ["B1"])])
        assert graph.topological_order(["A1", "B1", "C1"], exclude=["A1"]) == ["B1", "C1"]

    def test_define_name(self):
        graph = DependencyGraph()
        node = graph.define_name("rate", "B1")
        assert node == "name:rate"
        assert is_name_node(node)
        assert graph.dependents("B1") == ["name:rate"]
        graph.define_name("rate", None)
        assert graph.dependents("B1") == []


class TestScheduler:
    """Scheduler driven directly over a store and graph"""

    @pytest.fixture
    def sheet(self, default_library):
        store = InMemoryCellStore()
        graph = DependencyGraph()
        scheduler = RecalcScheduler(graph, store, Evaluator(default_library))

        def put(address, formula=None, value=None, refs=()):
            if formula is None:
                store.put(address, Cell(value=value))
            else:
                store.put(address, Cell(formula=formula))
            graph.set_references(address, refs)

        return store, graph, scheduler, put

    def test_evaluates_formula_and_dependents(self, sheet):
        store, graph, scheduler, put = sheet
        put("A1", value=Number(3.0))
        put("B1", "=A1*2", refs=["A1"])
        put("C1", "=B1+1", refs=["B1"])
        report = scheduler.recalculate("A1")
        assert report.evaluated == ["B1", "C1"]
        assert store.get("C1") == Number(7.0)

    def test_parse_error_stored(self, sheet):
        store, graph, scheduler, put = sheet
        put("A1", "=1 +")
        report = scheduler.recalculate("A1")
        assert store.get("A1").kind == ErrorKind.PARSE_ERROR
        assert report.errors == {"A1": ErrorKind.PARSE_ERROR}

    def test_warning_recorded(self, sheet):
        store, graph, scheduler, put = sheet
        put("B1", "=A1+1", refs=["A1"])
        scheduler.recalculate("B1")
        assert store.cell("B1").warning == "A1 is empty; treated as 0"


class TestWorkbookRecalc:
    """Recalculation through the Workbook"""

    def test_leaf_edit_evaluates_dependents_once_in_order(self, workbook):
        workbook.set_cell("A1", "1 m")
        workbook.set_cell("B1", "=A1*2")
        workbook.set_cell("C1", "=B1+A1")
        workbook.set_cell("D1", "=C1")
        workbook.set_cell("E1", "=5")
        report = workbook.set_cell("A1", "2 m")
        assert report.evaluated == ["B1", "C1", "D1"]
        assert workbook.get_value("D1") == Number(6.0, workbook.get_value("A1").unit)

    def test_two_cell_cycle(self, workbook):
        workbook.set_cell("A1", "=B1+1")
        report = workbook.set_cell("B1", "=A1+1")
        assert sorted(report.cycles[0]) == ["A1", "B1"]
        assert workbook.get_value("A1").kind == ErrorKind.CIRCULAR_REFERENCE
        assert workbook.get_value("B1").kind == ErrorKind.CIRCULAR_REFERENCE

    def test_self_reference(self, workbook):
        workbook.set_cell("A1", "=A1+1")
        assert workbook.get_value("A1").kind == ErrorKind.CIRCULAR_REFERENCE

    def test_cycle_propagates_downstream(self, workbook):
        workbook.set_cell("C1", "=A1*2")
        workbook.set_cell("A1", "=B1")
        workbook.set_cell("B1", "=A1")
        value = workbook.get_value("C1")
        assert value.kind == ErrorKind.CIRCULAR_REFERENCE
        assert "A1" in value.message

    def test_breaking_a_cycle(self, workbook):
        workbook.set_cell("A1", "=B1")
        workbook.set_cell("B1", "=A1")
        workbook.set_cell("B1", "4 kg")
        assert workbook.get_value("A1").value == 4.0
        assert workbook.get_value("A1").unit == workbook.get_value("B1").unit

    def test_names_participate_in_ordering(self, workbook):
        workbook.set_cell("A1", "=rate * 3 hr")
        assert workbook.get_value("A1").kind == ErrorKind.UNKNOWN_NAME
        workbook.set_cell("B1", "$20/hr")
        report = workbook.define_name("rate", "B1")
        assert report.evaluated == ["A1"]
        assert workbook.get_value("A1").value == pytest.approx(60)
        report = workbook.set_cell("B1", "$30/hr")
        assert report.evaluated == ["A1"]
        assert workbook.get_value("A1").value == pytest.approx(90)

    def test_remove_name(self, workbook):
        workbook.set_cell("B1", "2")
        workbook.define_name("k", "B1")
        workbook.set_cell("A1", "=k*2")
        workbook.remove_name("k")
        assert workbook.get_value("A1").kind == ErrorKind.UNKNOWN_NAME

    def test_cycle_through_name(self, workbook):
        workbook.define_name("total", "A1")
        workbook.set_cell("A1", "=total + 1")
        assert workbook.get_value("A1").kind == ErrorKind.CIRCULAR_REFERENCE

    def test_register_unit_recalculates(self, workbook):
        workbook.set_cell("A1", "=3 furlong")
        assert workbook.get_value("A1").kind == ErrorKind.UNKNOWN_UNIT
        report = workbook.register_unit("furlong", {"length": 1}, 201.168, category="length")
        assert "A1" in report.evaluated
        assert workbook.evaluate('=CONVERT(A1, "m")').value == pytest.approx(603.504)

    def test_deep_chain(self, workbook):
        workbook.set_cell("A1", "1 s")
        for i in range(2, 1501):
            workbook.set_cell(f"A{i}", f"=A{i - 1} + 1 s")
        report = workbook.set_cell("A1", "2 s")
        assert len(report.evaluated) == 1499
        assert workbook.get_value("A1500").value == pytest.approx(1501)
