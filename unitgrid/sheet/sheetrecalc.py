"""Recalculation scheduling.

After an edit the scheduler evaluates exactly the cells whose values can
change, each once, in dependency order:

1. affected set = the edited cell (when it holds a formula) plus every
   transitive dependent of it and of the names pointing at it
2. cyclic components inside the affected set are found with Tarjan's
   algorithm; their members get a CIRCULAR_REFERENCE error and are not ordered
3. the rest is ordered with Kahn's algorithm and evaluated; cells reading a
   cycle member see its circular error and propagate it
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from unitgrid.formula.formulaast import NAME_NODE_PREFIX
from unitgrid.formula.formulaeval import Evaluator
from unitgrid.formula.formulaparser import ParseResult, parse_formula
from unitgrid.formula.formulavalue import CellValue, Error, ErrorKind
from unitgrid.sheet.sheetgraph import DependencyGraph

logger = logging.getLogger(__name__)


@dataclass
class RecalcReport:
    """What one recalculation did."""

    evaluated: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    errors: Dict[str, ErrorKind] = field(default_factory=dict)


def parse_error_value(result: ParseResult) -> Error:
    """Error value for a formula that failed to parse."""
    kind = ErrorKind.DEPTH_EXCEEDED if result.error.too_deep else ErrorKind.PARSE_ERROR
    return Error(kind, str(result.error))


def is_name_node(node: str) -> bool:
    return node.startswith(NAME_NODE_PREFIX)


class RecalcScheduler:
    """Evaluates affected cells after an edit.

    Args:
        graph: Dependency graph of the sheet
        store: Cell store; also serves as the evaluation context
        evaluator: Formula evaluator
        parse: Formula parser (text -> ParseResult)
    """

    def __init__(
        self,
        graph: DependencyGraph,
        store,
        evaluator: Evaluator,
        parse: Callable[[str], ParseResult] = parse_formula,
    ):
        self.graph = graph
        self.store = store
        self.evaluator = evaluator
        self.parse = parse

    def affected(self, address: str) -> List[str]:
        nodes: Dict[str, None] = {}
        if self.store.cell(address).is_formula:
            nodes[address] = None
        for seed in self.store.enumerate_dependents_seed(address):
            nodes.update(dict.fromkeys(self.graph.affected_closure(seed)))
        return list(nodes)

    def recalculate(self, address: str) -> RecalcReport:
        """Re-evaluate ``address`` (if it holds a formula) and everything downstream."""
        return self.recalculate_nodes(self.affected(address))

    def recalculate_all(self) -> RecalcReport:
        """Re-evaluate every formula cell (e.g. after the unit registry changed)."""
        names = [n for n in self.graph.nodes() if is_name_node(n)]
        return self.recalculate_nodes(self.store.formula_addresses() + names)

    def recalculate_nodes(self, nodes: List[str]) -> RecalcReport:
        report = RecalcReport()
        cyclic: Dict[str, None] = {}
        for component in self.graph.strongly_connected_cycles(nodes):
            report.cycles.append([n for n in component if not is_name_node(n)])
            cyclic.update(dict.fromkeys(component))
        if cyclic:
            logger.warning("Circular reference among %s", ", ".join(
                n for n in cyclic if not is_name_node(n)))

        for node in cyclic:
            if is_name_node(node):
                continue
            error = Error(ErrorKind.CIRCULAR_REFERENCE, f"{node} is part of a circular reference")
            self.store.set_computed(node, error)
            report.errors[node] = error.kind

        order = self.graph.topological_order(nodes, exclude=cyclic)
        logger.debug("Recalculation order: %s", order)
        for node in order:
            if is_name_node(node):
                continue
            value = self.evaluate_cell(node)
            report.evaluated.append(node)
            if isinstance(value, Error):
                report.errors[node] = value.kind
        return report

    def evaluate_cell(self, address: str) -> CellValue:
        cell = self.store.cell(address)
        if not cell.is_formula:
            return cell.value
        parsed = self.parse(cell.formula)
        if not parsed.ok:
            value = parse_error_value(parsed)
            self.store.set_computed(address, value)
            return value
        result = self.evaluator.run(parsed.expr, self.store)
        warning = "; ".join(result.warnings) or None
        self.store.set_computed(address, result.value, warning)
        return result.value


__all__ = [
    "RecalcReport",
    "RecalcScheduler",
    "parse_error_value",
    "is_name_node",
]
