"""Workbook: the public facade tying units, formulas and recalculation together.

Examples:
    >>> from unitgrid import Workbook
    >>> wb = Workbook()
    >>> _ = wb.set_cell("A1", "100 mi")
    >>> _ = wb.set_cell("A2", "2 hr")
    >>> _ = wb.set_cell("A3", "=A1/A2")
    >>> wb.display("A3")
    '50 mi/hr'
    >>> wb.set_display_mode("metric")
    >>> wb.display("A3")
    '80.4672 km/hr'
"""

import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Union

from unitgrid.formula.formulaast import extract_references, normalize_address
from unitgrid.formula.formulaeval import Evaluator
from unitgrid.formula.formulaparser import parse_formula
from unitgrid.formula.formulavalue import CellValue, Number
from unitgrid.sheet.sheetconfig import SheetSettings, load_settings
from unitgrid.sheet.sheetdisplay import DisplayMode, preferred_unit_for, render
from unitgrid.sheet.sheetgraph import DependencyGraph
from unitgrid.sheet.sheetinput import parse_cell_input
from unitgrid.sheet.sheetrecalc import RecalcReport, RecalcScheduler, is_name_node, parse_error_value
from unitgrid.sheet.sheetstore import Cell, InMemoryCellStore
from unitgrid.units.unitalgebra import DIMENSIONLESS_UNIT
from unitgrid.units.uniterrors import UnitError
from unitgrid.units.unitlibrary import UnitLibrary
from unitgrid.utils.normalize import is_valid_name, normalize_name

logger = logging.getLogger(__name__)


class Workbook:
    """A single sheet of unit-aware cells.

    Args:
        library: Unit library (a fresh built-in library when None)
        settings: Sheet settings (the packaged sheetconfig.yaml when None)
    """

    def __init__(self, library: Optional[UnitLibrary] = None, settings: Optional[SheetSettings] = None):
        self.library = library if library is not None else UnitLibrary.builtin()
        self.settings = settings if settings is not None else load_settings()
        self.preferences = self.settings.display_preferences()
        self.store = InMemoryCellStore()
        self.graph = DependencyGraph()
        self.evaluator = Evaluator(self.library, max_depth=self.settings.max_formula_depth)
        self.scheduler = RecalcScheduler(self.graph, self.store, self.evaluator, parse=self._parse)
        for currency, rate in self.settings.currency_rates.items():
            if currency not in self.library:
                logger.warning("Skipping exchange rate for unregistered currency %s", currency)
                continue
            self.library.set_exchange_rate(currency, rate)

    def _parse(self, text: str):
        return parse_formula(text, max_depth=self.settings.max_formula_depth)

    # ========================================================================
    # Editing
    # ========================================================================

    def set_cell(self, address: str, text: Optional[str]) -> RecalcReport:
        """Replace a cell's content and recalculate everything that depends on it.

        Raises:
            ValueError: If the address is malformed
        """
        address = normalize_address(address)
        with self.library.write_lock():
            entry = parse_cell_input(text, self.library)
            if entry.is_formula:
                parsed = self._parse(entry.formula)
                refs = extract_references(parsed.expr) if parsed.ok else []
                self.graph.set_references(address, refs)
                value = parse_error_value(parsed) if not parsed.ok else self.store.get(address)
                cell = Cell(value=value, formula=entry.formula, label=entry.label)
            else:
                self.graph.remove_cell(address)
                unit = entry.value.unit if isinstance(entry.value, Number) else DIMENSIONLESS_UNIT
                cell = Cell(value=entry.value, storage_unit=unit, label=entry.label)
            self.store.put(address, cell)
            report = self.scheduler.recalculate(address)
            self._refresh_display([address] + report.evaluated + list(report.errors))
        return report

    def clear_cell(self, address: str) -> RecalcReport:
        return self.set_cell(address, "")

    def define_name(self, name: str, address: str) -> RecalcReport:
        """Bind a named reference (``rate``) to a cell and recalculate its users.

        Raises:
            ValueError: If the name is not a lower-case identifier or the address is malformed
        """
        key = normalize_name(name)
        if not is_valid_name(key):
            raise ValueError(f"Invalid name {name!r}: use letters, digits and '_', not starting with a digit or shaped like a cell address")
        address = normalize_address(address)
        with self.library.write_lock():
            self.store.define_name(key, address)
            node = self.graph.define_name(key, address)
            report = self.scheduler.recalculate_nodes(self.graph.affected_closure(node))
            self._refresh_display(report.evaluated)
        return report

    def remove_name(self, name: str) -> RecalcReport:
        key = normalize_name(name)
        with self.library.write_lock():
            self.store.remove_name(key)
            node = self.graph.define_name(key, None)
            return self.scheduler.recalculate_nodes(self.graph.affected_closure(node))

    # ========================================================================
    # Registry changes
    # ========================================================================

    def register_unit(self, symbol: str, dimension, factor_to_canonical: Optional[float] = None,
                      offset: Optional[float] = None, **kwargs) -> RecalcReport:
        """Register a unit in the workbook's library and recalculate every formula."""
        with self.library.write_lock():
            self.library.register_unit(symbol, dimension, factor_to_canonical, offset, **kwargs)
            return self.recalculate_all()

    def add_conversion(self, source: str, target: str, factor: float, offset: float = 0.0,
                       **kwargs) -> RecalcReport:
        with self.library.write_lock():
            self.library.add_conversion(source, target, factor, offset, **kwargs)
            return self.recalculate_all()

    def set_exchange_rate(self, currency: str, rate: float, base: str = "USD") -> RecalcReport:
        """Set ``1 currency = rate base`` and recalculate every formula."""
        with self.library.write_lock():
            self.library.set_exchange_rate(currency, rate, base)
            return self.recalculate_all()

    def recalculate_all(self) -> RecalcReport:
        with self.library.write_lock():
            report = self.scheduler.recalculate_all()
            self._refresh_display(report.evaluated)
        return report

    # ========================================================================
    # Reading
    # ========================================================================

    def get_value(self, address: str) -> CellValue:
        return self.store.get(normalize_address(address))

    def get_cell(self, address: str) -> Cell:
        return self.store.cell(normalize_address(address))

    def names(self) -> List[str]:
        return self.store.names()

    def evaluate(self, formula: str) -> CellValue:
        """Evaluate a formula against the workbook without storing it."""
        parsed = self._parse(formula)
        if not parsed.ok:
            return parse_error_value(parsed)
        with self.library.write_lock():
            return self.evaluator.evaluate(parsed.expr, self.store)

    # ========================================================================
    # Display
    # ========================================================================

    def set_display_mode(self, mode: Union[DisplayMode, str]) -> None:
        """Switch display units. Stored values and storage units never change.

        Raises:
            ValueError: On an unknown mode name
        """
        if not isinstance(mode, DisplayMode):
            mode = DisplayMode(str(mode).lower())
        self.preferences = self.settings.display_preferences(mode)
        self._refresh_display(self.store.addresses())

    @property
    def display_mode(self) -> DisplayMode:
        return self.preferences.mode

    def display(self, address: str) -> str:
        """Text shown for a cell in the current display mode."""
        cell = self.get_cell(address)
        return render(cell.value, cell.display_unit, self.library.graph, self.preferences.precision)

    def _refresh_display(self, addresses: Iterable[str]) -> None:
        for address in dict.fromkeys(addresses):
            if is_name_node(address):
                continue
            cell = self.store.cell(address)
            display_unit = None
            if isinstance(cell.value, Number):
                try:
                    display_unit = preferred_unit_for(cell.value.unit, self.preferences, self.library)
                except UnitError as e:
                    logger.debug("No display unit for %s: %s", address, e)
            if display_unit != cell.display_unit:
                self.store.put(address, replace(cell, display_unit=display_unit))


__all__ = [
    "Workbook",
]
