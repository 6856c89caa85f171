"""Sheet module: cells, dependency tracking, recalculation and display.

Public API:
    Workbook()
        set_cell / get_value / define_name / register_unit / set_display_mode / display

    DependencyGraph, RecalcScheduler
        Precedent/dependent edges and ordered, cycle-aware recalculation

    parse_cell_input(text, library)
        Classify '100 ft', '$15', '45%', '=A1*2', 'rent: $1200'

    SheetSettings / load_settings()
        Settings from sheetconfig.yaml

Examples:
    >>> from unitgrid.sheet import Workbook
    >>> wb = Workbook()
    >>> _ = wb.set_cell("A1", "100 ft")
    >>> _ = wb.set_cell("B1", "=A1*2")
    >>> wb.display("B1")
    '200 ft'
"""

from .sheetstore import Cell, EMPTY_CELL, CellStore, InMemoryCellStore
from .sheetgraph import DependencyGraph
from .sheetrecalc import RecalcReport, RecalcScheduler, parse_error_value, is_name_node
from .sheetinput import CellInput, parse_cell_input, parse_literal
from .sheetdisplay import (
    DisplayMode,
    DisplayPreferences,
    preferred_unit_for,
    display_value,
    format_number,
    render,
)
from .sheetconfig import CONFIG_PATH, SheetSettings, load_settings
from .sheetapi import Workbook

__all__ = [
    # Storage
    "Cell",
    "EMPTY_CELL",
    "CellStore",
    "InMemoryCellStore",
    # Dependencies and recalculation
    "DependencyGraph",
    "RecalcReport",
    "RecalcScheduler",
    "parse_error_value",
    "is_name_node",
    # Input
    "CellInput",
    "parse_cell_input",
    "parse_literal",
    # Display
    "DisplayMode",
    "DisplayPreferences",
    "preferred_unit_for",
    "display_value",
    "format_number",
    "render",
    # Settings
    "CONFIG_PATH",
    "SheetSettings",
    "load_settings",
    # Workbook
    "Workbook",
]
