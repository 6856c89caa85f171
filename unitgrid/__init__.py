"""unitgrid - unit-aware spreadsheet calculation engine

Every number in a cell carries a unit. Formulas are checked dimensionally,
converted automatically and combined into compound units (mi/hr, kg*m/s^2,
USD/month).

Usage:
    from unitgrid import Workbook, convert_value

    wb = Workbook()
    wb.set_cell("A1", "100 mi")
    wb.set_cell("A2", "2 hr")
    wb.set_cell("A3", "=A1/A2")
    wb.display("A3")                        # Returns: '50 mi/hr'

    wb.set_cell("B1", "=A1 + 5 kg")
    wb.get_value("B1").kind                 # Returns: ErrorKind.INCOMPATIBLE_UNITS

    convert_value(100, "ft^2", "m^2")       # Returns: 9.290304
"""

__version__ = "0.0.1"

# ============================================================================
# Units API
# ============================================================================

from .units.unitapi import (
    get_default_library,  # Shared library with the built-in catalogue
    parse_unit,           # 'miles/hours' -> CompoundUnit mi/hr
    convert_value,        # Convert a number between unit strings
    canonical_unit_text,  # Canonical spelling of unit text
    list_units,           # Browse the catalogue as a DataFrame
    suggest_units,        # Closest unit symbols for a typo
)
from .units.unitlibrary import UnitDefinition, UnitLibrary
from .units.unitalgebra import CompoundUnit, UnitTerm
from .units.unitdimension import DimensionVector
from .units.uniterrors import (
    UnitError,
    UnknownUnitError,
    UnitSyntaxError,
    IncompatibleUnitsError,
    NoConversionPathError,
    UnitDefinitionError,
)

# ============================================================================
# Formula API
# ============================================================================

from .formula.formulavalue import ErrorKind, Empty, Number, Text, Error, CellValue
from .formula.formulaparser import parse_formula
from .formula.formulaeval import Evaluator

# ============================================================================
# Sheet API
# ============================================================================

from .sheet.sheetapi import Workbook
from .sheet.sheetdisplay import DisplayMode
from .sheet.sheetrecalc import RecalcReport
from .sheet.sheetconfig import SheetSettings, load_settings

__all__ = [
    "__version__",
    # Units
    "get_default_library",
    "parse_unit",
    "convert_value",
    "canonical_unit_text",
    "list_units",
    "suggest_units",
    "UnitDefinition",
    "UnitLibrary",
    "CompoundUnit",
    "UnitTerm",
    "DimensionVector",
    "UnitError",
    "UnknownUnitError",
    "UnitSyntaxError",
    "IncompatibleUnitsError",
    "NoConversionPathError",
    "UnitDefinitionError",
    # Formula
    "ErrorKind",
    "Empty",
    "Number",
    "Text",
    "Error",
    "CellValue",
    "parse_formula",
    "Evaluator",
    # Sheet
    "Workbook",
    "DisplayMode",
    "RecalcReport",
    "SheetSettings",
    "load_settings",
]
