"""Shared test fixtures and utilities for unitgrid tests."""

import pytest
from typing import Dict, List, Optional

from unitgrid.formula.formulaeval import Evaluator
from unitgrid.formula.formulaparser import parse_formula
from unitgrid.formula.formulavalue import EMPTY, CellValue
from unitgrid.sheet.sheetapi import Workbook
from unitgrid.sheet.sheetconfig import SheetSettings
from unitgrid.units.unitapi import get_default_library
from unitgrid.units.unitlibrary import UnitLibrary


class DictContext:
    """Minimal evaluation context backed by dicts of values and names."""

    def __init__(self, values: Optional[Dict[str, CellValue]] = None, names: Optional[Dict[str, str]] = None):
        self.values = dict(values or {})
        self._names = dict(names or {})

    def get(self, address: str) -> CellValue:
        return self.values.get(address, EMPTY)

    def resolve_name(self, name: str) -> Optional[str]:
        return self._names.get(name)

    def names(self) -> List[str]:
        return list(self._names)


@pytest.fixture(scope="session")
def default_library():
    """Shared built-in library. Tests must not register units on it."""
    return get_default_library()


@pytest.fixture
def library():
    """Fresh built-in library that a test may modify."""
    return UnitLibrary.builtin()


@pytest.fixture
def small_library():
    """Hand-built library with a few length, time and temperature units.

    Registration order matters for path tie-breaking, so it is fixed here.
    """
    lib = UnitLibrary()
    lib.register_unit("m", {"length": 1}, 1.0, canonical=True, name="meter", aliases=["meters"])
    lib.register_unit("ft", {"length": 1}, 0.3048, name="foot", aliases=["feet"])
    lib.register_unit("in", {"length": 1}, 0.0254, name="inch", aliases=["inches"])
    lib.register_unit("s", {"time": 1}, 1.0, canonical=True, name="second")
    lib.register_unit("hr", {"time": 1}, 3600.0, name="hour", aliases=["hours"])
    lib.register_unit("K", {"temperature": 1}, 1.0, canonical=True, name="kelvin")
    lib.register_unit("C", {"temperature": 1}, 1.0, 273.15, name="celsius")
    lib.add_conversion("ft", "in", 12)
    return lib


@pytest.fixture
def evaluate(default_library):
    """Evaluate formula text against an optional context of cell values.

    Example:
        def test_sum(evaluate):
            assert evaluate("=1+2").value == 3
    """
    evaluator = Evaluator(default_library)

    def run(text: str, values: Optional[Dict[str, CellValue]] = None,
            names: Optional[Dict[str, str]] = None) -> CellValue:
        parsed = parse_formula(text)
        assert parsed.ok, parsed.error
        return evaluator.evaluate(parsed.expr, DictContext(values, names))

    return run


@pytest.fixture
def workbook(library):
    """Workbook on its own library with the packaged settings."""
    return Workbook(library=library)


@pytest.fixture
def plain_settings():
    """Settings without exchange rates or display preferences."""
    return SheetSettings()
