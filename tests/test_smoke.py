"""Smoke tests - fast, lightweight tests for basic functionality.

These tests verify that the package imports successfully and core functions
are available. They run quickly (<1 second) and are suitable for CI/CD.

Run with: pytest tests/test_smoke.py
"""

import pytest


class TestPackageBasics:
    """Test basic package functionality"""

    def test_version_exists(self):
        """Test that package version is defined"""
        from unitgrid import __version__

        assert __version__ is not None
        assert isinstance(__version__, str)
        assert len(__version__) > 0

    def test_package_imports(self):
        """Test that package imports successfully"""
        import unitgrid
        assert unitgrid is not None


class TestAPIImports:
    """Test that all primary API functions can be imported"""

    def test_units_api_imports(self):
        """Test units API imports"""
        from unitgrid import (
            get_default_library,
            parse_unit,
            convert_value,
            canonical_unit_text,
            list_units,
            suggest_units,
        )

        assert callable(get_default_library)
        assert callable(parse_unit)
        assert callable(convert_value)
        assert callable(canonical_unit_text)
        assert callable(list_units)
        assert callable(suggest_units)

    def test_formula_api_imports(self):
        """Test formula API imports"""
        from unitgrid import parse_formula, Evaluator, ErrorKind

        assert callable(parse_formula)
        assert callable(Evaluator)
        assert ErrorKind.INCOMPATIBLE_UNITS.code == "#DIM!"

    def test_sheet_api_imports(self):
        """Test sheet API imports"""
        from unitgrid import Workbook, DisplayMode, SheetSettings, load_settings

        assert callable(Workbook)
        assert callable(load_settings)
        assert DisplayMode("metric") is DisplayMode.METRIC
        assert SheetSettings().max_formula_depth > 0


class TestQuickStart:
    """The README quick start works end to end"""

    def test_quick_workbook(self):
        from unitgrid import ErrorKind, Workbook

        wb = Workbook()
        wb.set_cell("A1", "100 mi")
        wb.set_cell("A2", "2 hr")
        wb.set_cell("A3", "=A1/A2")
        assert wb.display("A3") == "50 mi/hr"

        wb.set_cell("B1", "=A1 + 5 kg")
        assert wb.get_value("B1").kind == ErrorKind.INCOMPATIBLE_UNITS

    def test_quick_convert(self):
        from unitgrid import convert_value

        assert convert_value(100, "ft^2", "m^2") == pytest.approx(9.290304)
