"""Exceptions raised by the unit layer.

The formula evaluator turns every one of these into a typed error value;
they never escape a cell evaluation.
"""

from typing import Optional, Sequence

from unitgrid.utils.resolver import did_you_mean


class UnitError(ValueError):
    """Base class for unit definition, parsing and conversion failures."""


class UnknownUnitError(UnitError):
    """A unit symbol is not registered in the library."""

    def __init__(self, symbol: str, suggestions: Optional[Sequence[str]] = None):
        self.symbol = symbol
        self.suggestions = list(suggestions or [])
        super().__init__(f"Unknown unit '{symbol}'{did_you_mean(self.suggestions)}")


class UnitSyntaxError(UnitError):
    """Unit text could not be parsed."""

    def __init__(self, text: str, message: str, position: Optional[int] = None):
        self.text = text
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"Invalid unit '{text}'{where}: {message}")


class IncompatibleUnitsError(UnitError):
    """Two units have different dimensions."""

    def __init__(self, source: str, target: str, detail: str = ""):
        self.source = source
        self.target = target
        suffix = f" ({detail})" if detail else ""
        super().__init__(f"Cannot convert '{source}' to '{target}': incompatible dimensions{suffix}")


class NoConversionPathError(UnitError):
    """Two units share a dimension but no chain of registered conversions links them."""

    def __init__(self, source: str, target: str):
        self.source = source
        self.target = target
        super().__init__(f"No conversion path from '{source}' to '{target}'")


class UnitDefinitionError(UnitError):
    """A unit or conversion registration is invalid."""


__all__ = [
    "UnitError",
    "UnknownUnitError",
    "UnitSyntaxError",
    "IncompatibleUnitsError",
    "NoConversionPathError",
    "UnitDefinitionError",
]
