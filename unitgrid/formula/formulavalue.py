"""Cell values produced by formula evaluation.

A value is exactly one of Empty, Number (value + unit), Text or Error. Errors
are ordinary values: they flow through operators and functions and end up in
the cell that caused them, never as exceptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from unitgrid.units.unitalgebra import DIMENSIONLESS_UNIT, CompoundUnit, format_canonical


class ErrorKind(Enum):
    """Error tags; the value is the short code shown in a cell."""

    UNKNOWN_UNIT = "#UNIT?"
    INCOMPATIBLE_UNITS = "#DIM!"
    NO_CONVERSION_PATH = "#CONV!"
    FRACTIONAL_EXPONENT = "#EXP!"
    INVALID_UNIT_FOR_FUNCTION = "#FUNIT!"
    DIV_BY_ZERO = "#DIV/0!"
    CIRCULAR_REFERENCE = "#CIRC!"
    UNRESOLVED_REFERENCE = "#REF!"
    UNKNOWN_NAME = "#NAME?"
    PARSE_ERROR = "#PARSE!"
    INVALID_VALUE = "#VALUE!"
    NUMERIC = "#NUM!"
    DEPTH_EXCEEDED = "#DEPTH!"

    @property
    def code(self) -> str:
        return self.value


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Number:
    value: float
    unit: CompoundUnit = DIMENSIONLESS_UNIT

    @property
    def unit_text(self) -> str:
        return format_canonical(self.unit)


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Error:
    kind: ErrorKind
    message: str = ""

    def __str__(self) -> str:
        return f"{self.kind.code} {self.message}".strip()


CellValue = Union[Empty, Number, Text, Error]

EMPTY = Empty()
TRUE = Number(1.0)
FALSE = Number(0.0)


def boolean(flag: bool) -> Number:
    return TRUE if flag else FALSE


def is_error(value) -> bool:
    return isinstance(value, Error)


__all__ = [
    "ErrorKind",
    "Empty",
    "Number",
    "Text",
    "Error",
    "CellValue",
    "EMPTY",
    "TRUE",
    "FALSE",
    "boolean",
    "is_error",
]
