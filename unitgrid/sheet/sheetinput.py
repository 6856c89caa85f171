"""Parsing of what a user types into a cell.

Accepted forms::

    (blank)              empty cell
    =100 mi / 2 hr       formula
    100 ft, $15, 45%     number with a unit (percent divides by 100)
    -3.5 kg*m/s^2        negative compound-unit literal
    rent: $1200          labeled value
    total:= SUM(A1:A3)   labeled formula
    anything else        text
"""

import math
import re
from dataclasses import dataclass
from typing import Optional

from unitgrid.formula.formulaast import BoolLiteral, NumberLiteral, UnaryOp
from unitgrid.formula.formulaparser import parse_formula
from unitgrid.formula.formulavalue import EMPTY, CellValue, Error, ErrorKind, Number, Text, boolean
from unitgrid.units.unitalgebra import parse_unit_text
from unitgrid.units.uniterrors import UnitError
from unitgrid.utils.normalize import normalize_formula_text

_LABELED = re.compile(r"^([A-Za-z_][A-Za-z0-9_ ]*?)\s*:(=?)\s*(.*)$", re.DOTALL)


@dataclass(frozen=True)
class CellInput:
    """Parsed cell input: a formula to evaluate, or a ready value."""

    value: CellValue = EMPTY
    formula: Optional[str] = None
    label: Optional[str] = None

    @property
    def is_formula(self) -> bool:
        return self.formula is not None


def parse_cell_input(text: Optional[str], library) -> CellInput:
    """Classify raw cell input.

    Examples:
        >>> parse_cell_input("100 ft", lib).value.unit_text
        'ft'
        >>> parse_cell_input("total:= A1*2", lib).formula
        '=A1*2'
    """
    raw = normalize_formula_text(text or "").strip()
    if not raw:
        return CellInput()

    label = None
    if not raw.startswith("="):
        match = _LABELED.match(raw)
        if match:
            label = match.group(1).strip()
            body = match.group(3).strip()
            if match.group(2):
                return CellInput(formula=f"={body}", label=label)
            raw = body
            if not raw:
                return CellInput(label=label)

    if raw.startswith("="):
        return CellInput(formula=raw, label=label)
    return CellInput(value=parse_literal(raw, library), label=label)


def parse_literal(text: str, library) -> CellValue:
    """Number (with unit) if the text is a single numeric literal, else Text."""
    parsed = parse_formula(text)
    if not parsed.ok:
        return Text(text)
    literal = _literal(parsed.expr)
    if literal is None:
        return Text(text)
    value, unit_text = literal
    if not math.isfinite(value):
        return Error(ErrorKind.NUMERIC, f"{text!r} is not a finite number")
    if not unit_text:
        return Number(value)
    try:
        return Number(value, parse_unit_text(unit_text, library))
    except UnitError as e:
        return Error(ErrorKind.UNKNOWN_UNIT, str(e))


def _literal(expr):
    scale = 1.0
    while isinstance(expr, UnaryOp):
        if expr.op == "-":
            scale = -scale
        elif expr.op == "%":
            scale /= 100.0
        expr = expr.operand
    if isinstance(expr, NumberLiteral):
        return expr.value * scale, expr.unit_text
    if isinstance(expr, BoolLiteral) and scale == 1.0:
        return boolean(expr.value).value, None
    return None


__all__ = [
    "CellInput",
    "parse_cell_input",
    "parse_literal",
]
