"""Formula evaluation with dimensional analysis.

The evaluator walks an expression tree and produces a cell value. Units are
checked at every operator and function boundary:

- ``+``, ``-`` and comparisons need equal dimensions; the right operand is
  converted into the left operand's unit and the result keeps the left unit.
- ``*`` and ``/`` combine units freely (``mi/hr * hr`` simplifies to ``mi``).
- ``^`` needs a dimensionless exponent; a unit-bearing base needs an integer one.
- A referenced empty cell is a dimensionless zero in arithmetic and is
  skipped by aggregate functions.

Failures are returned as Error values, never raised. When two operands are
both errors the left one wins. Nesting deeper than ``max_depth`` yields a
DEPTH_EXCEEDED error instead of exhausting the Python stack.

The evaluator holds no per-cell state; cells, names and ranges are read
through the context passed to ``evaluate``.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from unitgrid.formula.formulaast import (
    BinaryOp,
    BoolLiteral,
    CellRef,
    Expr,
    FunctionCall,
    NameRef,
    NumberLiteral,
    RangeRef,
    TextLiteral,
    UnaryOp,
    expand_range,
    normalize_address,
)
from unitgrid.formula.formulafunctions import FUNCTIONS
from unitgrid.formula.formulaparser import COMPARISON_OPS, DEFAULT_MAX_DEPTH, MAX_DEPTH_LIMIT
from unitgrid.formula.formulavalue import (
    CellValue,
    EMPTY,
    Empty,
    Error,
    ErrorKind,
    Number,
    Text,
    boolean,
)
from unitgrid.units.unitalgebra import (
    DIMENSIONLESS_UNIT,
    CompoundUnit,
    dimension,
    divide,
    multiply,
    parse_unit_text,
    power,
)
from unitgrid.units.uniterrors import (
    IncompatibleUnitsError,
    NoConversionPathError,
    UnitError,
    UnknownUnitError,
)
from unitgrid.utils.resolver import closest_names, did_you_mean

EQUALITY_REL_TOL = 1e-9
EQUALITY_ABS_TOL = 1e-12


class EvaluationContext(Protocol):
    """What the evaluator needs from the outside world."""

    def get(self, address: str) -> CellValue:
        ...

    def resolve_name(self, name: str) -> Optional[str]:
        """Address a named reference points at, or None."""
        ...

    def names(self) -> List[str]:
        ...


@dataclass
class EvaluationResult:
    value: CellValue
    warnings: List[str] = field(default_factory=list)


def unit_error_value(error: UnitError) -> Error:
    """Map a unit-layer exception onto its error value."""
    if isinstance(error, IncompatibleUnitsError):
        return Error(ErrorKind.INCOMPATIBLE_UNITS, str(error))
    if isinstance(error, NoConversionPathError):
        return Error(ErrorKind.NO_CONVERSION_PATH, str(error))
    return Error(ErrorKind.UNKNOWN_UNIT, str(error))


def format_plain(value: float) -> str:
    """Shortest readable rendering of a float (12 significant digits)."""
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    return f"{value:.12g}"


def text_of(value: CellValue) -> str:
    """Text rendering used by ``&`` and ``display``-free contexts."""
    if isinstance(value, Text):
        return value.text
    if isinstance(value, Number):
        unit = value.unit_text
        return f"{format_plain(value.value)} {unit}" if unit else format_plain(value.value)
    if isinstance(value, Empty):
        return ""
    if isinstance(value, Error):
        return value.kind.code
    raise TypeError(f"Unknown cell value {value!r}")


class Evaluator:
    """Evaluates expression trees against a context.

    Args:
        library: UnitLibrary used to resolve unit text and conversions
        max_depth: Maximum expression nesting before DEPTH_EXCEEDED

    Raises:
        ValueError: If max_depth is outside 1..MAX_DEPTH_LIMIT
    """

    def __init__(self, library, max_depth: int = DEFAULT_MAX_DEPTH):
        if not 1 <= max_depth <= MAX_DEPTH_LIMIT:
            raise ValueError(f"max_depth must be between 1 and {MAX_DEPTH_LIMIT}, got {max_depth}")
        self.library = library
        self.max_depth = max_depth

    def evaluate(self, expr: Expr, context: EvaluationContext) -> CellValue:
        return self.run(expr, context).value

    def run(self, expr: Expr, context: EvaluationContext) -> EvaluationResult:
        """Evaluate and also return non-fatal warnings (e.g. empty cells used as 0)."""
        call = _Call(self, context)
        try:
            value = call.scalar(expr, 0)
        except UnitError as e:
            value = unit_error_value(e)
        if isinstance(value, RangeValue):
            value = Error(ErrorKind.INVALID_VALUE, "a range cannot be a cell value")
        return EvaluationResult(value, list(dict.fromkeys(call.warnings)))


@dataclass(frozen=True)
class RangeValue:
    """Marker for a range evaluated outside of a function."""

    start: str
    end: str


class _Call:
    """State of one evaluation: the context, the depth counter and warnings."""

    def __init__(self, evaluator: Evaluator, context: EvaluationContext):
        self.evaluator = evaluator
        self.library = evaluator.library
        self.graph = evaluator.library.graph
        self.context = context
        self.warnings: List[str] = []

    # ========================================================================
    # Dispatch
    # ========================================================================

    def scalar(self, node: Expr, depth: int) -> CellValue:
        """Evaluate a node to a single value (Empty stays Empty)."""
        value = self._eval(node, depth)
        if isinstance(value, RangeValue):
            return Error(ErrorKind.INVALID_VALUE, f"range {value.start}:{value.end} used as a single value")
        return value

    def _eval(self, node: Expr, depth: int):
        if depth > self.evaluator.max_depth:
            return Error(ErrorKind.DEPTH_EXCEEDED,
                         f"formula nested deeper than {self.evaluator.max_depth} levels")

        if isinstance(node, NumberLiteral):
            if not node.unit_text:
                return self.finite(Number(float(node.value)))
            unit = self.parse_unit(node.unit_text)
            if isinstance(unit, Error):
                return unit
            return self.finite(Number(float(node.value), unit))
        if isinstance(node, TextLiteral):
            return Text(node.text)
        if isinstance(node, BoolLiteral):
            return boolean(node.value)
        if isinstance(node, CellRef):
            return self.reference(node.address)
        if isinstance(node, NameRef):
            address = self.context.resolve_name(node.name)
            if address is None:
                hint = did_you_mean(closest_names(node.name, self.context.names()))
                return Error(ErrorKind.UNKNOWN_NAME, f"Unknown name '{node.name}'{hint}")
            return self.reference(address)
        if isinstance(node, RangeRef):
            return RangeValue(node.start, node.end)
        if isinstance(node, UnaryOp):
            return self._unary(node, depth)
        if isinstance(node, BinaryOp):
            return self._binary_chain(node, depth)
        if isinstance(node, FunctionCall):
            return self._function(node, depth)
        raise TypeError(f"Unknown expression node {node!r}")

    def reference(self, address: str) -> CellValue:
        try:
            address = normalize_address(address)
        except ValueError:
            return Error(ErrorKind.UNRESOLVED_REFERENCE, f"invalid cell reference {address!r}")
        value = self.context.get(address)
        if value is None:
            return EMPTY
        if isinstance(value, Error) and value.kind == ErrorKind.CIRCULAR_REFERENCE:
            return Error(ErrorKind.CIRCULAR_REFERENCE, f"{address} is part of a circular reference")
        return value

    # ========================================================================
    # Operators
    # ========================================================================

    def _unary(self, node: UnaryOp, depth: int) -> CellValue:
        value = self.arith_operand(self.scalar(node.operand, depth + 1), node.operand)
        if isinstance(value, Error):
            return value
        if node.op == "-":
            return Number(-value.value, value.unit)
        if node.op == "%":
            return Number(value.value / 100.0, value.unit)
        return value

    def _binary_chain(self, node: BinaryOp, depth: int) -> CellValue:
        # walk left-deep chains iteratively; only right operands add depth
        chain = []
        while isinstance(node, BinaryOp):
            chain.append(node)
            node = node.left
        left_node = node
        acc = self.scalar(left_node, depth + 1)
        for op_node in reversed(chain):
            if isinstance(acc, Error):
                return acc
            right = self.scalar(op_node.right, depth + 1)
            acc = self.binary(op_node.op, acc, right, left_node, op_node.right)
            left_node = op_node
        return acc

    def binary(self, op: str, left: CellValue, right: CellValue,
               left_node: Optional[Expr] = None, right_node: Optional[Expr] = None) -> CellValue:
        if isinstance(left, Error):
            return left
        if isinstance(right, Error):
            return right

        if op == "&":
            return Text(text_of(left) + text_of(right))

        if op in COMPARISON_OPS:
            return self._compare(op, left, right, left_node, right_node)

        left = self.arith_operand(left, left_node)
        if isinstance(left, Error):
            return left
        right = self.arith_operand(right, right_node)
        if isinstance(right, Error):
            return right

        if op in ("+", "-"):
            converted = self.convert(right, left.unit)
            if isinstance(converted, Error):
                return converted
            value = left.value + converted.value if op == "+" else left.value - converted.value
            return self.finite(Number(value, left.unit))
        if op == "*":
            return self.finite(Number(left.value * right.value, multiply(left.unit, right.unit)))
        if op == "/":
            if right.value == 0:
                return Error(ErrorKind.DIV_BY_ZERO, "division by zero")
            return self.finite(Number(left.value / right.value, divide(left.unit, right.unit)))
        if op == "^":
            return self._power(left, right)
        return Error(ErrorKind.INVALID_VALUE, f"unknown operator {op!r}")

    def _power(self, base: Number, exponent: Number) -> CellValue:
        n = self.to_plain(exponent)
        if isinstance(n, Error):
            return n
        unit = base.unit
        if unit.terms and dimension(unit, self.library).is_dimensionless:
            base = self.convert(base, DIMENSIONLESS_UNIT)
            if isinstance(base, Error):
                return base
            unit = DIMENSIONLESS_UNIT
        if unit.terms:
            if not float(n).is_integer():
                return Error(ErrorKind.FRACTIONAL_EXPONENT,
                             f"cannot raise '{base.unit_text}' to the non-integer power {format_plain(n)}")
            unit = power(unit, int(n))
        if base.value == 0 and n < 0:
            return Error(ErrorKind.DIV_BY_ZERO, "zero raised to a negative power")
        if base.value < 0 and not float(n).is_integer():
            return Error(ErrorKind.NUMERIC, "negative base with a fractional exponent")
        try:
            value = math.pow(base.value, n)
        except OverflowError:
            return Error(ErrorKind.NUMERIC, "result too large")
        return self.finite(Number(value, unit))

    def _compare(self, op, left, right, left_node, right_node) -> CellValue:
        if isinstance(left, Text) and isinstance(right, Text):
            a, b = left.text.casefold(), right.text.casefold()
            equal = a == b
        elif isinstance(left, Text) or isinstance(right, Text):
            return Error(ErrorKind.INVALID_VALUE, "cannot compare text with a number")
        else:
            left = self.arith_operand(left, left_node)
            right = self.arith_operand(right, right_node)
            right = self.convert(right, left.unit)
            if isinstance(right, Error):
                return right
            a, b = left.value, right.value
            equal = math.isclose(a, b, rel_tol=EQUALITY_REL_TOL, abs_tol=EQUALITY_ABS_TOL)

        if op == "=":
            return boolean(equal)
        if op == "<>":
            return boolean(not equal)
        if op == "<":
            return boolean(a < b and not equal)
        if op == ">":
            return boolean(a > b and not equal)
        if op == "<=":
            return boolean(a < b or equal)
        return boolean(a > b or equal)

    # ========================================================================
    # Functions
    # ========================================================================

    def _function(self, node: FunctionCall, depth: int) -> CellValue:
        spec = FUNCTIONS.get(node.name)
        if spec is None:
            hint = did_you_mean(closest_names(node.name, FUNCTIONS))
            return Error(ErrorKind.UNKNOWN_NAME, f"Unknown function '{node.name}'{hint}")
        count = len(node.args)
        if count < spec.min_args or (spec.max_args is not None and count > spec.max_args):
            if spec.max_args is None:
                expected = f"at least {spec.min_args}"
            elif spec.min_args == spec.max_args:
                expected = str(spec.min_args)
            else:
                expected = f"{spec.min_args} to {spec.max_args}"
            return Error(ErrorKind.INVALID_VALUE,
                         f"{node.name} expects {expected} argument(s), got {count}")
        try:
            return spec.impl(self, node.args, depth + 1)
        except UnitError as e:
            return unit_error_value(e)

    # ========================================================================
    # Helpers used by operators and function implementations
    # ========================================================================

    def arith_operand(self, value: CellValue, node: Optional[Expr] = None) -> CellValue:
        """Coerce a value for arithmetic: Empty -> dimensionless 0, Text -> error."""
        if isinstance(value, Empty):
            label = None
            if isinstance(node, CellRef):
                label = node.address
            elif isinstance(node, NameRef):
                label = node.name
            self.warnings.append(f"{label or 'empty value'} is empty; treated as 0")
            return Number(0.0)
        if isinstance(value, Text):
            return Error(ErrorKind.INVALID_VALUE, f"expected a number, got text {value.text!r}")
        return value

    def number(self, node: Expr, depth: int) -> CellValue:
        """Evaluate a node that must be a number (Number or Error)."""
        return self.arith_operand(self.scalar(node, depth), node)

    def to_plain(self, value: Number):
        """Float value of a dimensionless number (``2 m/ft`` counts), else Error."""
        if not value.unit.terms:
            return value.value
        converted = self.convert(value, DIMENSIONLESS_UNIT)
        if isinstance(converted, Error):
            return Error(ErrorKind.INVALID_VALUE,
                         f"expected a dimensionless number, got '{value.unit_text}'")
        return converted.value

    def plain_number(self, node: Expr, depth: int):
        value = self.number(node, depth)
        if isinstance(value, Error):
            return value
        return self.to_plain(value)

    def collect(self, nodes, depth: int, keep_text: bool = False):
        """Flatten function arguments for aggregation.

        Ranges expand to their cells; empty cells are skipped, and text cells
        in ranges are skipped unless ``keep_text``. A text argument given
        directly is an error unless ``keep_text``. Returns a list or the first
        Error encountered.
        """
        values = []
        for node in nodes:
            if isinstance(node, RangeRef):
                for address in expand_range(node.start, node.end):
                    value = self.reference(address)
                    if isinstance(value, Error):
                        return value
                    if isinstance(value, Empty) or (isinstance(value, Text) and not keep_text):
                        continue
                    values.append(value)
                continue
            value = self.scalar(node, depth)
            if isinstance(value, Error):
                return value
            if isinstance(value, Empty):
                continue
            if isinstance(value, Text) and not keep_text:
                return Error(ErrorKind.INVALID_VALUE, f"expected a number, got text {value.text!r}")
            values.append(value)
        return values

    def parse_unit(self, text: str):
        """CompoundUnit for unit text, or an UNKNOWN_UNIT error."""
        try:
            return parse_unit_text(text, self.library)
        except UnknownUnitError as e:
            return Error(ErrorKind.UNKNOWN_UNIT, str(e))
        except UnitError as e:
            return Error(ErrorKind.UNKNOWN_UNIT, str(e))

    def convert(self, value: Number, unit: CompoundUnit) -> CellValue:
        """Convert a number into ``unit`` (Number or Error)."""
        if value.unit == unit:
            return value
        try:
            transform = self.graph.convert_units(value.unit, unit)
        except UnitError as e:
            return unit_error_value(e)
        return self.finite(Number(transform.apply(value.value), unit))

    def finite(self, value: Number) -> CellValue:
        if not math.isfinite(value.value):
            return Error(ErrorKind.NUMERIC, "result is not a finite number")
        return value


__all__ = [
    "Evaluator",
    "EvaluationContext",
    "EvaluationResult",
    "unit_error_value",
    "format_plain",
    "text_of",
    "EQUALITY_REL_TOL",
    "EQUALITY_ABS_TOL",
]
