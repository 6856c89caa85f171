"""Built-in spreadsheet functions and their unit policies.

Every function declares how it treats units:

- aggregate: arguments must share a dimension; values are converted into the
  first value's unit, which the result keeps (VAR squares it). Empty and text
  cells inside ranges are skipped.
- count: units are discarded, the result is dimensionless.
- transform: the unit is transformed (SQRT needs even exponents).
- preserve: the result keeps the argument's unit (ROUND, ABS, ...).
- convert: explicit conversion to a target unit.
- logical: dimensionless 1/0 results; IF evaluates only the chosen branch.

Implementations receive the evaluation call object and the unevaluated
argument nodes, so they decide themselves what to evaluate and how.
"""

import math
import statistics
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Callable, Dict, List, Optional, Tuple

from unitgrid.formula.formulavalue import (
    Empty,
    Error,
    ErrorKind,
    Number,
    Text,
    CellValue,
    boolean,
)
from unitgrid.units.unitalgebra import format_canonical, power, root


@dataclass(frozen=True)
class FunctionSpec:
    name: str
    policy: str
    min_args: int
    max_args: Optional[int]
    impl: Callable
    summary: str = ""


FUNCTIONS: Dict[str, FunctionSpec] = {}


def register_function(name: str, policy: str, min_args: int, max_args: Optional[int],
                      summary: str = "", aliases: Tuple[str, ...] = ()):
    """Decorator adding an implementation to the FUNCTIONS registry."""
    def decorator(impl):
        for key in (name,) + aliases:
            FUNCTIONS[key] = FunctionSpec(key, policy, min_args, max_args, impl, summary)
        return impl
    return decorator


# ============================================================================
# Helpers
# ============================================================================

def _in_first_unit(call, values: List[Number]):
    """Convert every value into the first value's unit.

    Returns (unit, floats) or an Error.
    """
    unit = values[0].unit
    floats = []
    for v in values:
        converted = call.convert(v, unit)
        if isinstance(converted, Error):
            return converted
        floats.append(converted.value)
    return unit, floats


def _aggregate(call, args, depth, reducer, empty_result: CellValue, unit_power: int = 1) -> CellValue:
    values = call.collect(args, depth)
    if isinstance(values, Error):
        return values
    if not values:
        return empty_result
    converted = _in_first_unit(call, values)
    if isinstance(converted, Error):
        return converted
    unit, floats = converted
    try:
        result = reducer(floats)
    except ZeroDivisionError:
        return Error(ErrorKind.DIV_BY_ZERO, "not enough values")
    except statistics.StatisticsError as e:
        return Error(ErrorKind.DIV_BY_ZERO, str(e))
    return call.finite(Number(result, power(unit, unit_power)))


def _unary_preserving(fn):
    """Wrap a float -> float function as a unit-preserving one-argument function."""
    def impl(call, args, depth):
        x = call.number(args[0], depth)
        if isinstance(x, Error):
            return x
        return call.finite(Number(fn(x.value), x.unit))
    return impl


def _truthy(call, node, depth):
    value = call.scalar(node, depth)
    if isinstance(value, Error):
        return value
    if isinstance(value, Empty):
        return False
    if isinstance(value, Text):
        return Error(ErrorKind.INVALID_VALUE, f"expected a logical value, got text {value.text!r}")
    return value.value != 0


def _round_half_up(value: float, digits: int) -> float:
    try:
        quantum = Decimal(1).scaleb(-digits)
        return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return value


# ============================================================================
# Aggregate
# ============================================================================

@register_function("SUM", "aggregate", 0, None, "Sum of values in the first value's unit")
def fn_sum(call, args, depth):
    return _aggregate(call, args, depth, math.fsum, Number(0.0))


@register_function("AVERAGE", "aggregate", 1, None, "Arithmetic mean", aliases=("AVG",))
def fn_average(call, args, depth):
    return _aggregate(call, args, depth, lambda xs: math.fsum(xs) / len(xs),
                      Error(ErrorKind.DIV_BY_ZERO, "AVERAGE of no values"))


@register_function("MIN", "aggregate", 1, None, "Smallest value")
def fn_min(call, args, depth):
    return _aggregate(call, args, depth, min, Number(0.0))


@register_function("MAX", "aggregate", 1, None, "Largest value")
def fn_max(call, args, depth):
    return _aggregate(call, args, depth, max, Number(0.0))


@register_function("MEDIAN", "aggregate", 1, None, "Median value")
def fn_median(call, args, depth):
    return _aggregate(call, args, depth, statistics.median,
                      Error(ErrorKind.NUMERIC, "MEDIAN of no values"))


@register_function("STDEV", "aggregate", 1, None, "Sample standard deviation")
def fn_stdev(call, args, depth):
    return _aggregate(call, args, depth, statistics.stdev,
                      Error(ErrorKind.DIV_BY_ZERO, "STDEV of no values"))


@register_function("VAR", "aggregate", 1, None, "Sample variance (unit squared)")
def fn_var(call, args, depth):
    return _aggregate(call, args, depth, statistics.variance,
                      Error(ErrorKind.DIV_BY_ZERO, "VAR of no values"), unit_power=2)


# ============================================================================
# Count
# ============================================================================

@register_function("COUNT", "count", 0, None, "Number of numeric values")
def fn_count(call, args, depth):
    values = call.collect(args, depth, keep_text=True)
    if isinstance(values, Error):
        return values
    return Number(float(sum(1 for v in values if isinstance(v, Number))))


@register_function("COUNTA", "count", 0, None, "Number of non-empty values")
def fn_counta(call, args, depth):
    values = call.collect(args, depth, keep_text=True)
    if isinstance(values, Error):
        return values
    return Number(float(len(values)))


# ============================================================================
# Transform
# ============================================================================

@register_function("SQRT", "transform", 1, 1, "Square root; unit exponents are halved")
def fn_sqrt(call, args, depth):
    x = call.number(args[0], depth)
    if isinstance(x, Error):
        return x
    try:
        unit = root(x.unit, 2)
    except ValueError as e:
        return Error(ErrorKind.INVALID_UNIT_FOR_FUNCTION, f"SQRT of '{x.unit_text}': {e}")
    if x.value < 0:
        return Error(ErrorKind.NUMERIC, "SQRT of a negative value")
    return Number(math.sqrt(x.value), unit)


@register_function("POWER", "transform", 2, 2, "Same as base ^ exponent")
def fn_power(call, args, depth):
    base = call.scalar(args[0], depth)
    exponent = call.scalar(args[1], depth)
    return call.binary("^", base, exponent, args[0], args[1])


# ============================================================================
# Unit preserving
# ============================================================================

register_function("ABS", "preserve", 1, 1, "Absolute value")(_unary_preserving(abs))
register_function("FLOOR", "preserve", 1, 1, "Round down")(_unary_preserving(lambda v: float(math.floor(v))))
register_function("CEILING", "preserve", 1, 1, "Round up", aliases=("CEIL",))(
    _unary_preserving(lambda v: float(math.ceil(v))))
register_function("TRUNC", "preserve", 1, 1, "Round toward zero")(_unary_preserving(lambda v: float(math.trunc(v))))


@register_function("ROUND", "preserve", 1, 2, "Round half away from zero to N digits")
def fn_round(call, args, depth):
    x = call.number(args[0], depth)
    if isinstance(x, Error):
        return x
    digits = 0
    if len(args) > 1:
        d = call.plain_number(args[1], depth)
        if isinstance(d, Error):
            return d
        digits = int(d)
    return Number(_round_half_up(x.value, digits), x.unit)


@register_function("MOD", "preserve", 2, 2, "Remainder with the sign of the divisor")
def fn_mod(call, args, depth):
    x = call.number(args[0], depth)
    if isinstance(x, Error):
        return x
    y = call.number(args[1], depth)
    if isinstance(y, Error):
        return y
    y = call.convert(y, x.unit)
    if isinstance(y, Error):
        return y
    if y.value == 0:
        return Error(ErrorKind.DIV_BY_ZERO, "MOD by zero")
    return Number(x.value % y.value, x.unit)


@register_function("SIGN", "count", 1, 1, "-1, 0 or 1 (dimensionless)")
def fn_sign(call, args, depth):
    x = call.number(args[0], depth)
    if isinstance(x, Error):
        return x
    return Number(float((x.value > 0) - (x.value < 0)))


# ============================================================================
# Conversion
# ============================================================================

@register_function("CONVERT", "convert", 2, 2, "Convert to a unit given as text or a unit-bearing value")
def fn_convert(call, args, depth):
    x = call.number(args[0], depth)
    if isinstance(x, Error):
        return x
    target = call.scalar(args[1], depth)
    if isinstance(target, Error):
        return target
    if isinstance(target, Text):
        unit = call.parse_unit(target.text)
        if isinstance(unit, Error):
            return unit
    elif isinstance(target, Number) and target.unit.terms:
        unit = target.unit
    else:
        return Error(ErrorKind.INVALID_VALUE, "CONVERT target must be a unit, e.g. \"m\" or 1 km")
    return call.convert(x, unit)


@register_function("STRIPUNIT", "convert", 1, 1, "The number without its unit")
def fn_stripunit(call, args, depth):
    x = call.number(args[0], depth)
    if isinstance(x, Error):
        return x
    return Number(x.value)


@register_function("UNIT", "convert", 1, 1, "The unit of a value as text")
def fn_unit(call, args, depth):
    x = call.number(args[0], depth)
    if isinstance(x, Error):
        return x
    return Text(format_canonical(x.unit))


@register_function("PERCENT", "convert", 1, 1, "A dimensionless fraction, e.g. PERCENT(0.15) is 15%")
def fn_percent(call, args, depth):
    x = call.plain_number(args[0], depth)
    if isinstance(x, Error):
        return x
    return Number(x)


# ============================================================================
# Comparison
# ============================================================================

def _comparison(op):
    """Function form of a comparison operator, e.g. GT(a, b) is a > b."""
    def impl(call, args, depth):
        left = call.scalar(args[0], depth)
        right = call.scalar(args[1], depth)
        return call.binary(op, left, right, args[0], args[1])
    return impl


register_function("GT", "logical", 2, 2, "1 if a > b")(_comparison(">"))
register_function("LT", "logical", 2, 2, "1 if a < b")(_comparison("<"))
register_function("GTE", "logical", 2, 2, "1 if a >= b")(_comparison(">="))
register_function("LTE", "logical", 2, 2, "1 if a <= b")(_comparison("<="))
register_function("EQ", "logical", 2, 2, "1 if a = b within tolerance")(_comparison("="))
register_function("NE", "logical", 2, 2, "1 if a <> b")(_comparison("<>"))


# ============================================================================
# Logical
# ============================================================================

@register_function("IF", "logical", 2, 3, "IF(condition, then, [else])")
def fn_if(call, args, depth):
    cond = _truthy(call, args[0], depth)
    if isinstance(cond, Error):
        return cond
    if cond:
        return call.scalar(args[1], depth)
    if len(args) > 2:
        return call.scalar(args[2], depth)
    return boolean(False)


def _logical_values(call, args, depth):
    flags = []
    for node in args:
        values = call.collect((node,), depth, keep_text=False)
        if isinstance(values, Error):
            return values
        flags.extend(v.value != 0 for v in values)
    if not flags:
        return Error(ErrorKind.INVALID_VALUE, "no logical values")
    return flags


@register_function("AND", "logical", 1, None, "1 if every argument is true")
def fn_and(call, args, depth):
    flags = _logical_values(call, args, depth)
    if isinstance(flags, Error):
        return flags
    return boolean(all(flags))


@register_function("OR", "logical", 1, None, "1 if any argument is true")
def fn_or(call, args, depth):
    flags = _logical_values(call, args, depth)
    if isinstance(flags, Error):
        return flags
    return boolean(any(flags))


@register_function("NOT", "logical", 1, 1, "Logical negation")
def fn_not(call, args, depth):
    cond = _truthy(call, args[0], depth)
    if isinstance(cond, Error):
        return cond
    return boolean(not cond)


def function_names() -> List[str]:
    return sorted(FUNCTIONS)


__all__ = [
    "FunctionSpec",
    "FUNCTIONS",
    "register_function",
    "function_names",
]
