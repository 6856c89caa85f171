"""Compound unit algebra.

A CompoundUnit is an ordered sequence of (symbol, exponent) terms: numerator
terms carry positive exponents and denominator terms negative ones, so
``mi/hr`` is ``(mi, 1), (hr, -1)`` and ``kg*m/s^2`` is
``(kg, 1), (m, 1), (s, -2)``.

All operations return simplified units: exponents of equal symbols are
summed (first appearance fixes the order) and zero exponents are dropped.
Symbols are compared literally, so ``ft*m`` stays two terms; merging units
of the same dimension is a conversion, handled by the conversion graph.

Examples:
    >>> mph = parse_unit_text("mi/hr")
    >>> format_canonical(multiply(mph, parse_unit_text("hr")))
    'mi'
    >>> format_canonical(power(parse_unit_text("ft^2"), 3))
    'ft^6'
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from unitgrid.units.unitdimension import DimensionVector
from unitgrid.units.uniterrors import UnitSyntaxError
from unitgrid.utils.normalize import normalize_unit_text


@dataclass(frozen=True)
class UnitTerm:
    symbol: str
    exponent: int = 1

    def __post_init__(self):
        if self.exponent == 0:
            raise ValueError(f"Unit term '{self.symbol}' cannot have exponent 0")


@dataclass(frozen=True)
class CompoundUnit:
    """Immutable product of unit terms. No terms means dimensionless."""

    terms: Tuple[UnitTerm, ...] = ()

    @classmethod
    def of(cls, symbol: str, exponent: int = 1) -> "CompoundUnit":
        return cls((UnitTerm(symbol, exponent),))

    @property
    def symbols(self) -> Tuple[str, ...]:
        return tuple(t.symbol for t in self.terms)

    def __mul__(self, other: "CompoundUnit") -> "CompoundUnit":
        if not isinstance(other, CompoundUnit):
            return NotImplemented
        return multiply(self, other)

    def __truediv__(self, other: "CompoundUnit") -> "CompoundUnit":
        if not isinstance(other, CompoundUnit):
            return NotImplemented
        return divide(self, other)

    def __pow__(self, n: int) -> "CompoundUnit":
        return power(self, n)

    def __str__(self) -> str:
        return format_canonical(self)


DIMENSIONLESS_UNIT = CompoundUnit()


# ============================================================================
# Operations
# ============================================================================

def simplify(unit: CompoundUnit) -> CompoundUnit:
    """Sum exponents of equal symbols and drop zero-exponent terms."""
    exponents: Dict[str, int] = {}
    for term in unit.terms:
        exponents[term.symbol] = exponents.get(term.symbol, 0) + int(term.exponent)
    return CompoundUnit(tuple(UnitTerm(s, e) for s, e in exponents.items() if e != 0))


def multiply(a: CompoundUnit, b: CompoundUnit) -> CompoundUnit:
    return simplify(CompoundUnit(a.terms + b.terms))


def power(a: CompoundUnit, n: int) -> CompoundUnit:
    """Raise every term to the integer power ``n``; ``n == 0`` gives the dimensionless unit."""
    if int(n) != n:
        raise ValueError(f"Unit exponents must be integers, got {n}")
    n = int(n)
    if n == 0:
        return DIMENSIONLESS_UNIT
    return simplify(CompoundUnit(tuple(UnitTerm(t.symbol, t.exponent * n) for t in a.terms)))


def divide(a: CompoundUnit, b: CompoundUnit) -> CompoundUnit:
    return multiply(a, power(b, -1))


def root(a: CompoundUnit, k: int) -> CompoundUnit:
    """Take the k-th root of a unit.

    Raises:
        ValueError: If any exponent is not divisible by ``k``
    """
    terms = []
    for t in a.terms:
        if t.exponent % k:
            raise ValueError(f"Exponent of '{t.symbol}' ({t.exponent}) is not divisible by {k}")
        terms.append(UnitTerm(t.symbol, t.exponent // k))
    return simplify(CompoundUnit(tuple(terms)))


def dimension(unit: CompoundUnit, library) -> DimensionVector:
    """Sum of ``exponent * dimension(symbol)`` over the unit's terms.

    Raises:
        UnknownUnitError: If a symbol is not registered in ``library``
    """
    result = DimensionVector()
    for term in unit.terms:
        result = result + library.lookup_unit(term.symbol).dimension.scaled(term.exponent)
    return result


def is_dimensionless(unit: CompoundUnit) -> bool:
    """True when the unit has no terms (after simplification)."""
    return not simplify(unit).terms


def format_canonical(unit: CompoundUnit) -> str:
    """Render a unit as ``num*num/den*den`` with ``^n`` for exponents other than 1.

    Examples:
        >>> format_canonical(parse_unit_text("kg*m/s^2"))
        'kg*m/s^2'
        >>> format_canonical(parse_unit_text("1/s"))
        '1/s'
        >>> format_canonical(DIMENSIONLESS_UNIT)
        ''
    """
    unit = simplify(unit)
    num = [_term_text(t.symbol, t.exponent) for t in unit.terms if t.exponent > 0]
    den = [_term_text(t.symbol, -t.exponent) for t in unit.terms if t.exponent < 0]
    if not num and not den:
        return ""
    text = "*".join(num) if num else "1"
    if den:
        text += "/" + "*".join(den)
    return text


def _term_text(symbol: str, exponent: int) -> str:
    return symbol if exponent == 1 else f"{symbol}^{exponent}"


# ============================================================================
# Parsing
# ============================================================================

_UNIT_TOKEN = re.compile(
    r"\s*(?:"
    r"(?P<op>[*/])"
    r"|\^(?P<exp>[+-]?\d+(?:\.\d+)?)"
    r"|(?P<symbol>[^\s*/^()\d.+\-][^\s*/^()]*)"
    r"|(?P<one>1)(?![\d.])"
    r")"
)


def parse_unit_text(text: str, library=None) -> CompoundUnit:
    """Parse unit text such as ``mi/hr``, ``kg*m/s^2`` or ``m²``.

    Every term after the first ``/`` belongs to the denominator. A leading
    ``1`` is accepted as an empty numerator (``1/s``). When ``library`` is
    given, aliases are resolved to their registered symbols (``miles`` ->
    ``mi``).

    Raises:
        UnitSyntaxError: If the text is malformed
        UnknownUnitError: If ``library`` is given and a symbol is unknown
    """
    source = text
    text = normalize_unit_text(text or "")
    if not text:
        return DIMENSIONLESS_UNIT

    terms: List[UnitTerm] = []
    sign = 1
    expect_term = True
    pos = 0
    while pos < len(text):
        match = _UNIT_TOKEN.match(text, pos)
        if match is None or match.end() == pos:
            raise UnitSyntaxError(source, f"unexpected character {text[pos]!r}", pos)
        token_pos = match.start(match.lastgroup)
        pos = match.end()

        if match.group("op"):
            if expect_term:
                raise UnitSyntaxError(source, "operator without a preceding unit", token_pos)
            if match.group("op") == "/":
                sign = -1
            expect_term = True
        elif match.group("exp") is not None:
            if expect_term or not terms:
                raise UnitSyntaxError(source, "exponent without a unit", token_pos)
            raw = match.group("exp")
            if "." in raw:
                raise UnitSyntaxError(source, f"fractional exponent {raw} is not supported", token_pos)
            last = terms.pop()
            exponent = last.exponent * int(raw)
            if exponent != 0:
                terms.append(UnitTerm(last.symbol, exponent))
        elif match.group("one"):
            if not expect_term or terms or sign < 0:
                raise UnitSyntaxError(source, "'1' is only allowed as an empty numerator", token_pos)
            expect_term = False
        else:
            if not expect_term:
                raise UnitSyntaxError(source, "missing operator between units", token_pos)
            symbol = match.group("symbol")
            if library is not None:
                symbol = library.resolve_symbol(symbol)
            terms.append(UnitTerm(symbol, sign))
            expect_term = False

    if expect_term:
        raise UnitSyntaxError(source, "unit text ends with an operator", len(text))
    return simplify(CompoundUnit(tuple(terms)))


__all__ = [
    "UnitTerm",
    "CompoundUnit",
    "DIMENSIONLESS_UNIT",
    "simplify",
    "multiply",
    "divide",
    "power",
    "root",
    "dimension",
    "is_dimensionless",
    "format_canonical",
    "parse_unit_text",
]
