"""Read-time display conversion.

Switching between metric and imperial display never touches a cell's stored
value or storage unit: the number is converted on the way to the screen.
Preferences are keyed by unit category (``length``, ``volume``, ``speed``,
...) and list the candidate units of the target system; each term is shown
in the candidate closest to it in scale, so miles become kilometers and
inches become centimeters. A term whose category has no preference is shown
as entered.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from unitgrid.formula.formulavalue import CellValue, Empty, Error, Number, Text
from unitgrid.units.unitalgebra import CompoundUnit, UnitTerm, format_canonical, simplify
from unitgrid.units.uniterrors import UnitError

logger = logging.getLogger(__name__)


class DisplayMode(Enum):
    AS_ENTERED = "as_entered"
    METRIC = "metric"
    IMPERIAL = "imperial"


@dataclass(frozen=True)
class DisplayPreferences:
    mode: DisplayMode = DisplayMode.AS_ENTERED
    metric: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    imperial: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    precision: int = 6

    def preferred(self) -> Dict[str, Tuple[str, ...]]:
        """Category -> candidate unit symbols for the current mode."""
        if self.mode == DisplayMode.METRIC:
            return self.metric
        if self.mode == DisplayMode.IMPERIAL:
            return self.imperial
        return {}


def _candidates(symbols, definition, library) -> List:
    found = []
    for symbol in symbols:
        try:
            candidate = library.lookup_unit(symbol)
        except UnitError:
            logger.warning("Preferred %s unit %r is not registered", definition.category, symbol)
            continue
        if candidate.dimension == definition.dimension:
            found.append(candidate)
    return found


def _closest_in_scale(definition, candidates):
    """Candidate whose factor is nearest to ``definition``'s on a log scale.

    Ties keep the earlier candidate. Units without a known factor match the
    first candidate.
    """
    if not definition.factor:
        return candidates[0]
    target = math.log10(definition.factor)
    best, best_distance = None, None
    for candidate in candidates:
        if not candidate.factor:
            continue
        distance = abs(math.log10(candidate.factor) - target)
        if best is None or distance < best_distance:
            best, best_distance = candidate, distance
    return best or candidates[0]


def preferred_unit_for(unit: CompoundUnit, prefs: DisplayPreferences, library) -> Optional[CompoundUnit]:
    """Unit to display ``unit`` in, or None to show it as entered.

    Each term is swapped for a preferred unit of its category, keeping the
    exponent: with imperial preferences ``m^2`` becomes ``ft^2`` and
    ``km/hr`` becomes ``mi/hr``.
    """
    table = prefs.preferred()
    if not table or not unit.terms:
        return None
    terms = []
    changed = False
    for term in unit.terms:
        definition = library.lookup_unit(term.symbol)
        candidates = _candidates(table.get(definition.category, ()), definition, library)
        if candidates:
            preferred = _closest_in_scale(definition, candidates)
            changed = changed or preferred.symbol != term.symbol
            terms.append(UnitTerm(preferred.symbol, term.exponent))
            continue
        terms.append(term)
    if not changed:
        return None
    return simplify(CompoundUnit(tuple(terms)))


def display_value(value: Number, preferred_unit: Optional[CompoundUnit], graph) -> Tuple[float, str]:
    """(number, unit label) to show for a numeric value.

    Falls back to the stored unit when no conversion exists.
    """
    if preferred_unit is None or preferred_unit == value.unit:
        return value.value, value.unit_text
    try:
        converted = graph.convert(value.value, value.unit, preferred_unit)
    except UnitError as e:
        logger.debug("Display conversion %s -> %s failed: %s",
                     value.unit_text, format_canonical(preferred_unit), e)
        return value.value, value.unit_text
    return converted, format_canonical(preferred_unit)


def format_number(x: float, precision: int = 6) -> str:
    """Fixed-point with trailing zeros trimmed; scientific for extreme magnitudes.

    Examples:
        >>> format_number(9.290304000001, 6)
        '9.290304'
        >>> format_number(200.0)
        '200'
    """
    if x != 0 and (abs(x) >= 1e15 or abs(x) < 10 ** -precision):
        return f"{x:.{precision}g}"
    text = f"{x:.{precision}f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def render(value: CellValue, display_unit: Optional[CompoundUnit], graph, precision: int = 6) -> str:
    """Text shown for a cell value."""
    if isinstance(value, Empty):
        return ""
    if isinstance(value, Text):
        return value.text
    if isinstance(value, Error):
        return str(value)
    number, label = display_value(value, display_unit, graph)
    shown = format_number(number, precision)
    return f"{shown} {label}" if label else shown


__all__ = [
    "DisplayMode",
    "DisplayPreferences",
    "preferred_unit_for",
    "display_value",
    "format_number",
    "render",
]
