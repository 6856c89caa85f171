"""Unit library: the registry of known units.

Each unit symbol maps to a UnitDefinition holding its dimension, its factor
to the canonical unit of that dimension, and an optional affine offset for
interval scales such as Celsius. Long names and aliases (``feet``,
``miles``, ``Celsius``) resolve to the registered symbol.

The library is explicitly constructed (``UnitLibrary.builtin()`` loads the
shipped catalogue) and shared read-mostly. Registering a unit or a conversion
is a write barrier: it takes the library lock and bumps ``version`` so that
the conversion graph rebuilds on next use.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from unitgrid.units.unitdimension import DimensionVector
from unitgrid.units.uniterrors import (
    IncompatibleUnitsError,
    UnitDefinitionError,
    UnknownUnitError,
)
from unitgrid.units.unitgraph import ConversionEdge, ConversionGraph
from unitgrid.utils.build_utils import get_aliases, parse_dimension
from unitgrid.utils.resolver import closest_names

logger = logging.getLogger(__name__)

_FORBIDDEN_SYMBOL_CHARS = set(" \t*/^()=,:<>&\"'")


@dataclass(frozen=True)
class UnitDefinition:
    """A registered simple unit.

    ``factor`` converts one of this unit into the canonical unit of its
    dimension; ``None`` means no factor is known yet (e.g. a currency with
    no exchange rate), so only explicit conversions can reach it.
    """

    symbol: str
    dimension: DimensionVector
    factor: Optional[float] = 1.0
    offset: float = 0.0
    offset_before: bool = True
    name: str = ""
    category: str = ""
    canonical: bool = False
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_affine(self) -> bool:
        return self.offset != 0.0


class UnitLibrary:
    """Registry of units and direct conversions.

    Examples:
        >>> lib = UnitLibrary()
        >>> lib.register_unit("m", {"length": 1}, 1.0, canonical=True)
        >>> lib.register_unit("ft", {"length": 1}, 0.3048, aliases=["feet"])
        >>> lib.lookup_unit("feet").symbol
        'ft'
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._units: Dict[str, UnitDefinition] = {}
        self._aliases: Dict[str, str] = {}
        self._folded: Dict[str, str] = {}
        self._ambiguous: set = set()
        self._canonical: Dict[DimensionVector, str] = {}
        self._conversions: List[ConversionEdge] = []
        self.version = 0
        self.graph = ConversionGraph(self)

    # ========================================================================
    # Construction
    # ========================================================================

    @classmethod
    def builtin(cls) -> "UnitLibrary":
        """A fresh library loaded with the shipped unit catalogue."""
        from unitgrid.units.unitapi import load_unit_tables

        units_df, edges_df = load_unit_tables()
        return cls.from_frames(units_df, edges_df)

    @classmethod
    def from_frames(cls, units_df: pd.DataFrame, edges_df: Optional[pd.DataFrame] = None) -> "UnitLibrary":
        """Build a library from the string-typed unit and conversion tables.

        Rows are registered in table order, which also fixes the order of
        graph edges (and therefore BFS tie-breaking).
        """
        library = cls()
        for _, row in units_df.iterrows():
            library.register_unit(
                row["symbol"],
                parse_dimension(row.get("dimension", "")),
                _as_float(row.get("factor", "")),
                _as_float(row.get("offset", "")),
                offset_before=_as_bool(row.get("offset_before", "True"), default=True),
                name=str(row.get("name", "") or ""),
                category=str(row.get("category", "") or ""),
                aliases=get_aliases(row),
                canonical=_as_bool(row.get("canonical", "")),
            )
        if edges_df is not None:
            for _, row in edges_df.iterrows():
                library.add_conversion(
                    row["source"],
                    row["target"],
                    float(row["factor"]),
                    _as_float(row.get("offset", "")) or 0.0,
                    offset_before=_as_bool(row.get("offset_before", "")),
                )
        logger.info("Unit library built: %d units, %d direct conversions",
                    len(library._units), len(library._conversions))
        return library

    # ========================================================================
    # Registration (write barrier)
    # ========================================================================

    @contextmanager
    def write_lock(self):
        """Hold the registry lock; registration and evaluation never overlap."""
        with self._lock:
            yield self

    def register_unit(
        self,
        symbol: str,
        dimension: Union[DimensionVector, Mapping[str, int]],
        factor_to_canonical: Optional[float],
        offset: Optional[float] = None,
        *,
        offset_before: bool = True,
        name: str = "",
        category: str = "",
        aliases: Iterable[str] = (),
        canonical: bool = False,
    ) -> None:
        """Register a simple unit.

        Args:
            symbol: Unit symbol as written in formulas (e.g. 'ft')
            dimension: DimensionVector or {dimension_name: exponent}
            factor_to_canonical: Multiplier to the canonical unit of the dimension,
                or None when no conversion is known yet
            offset: Affine offset (temperature-like scales)
            offset_before: Offset is added before scaling when True
            name: Long name, also accepted as an alias
            category: Free-form grouping used in listings
            aliases: Additional spellings
            canonical: Marks the canonical unit of its dimension (factor must be 1)

        Raises:
            UnitDefinitionError: If the symbol or an alias is already taken,
                the symbol is malformed, or the canonical definition is invalid
        """
        symbol = (symbol or "").strip()
        if not symbol or symbol[0].isdigit() or _FORBIDDEN_SYMBOL_CHARS & set(symbol):
            raise UnitDefinitionError(f"Invalid unit symbol {symbol!r}")
        if not isinstance(dimension, DimensionVector):
            dimension = DimensionVector.from_mapping(dimension)
        if factor_to_canonical is not None and factor_to_canonical <= 0:
            raise UnitDefinitionError(f"Factor for '{symbol}' must be positive, got {factor_to_canonical}")
        offset = float(offset or 0.0)
        if canonical and (factor_to_canonical != 1.0 or offset):
            raise UnitDefinitionError(f"Canonical unit '{symbol}' must have factor 1 and no offset")
        if offset and factor_to_canonical is None:
            raise UnitDefinitionError(f"Affine unit '{symbol}' needs a factor")

        spellings = [a.strip() for a in ([name] if name else []) + list(aliases) if a and a.strip()]
        spellings = list(dict.fromkeys(s for s in spellings if s != symbol))

        with self._lock:
            if symbol in self._units or symbol in self._aliases:
                raise UnitDefinitionError(f"Unit '{symbol}' is already registered")
            for alias in spellings:
                if alias in self._units or alias in self._aliases:
                    raise UnitDefinitionError(f"Alias '{alias}' of '{symbol}' is already registered")
            if canonical and dimension in self._canonical:
                raise UnitDefinitionError(
                    f"Dimension {dimension} already has canonical unit '{self._canonical[dimension]}'"
                )

            self._units[symbol] = UnitDefinition(
                symbol=symbol,
                dimension=dimension,
                factor=None if factor_to_canonical is None else float(factor_to_canonical),
                offset=offset,
                offset_before=offset_before,
                name=name or "",
                category=category or "",
                canonical=canonical,
                aliases=tuple(spellings),
            )
            if canonical:
                self._canonical[dimension] = symbol
            for alias in spellings:
                self._aliases[alias] = symbol
                self._fold(alias, symbol)
            self.version += 1

    def _fold(self, spelling: str, symbol: str) -> None:
        key = spelling.casefold()
        if key in self._ambiguous:
            return
        existing = self._folded.get(key)
        if existing is None:
            self._folded[key] = symbol
        elif existing != symbol:
            del self._folded[key]
            self._ambiguous.add(key)

    def add_conversion(
        self,
        source: str,
        target: str,
        factor: float,
        offset: float = 0.0,
        *,
        offset_before: bool = False,
    ) -> None:
        """Register (or replace) a direct conversion edge between two units.

        Raises:
            UnknownUnitError: If either unit is not registered
            IncompatibleUnitsError: If the units have different dimensions
            UnitDefinitionError: If the factor is not positive
        """
        if factor is None or factor <= 0:
            raise UnitDefinitionError(f"Conversion factor {source}->{target} must be positive, got {factor}")
        with self._lock:
            src = self.lookup_unit(source)
            dst = self.lookup_unit(target)
            if src.dimension != dst.dimension:
                raise IncompatibleUnitsError(src.symbol, dst.symbol, f"{src.dimension} vs {dst.dimension}")
            edge = ConversionEdge(src.symbol, dst.symbol, float(factor), float(offset or 0.0), offset_before)
            for i, existing in enumerate(self._conversions):
                if {existing.source, existing.target} == {src.symbol, dst.symbol}:
                    self._conversions[i] = edge
                    break
            else:
                self._conversions.append(edge)
            self.version += 1

    def set_exchange_rate(self, currency: str, rate: float, base: str = "USD") -> None:
        """Set ``1 currency = rate base`` (exchange rates are supplied by the caller)."""
        self.add_conversion(currency, base, rate)

    # ========================================================================
    # Lookup
    # ========================================================================

    def lookup_unit(self, symbol: str) -> UnitDefinition:
        """Return the definition for a symbol, alias or long name.

        Exact symbols and aliases win; otherwise aliases and long names match
        case-insensitively when unambiguous. Symbols are always case-sensitive.

        Raises:
            UnknownUnitError: With close spellings as suggestions
        """
        key = (symbol or "").strip()
        found = self._units.get(key)
        if found is not None:
            return found
        target = self._aliases.get(key) or self._folded.get(key.casefold())
        if target is not None:
            return self._units[target]
        raise UnknownUnitError(key, closest_names(key, list(self._units) + list(self._aliases)))

    def resolve_symbol(self, symbol: str) -> str:
        return self.lookup_unit(symbol).symbol

    def canonical_symbol(self, dimension: DimensionVector) -> str:
        """Canonical unit symbol of a dimension.

        Dimensions without a registered canonical unit (e.g. volume, where
        units are defined relative to m^3) get a virtual graph node.
        """
        return self._canonical.get(dimension) or f"<{dimension.describe()}>"

    def definitions(self) -> List[UnitDefinition]:
        return list(self._units.values())

    def conversions(self) -> List[ConversionEdge]:
        return list(self._conversions)

    def symbols(self) -> List[str]:
        return list(self._units)

    def __contains__(self, symbol: str) -> bool:
        try:
            self.lookup_unit(symbol)
        except UnknownUnitError:
            return False
        return True

    def __len__(self) -> int:
        return len(self._units)


def _as_float(value) -> Optional[float]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    text = str(value).strip()
    return float(text) if text else None


def _as_bool(value, default: bool = False) -> bool:
    text = str(value).strip().lower() if value is not None else ""
    if not text or text == "nan":
        return default
    return text in ("true", "1", "yes")


__all__ = [
    "UnitDefinition",
    "UnitLibrary",
]
