"""Conversion graph.

Nodes are unit symbols; edges are direct conversions between units of the
same dimension. Every registered unit with a known factor contributes an edge
to the canonical unit of its dimension, and the catalogue (or the user) may
add direct edges such as ``ft -> in``. Edges are traversed in both
directions.

Simple conversions use breadth-first search for the minimal-hop path; ties
are broken by edge insertion order so results are reproducible. Affine
(offset-bearing) units such as degrees Celsius may only appear at the ends of
a path, and the transforms along the path are composed exactly.

Compound conversions are done term by term: each source term is paired with a
target term of the same dimension and exponent, and the simple factor is
raised to that exponent (``ft^2 -> m^2`` uses ``0.3048 ** 2``). When the two
units have different term structures (``W*hr -> J``) both sides are reduced
to canonical base terms instead.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from unitgrid.units.unitalgebra import CompoundUnit, dimension, format_canonical, simplify
from unitgrid.units.unitdimension import DimensionVector
from unitgrid.units.uniterrors import IncompatibleUnitsError, NoConversionPathError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transform:
    """Conversion ``v' = (v + offset_in) * factor + offset_out``."""

    factor: float = 1.0
    offset_in: float = 0.0
    offset_out: float = 0.0

    @property
    def is_affine(self) -> bool:
        return self.offset_in != 0.0 or self.offset_out != 0.0

    def apply(self, value: float) -> float:
        return (value + self.offset_in) * self.factor + self.offset_out

    def inverse(self) -> "Transform":
        return Transform(1.0 / self.factor, -self.offset_out, -self.offset_in)

    def then(self, other: "Transform") -> "Transform":
        """Compose: apply ``self`` first, then ``other``."""
        return Transform(
            self.factor * other.factor,
            self.offset_in,
            (self.offset_out + other.offset_in) * other.factor + other.offset_out,
        )

    def ratio(self) -> "Transform":
        """Drop the offsets (interval semantics, e.g. a temperature difference)."""
        return Transform(self.factor)


IDENTITY = Transform()


@dataclass(frozen=True)
class ConversionEdge:
    """Direct conversion from ``source`` to ``target``.

    With ``offset_before`` the offset is added before scaling,
    ``(v + offset) * factor``; otherwise after, ``v * factor + offset``.
    """

    source: str
    target: str
    factor: float
    offset: float = 0.0
    offset_before: bool = False

    def transform(self) -> Transform:
        if self.offset_before:
            return Transform(self.factor, self.offset, 0.0)
        return Transform(self.factor, 0.0, self.offset)


class ConversionGraph:
    """Per-dimension conversion graph over a UnitLibrary.

    The graph is rebuilt lazily whenever the library's version changes
    (a unit or conversion was registered).
    """

    def __init__(self, library):
        self.library = library
        self._built_version = None
        self._classes: Dict[DimensionVector, Dict[str, List[Tuple[str, Transform]]]] = {}
        self._affine: set = set()

    # ========================================================================
    # Build
    # ========================================================================

    def _ensure_built(self) -> None:
        if self._built_version == self.library.version:
            return
        self._classes = {}
        self._affine = set()
        edges = 0
        for definition in self.library.definitions():
            if definition.is_affine:
                self._affine.add(definition.symbol)
            adjacency = self._classes.setdefault(definition.dimension, {})
            adjacency.setdefault(definition.symbol, [])
            if definition.canonical or definition.factor is None:
                continue
            canonical = self.library.canonical_symbol(definition.dimension)
            self._add_edge(definition.dimension, ConversionEdge(
                definition.symbol, canonical, definition.factor,
                definition.offset, definition.offset_before,
            ))
            edges += 1
        for edge in self.library.conversions():
            self._add_edge(self.library.lookup_unit(edge.source).dimension, edge)
            edges += 1
        self._built_version = self.library.version
        logger.debug("Built conversion graph: %d dimension classes, %d edges",
                     len(self._classes), edges)

    def _add_edge(self, dim: DimensionVector, edge: ConversionEdge) -> None:
        adjacency = self._classes.setdefault(dim, {})
        forward = edge.transform()
        adjacency.setdefault(edge.source, []).append((edge.target, forward))
        adjacency.setdefault(edge.target, []).append((edge.source, forward.inverse()))

    # ========================================================================
    # Simple units
    # ========================================================================

    def find_path(self, source: str, target: str) -> Optional[List[str]]:
        """Minimal-hop path of symbols from ``source`` to ``target`` (None if unreachable)."""
        found = self._search(source, target)
        return None if found is None else found[0]

    def _search(self, source: str, target: str):
        self._ensure_built()
        src_dim = self.library.lookup_unit(source).dimension
        adjacency = self._classes.get(src_dim, {})
        if source == target:
            return [source], IDENTITY

        parents: Dict[str, Tuple[Optional[str], Transform]] = {source: (None, IDENTITY)}
        queue = deque([source])
        while queue:
            node = queue.popleft()
            # affine units may start or end a path but never sit in the middle
            if node != source and node in self._affine:
                continue
            for neighbor, hop in adjacency.get(node, []):
                if neighbor in parents:
                    continue
                parents[neighbor] = (node, hop)
                if neighbor == target:
                    return self._unwind(parents, target)
                queue.append(neighbor)
        return None

    @staticmethod
    def _unwind(parents, target):
        hops = []
        path = [target]
        node = target
        while parents[node][0] is not None:
            prev, hop = parents[node]
            hops.append(hop)
            path.append(prev)
            node = prev
        path.reverse()
        hops.reverse()
        transform = IDENTITY
        for hop in hops:
            transform = transform.then(hop)
        return path, transform

    def simple_transform(self, source: str, target: str) -> Transform:
        """Transform between two registered symbols.

        Raises:
            UnknownUnitError: If either symbol is not registered
            IncompatibleUnitsError: If their dimensions differ
            NoConversionPathError: If no chain of conversions links them
        """
        source = self.library.resolve_symbol(source)
        target = self.library.resolve_symbol(target)
        src_dim = self.library.lookup_unit(source).dimension
        dst_dim = self.library.lookup_unit(target).dimension
        if src_dim != dst_dim:
            raise IncompatibleUnitsError(source, target, f"{src_dim} vs {dst_dim}")
        found = self._search(source, target)
        if found is None:
            raise NoConversionPathError(source, target)
        path, transform = found
        logger.debug("Conversion path %s: factor=%r", " -> ".join(path), transform.factor)
        return transform

    def factor_to_canonical(self, symbol: str) -> float:
        """Ratio factor from ``symbol`` to the canonical unit of its dimension."""
        definition = self.library.lookup_unit(symbol)
        canonical = self.library.canonical_symbol(definition.dimension)
        if canonical == definition.symbol:
            return 1.0
        found = self._search(definition.symbol, canonical)
        if found is None:
            raise NoConversionPathError(definition.symbol, canonical)
        return found[1].factor

    # ========================================================================
    # Compound units
    # ========================================================================

    def convert_units(self, source: CompoundUnit, target: CompoundUnit) -> Transform:
        """Transform converting values in ``source`` units into ``target`` units.

        Raises:
            IncompatibleUnitsError: If the dimensions differ
            NoConversionPathError: If a term has no conversion path
            UnknownUnitError: If a symbol is not registered
        """
        source = simplify(source)
        target = simplify(target)
        src_dim = dimension(source, self.library)
        dst_dim = dimension(target, self.library)
        if src_dim != dst_dim:
            raise IncompatibleUnitsError(
                format_canonical(source), format_canonical(target), f"{src_dim} vs {dst_dim}"
            )
        if source == target:
            return IDENTITY

        if len(source.terms) == 1 and len(target.terms) == 1:
            s, t = source.terms[0], target.terms[0]
            if s.exponent == 1 and t.exponent == 1:
                return self.simple_transform(s.symbol, t.symbol)

        pairs = self._pair_terms(source, target)
        if pairs is not None:
            factor = 1.0
            for s, t in pairs:
                factor *= self.simple_transform(s.symbol, t.symbol).factor ** s.exponent
            return Transform(factor)

        # different term structure: reduce both sides to canonical base terms
        factor = 1.0
        for term in source.terms:
            factor *= self.factor_to_canonical(term.symbol) ** term.exponent
        for term in target.terms:
            factor /= self.factor_to_canonical(term.symbol) ** term.exponent
        return Transform(factor)

    def _pair_terms(self, source: CompoundUnit, target: CompoundUnit):
        remaining = list(target.terms)
        pairs = []
        for s in source.terms:
            s_dim = self.library.lookup_unit(s.symbol).dimension
            match = None
            for t in remaining:
                if t.exponent == s.exponent and self.library.lookup_unit(t.symbol).dimension == s_dim:
                    match = t
                    break
            if match is None:
                return None
            remaining.remove(match)
            pairs.append((s, match))
        return pairs if not remaining else None

    def convert(self, value: float, source: CompoundUnit, target: CompoundUnit) -> float:
        """Convert a number between units."""
        return self.convert_units(source, target).apply(value)


__all__ = [
    "Transform",
    "IDENTITY",
    "ConversionEdge",
    "ConversionGraph",
]
