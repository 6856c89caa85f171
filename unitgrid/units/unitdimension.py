"""Dimension vectors.

A DimensionVector records the exponent of each base dimension a quantity
carries: ``m/s`` is length^1 time^-1, ``USD/month`` is currency^1 time^-1.
Two quantities can be added, subtracted or compared only when their vectors
are equal.

Besides the fixed base dimensions, any number of custom dimensions (e.g.
``tokens``) can be introduced by name; they are kept as a sorted tuple of
(name, exponent) pairs so that equality and hashing stay exact.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

BASE_DIMENSIONS = (
    "length",
    "mass",
    "time",
    "temperature",
    "currency",
    "digital_storage",
)

_ZERO_BASE = (0,) * len(BASE_DIMENSIONS)


@dataclass(frozen=True)
class DimensionVector:
    """Immutable exponent vector over base and custom dimensions."""

    base: Tuple[int, ...] = _ZERO_BASE
    custom: Tuple[Tuple[str, int], ...] = ()

    def __post_init__(self):
        if len(self.base) != len(BASE_DIMENSIONS):
            raise ValueError(
                f"Expected {len(BASE_DIMENSIONS)} base exponents, got {len(self.base)}"
            )

    # ========================================================================
    # Construction
    # ========================================================================

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, int]) -> "DimensionVector":
        """Build a vector from ``{dimension_name: exponent}``.

        Names that are not base dimensions become custom dimensions.

        Examples:
            >>> DimensionVector.from_mapping({"length": 1, "time": -1}).describe()
            'length/time'
        """
        base = [0] * len(BASE_DIMENSIONS)
        custom: Dict[str, int] = {}
        for name, exponent in (mapping or {}).items():
            exponent = int(exponent)
            if name in BASE_DIMENSIONS:
                base[BASE_DIMENSIONS.index(name)] += exponent
            else:
                custom[name] = custom.get(name, 0) + exponent
        return cls(tuple(base), _pack_custom(custom))

    @classmethod
    def dimensionless(cls) -> "DimensionVector":
        return cls()

    # ========================================================================
    # Algebra
    # ========================================================================

    def __add__(self, other: "DimensionVector") -> "DimensionVector":
        if not isinstance(other, DimensionVector):
            return NotImplemented
        base = tuple(a + b for a, b in zip(self.base, other.base))
        custom = dict(self.custom)
        for name, exponent in other.custom:
            custom[name] = custom.get(name, 0) + exponent
        return DimensionVector(base, _pack_custom(custom))

    def __sub__(self, other: "DimensionVector") -> "DimensionVector":
        if not isinstance(other, DimensionVector):
            return NotImplemented
        return self + other.scaled(-1)

    def scaled(self, n: int) -> "DimensionVector":
        """Multiply every exponent by ``n``."""
        return DimensionVector(
            tuple(e * n for e in self.base),
            _pack_custom({name: e * n for name, e in self.custom}),
        )

    # ========================================================================
    # Inspection
    # ========================================================================

    @property
    def is_dimensionless(self) -> bool:
        return not any(self.base) and not self.custom

    def to_mapping(self) -> Dict[str, int]:
        """Non-zero exponents keyed by dimension name, base dimensions first."""
        mapping = {name: e for name, e in zip(BASE_DIMENSIONS, self.base) if e}
        mapping.update(self.custom)
        return mapping

    def single_base(self):
        """Return the dimension name if this vector is exactly one dimension to the power 1.

        Returns None for dimensionless, compound or higher-power vectors.
        """
        mapping = self.to_mapping()
        if len(mapping) == 1:
            (name, exponent), = mapping.items()
            if exponent == 1:
                return name
        return None

    def describe(self) -> str:
        """Human-readable form, e.g. ``'length^2/time'`` (``'dimensionless'`` if empty)."""
        mapping = self.to_mapping()
        if not mapping:
            return "dimensionless"
        num = [_power_text(n, e) for n, e in mapping.items() if e > 0]
        den = [_power_text(n, -e) for n, e in mapping.items() if e < 0]
        text = "*".join(num) if num else "1"
        if den:
            text += "/" + "/".join(den)
        return text

    def __str__(self) -> str:
        return self.describe()


def _pack_custom(custom: Mapping[str, int]) -> Tuple[Tuple[str, int], ...]:
    return tuple(sorted((name, e) for name, e in custom.items() if e != 0))


def _power_text(name: str, exponent: int) -> str:
    return name if exponent == 1 else f"{name}^{exponent}"


DIMENSIONLESS = DimensionVector()


__all__ = [
    "BASE_DIMENSIONS",
    "DIMENSIONLESS",
    "DimensionVector",
]
