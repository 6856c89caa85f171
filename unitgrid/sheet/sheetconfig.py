"""Workbook settings loaded from sheetconfig.yaml."""

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

from unitgrid.formula.formulaparser import DEFAULT_MAX_DEPTH, MAX_DEPTH_LIMIT
from unitgrid.sheet.sheetdisplay import DisplayMode, DisplayPreferences
from unitgrid.utils.build_utils import load_yaml_file

CONFIG_PATH = Path(__file__).parent / "sheetconfig.yaml"

_KNOWN_KEYS = {
    "max_formula_depth",
    "display_mode",
    "display_precision",
    "metric",
    "imperial",
    "currency_rates",
}


def _unit_preferences(section) -> Dict[str, Tuple[str, ...]]:
    """Category -> candidate symbols; a single symbol is a one-item list."""
    prefs = {}
    for category, symbols in (section or {}).items():
        if isinstance(symbols, str):
            symbols = [symbols]
        if not symbols:
            raise ValueError(f"No preferred units listed for category {category!r}")
        prefs[str(category)] = tuple(str(s) for s in symbols)
    return prefs


@dataclass(frozen=True)
class SheetSettings:
    max_formula_depth: int = DEFAULT_MAX_DEPTH
    display_mode: DisplayMode = DisplayMode.AS_ENTERED
    display_precision: int = 6
    metric: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    imperial: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    currency_rates: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "SheetSettings":
        """Validate and build settings from parsed YAML.

        Raises:
            ValueError: On unknown keys, an unknown display mode or a bad number
        """
        data = data or {}
        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            raise ValueError(f"Unknown sheet settings: {', '.join(sorted(unknown))}")

        mode_text = str(data.get("display_mode", DisplayMode.AS_ENTERED.value)).lower()
        try:
            mode = DisplayMode(mode_text)
        except ValueError:
            valid = ", ".join(m.value for m in DisplayMode)
            raise ValueError(f"Unknown display_mode {mode_text!r}; expected one of: {valid}") from None

        depth = int(data.get("max_formula_depth", DEFAULT_MAX_DEPTH))
        if not 1 <= depth <= MAX_DEPTH_LIMIT:
            raise ValueError(f"max_formula_depth must be between 1 and {MAX_DEPTH_LIMIT}, got {depth}")
        precision = int(data.get("display_precision", 6))
        if precision < 0:
            raise ValueError(f"display_precision must be non-negative, got {precision}")

        rates = {str(k): float(v) for k, v in (data.get("currency_rates") or {}).items()}
        for currency, rate in rates.items():
            if rate <= 0:
                raise ValueError(f"Exchange rate for {currency} must be positive, got {rate}")

        return cls(
            max_formula_depth=depth,
            display_mode=mode,
            display_precision=precision,
            metric=_unit_preferences(data.get("metric")),
            imperial=_unit_preferences(data.get("imperial")),
            currency_rates=rates,
        )

    def display_preferences(self, mode: Optional[DisplayMode] = None) -> DisplayPreferences:
        return DisplayPreferences(
            mode=mode or self.display_mode,
            metric=dict(self.metric),
            imperial=dict(self.imperial),
            precision=self.display_precision,
        )


@lru_cache(maxsize=1)
def _default_settings() -> SheetSettings:
    return SheetSettings.from_dict(load_yaml_file(CONFIG_PATH))


def load_settings(path: Optional[Path] = None) -> SheetSettings:
    """Settings from a YAML file (the packaged defaults when ``path`` is None)."""
    if path is None:
        return _default_settings()
    return SheetSettings.from_dict(load_yaml_file(Path(path)))


__all__ = [
    "CONFIG_PATH",
    "SheetSettings",
    "load_settings",
]
