"""Public API for units.

The unit catalogue is loaded once per process. Built parquet tables are
preferred (see scripts/units/update_units_db.py); when none are present the
tables are built in memory from unitconfig.yaml with the same row processing
the build script uses.

Examples:
    >>> from unitgrid.units import convert_value
    >>> round(convert_value(100, "ft^2", "m^2"), 6)
    9.290304
    >>> round(convert_value(212, "F", "C"), 6)
    100.0
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from unitgrid.units.unitalgebra import CompoundUnit, format_canonical, parse_unit_text
from unitgrid.units.unitlibrary import UnitLibrary
from unitgrid.utils.build_framework import build_table
from unitgrid.utils.dataloader import find_table_set, format_not_found_error, load_table, table_search_dirs
from unitgrid.utils.resolver import topk_matches

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def load_unit_tables() -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Load the unit and conversion tables (cached).

    Returns:
        (units_df, conversions_df), all columns as strings
    """
    search_dirs = table_search_dirs(Path(__file__).parent.parent)
    tables = find_table_set(["units", "conversions"], search_dirs)
    if tables is not None:
        logger.info("Loading unit tables from %s", tables["units"].parent)
        return load_table(tables["units"]), load_table(tables["conversions"])

    from unitgrid.units.data.build_units import CONFIG_PATH, conversion_build_config, unit_build_config

    if not CONFIG_PATH.exists():
        raise FileNotFoundError(format_not_found_error(
            search_dirs + [("Unit catalogue", CONFIG_PATH)],
            [
                "Reinstall the package: pip install -e .",
                "Build the tables: python scripts/units/update_units_db.py",
            ],
        ))

    logger.info("No built unit tables found; building from %s", CONFIG_PATH.name)
    return build_table(unit_build_config()), build_table(conversion_build_config())


@lru_cache(maxsize=1)
def get_default_library() -> UnitLibrary:
    """Process-wide library with the built-in catalogue.

    Shared read-mostly: callers that register units or exchange rates should
    build their own with ``UnitLibrary.builtin()``.
    """
    return UnitLibrary.builtin()


def parse_unit(text: str, library: Optional[UnitLibrary] = None) -> CompoundUnit:
    """Parse unit text against a library (aliases resolve to symbols)."""
    return parse_unit_text(text, library or get_default_library())


def convert_value(
    value: float,
    source: str,
    target: str,
    library: Optional[UnitLibrary] = None,
) -> float:
    """Convert a number between two unit strings.

    Raises:
        UnknownUnitError, IncompatibleUnitsError, NoConversionPathError
    """
    library = library or get_default_library()
    return library.graph.convert(
        value, parse_unit_text(source, library), parse_unit_text(target, library)
    )


def canonical_unit_text(text: str, library: Optional[UnitLibrary] = None) -> str:
    """Normalize unit text to its canonical spelling ('miles/hours' -> 'mi/hr')."""
    return format_canonical(parse_unit(text, library))


def list_units(category: Optional[str] = None) -> pd.DataFrame:
    """List built-in units, optionally filtered by category.

    Examples:
        >>> list_units("length")["symbol"].tolist()[:3]
        ['m', 'cm', 'mm']
    """
    units_df, _ = load_unit_tables()
    if category is None:
        return units_df.copy()
    return units_df[units_df["category"] == category].reset_index(drop=True)


def suggest_units(query: str, k: int = 3) -> List[str]:
    """Closest built-in unit symbols to a (mis)typed unit, best first."""
    units_df, _ = load_unit_tables()
    return [row["symbol"] for row, _score in topk_matches(units_df, query, k=k)]


__all__ = [
    "load_unit_tables",
    "get_default_library",
    "parse_unit",
    "convert_value",
    "canonical_unit_text",
    "list_units",
    "suggest_units",
]
