"""Locating and reading the built unit tables.

scripts/units/update_units_db.py writes units and conversions tables into
unitgrid/units/data/ by default, or into a development tables/units/
directory with --output. Both tables must come from the same directory so a
half-rebuilt pair is never mixed with an older one.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

TABLE_SUFFIXES = (".parquet", ".csv")


def table_search_dirs(package_dir: Path) -> List[Tuple[str, Path]]:
    """Directories searched for built tables, in priority order.

    Args:
        package_dir: The unitgrid package directory

    Returns:
        (description, directory) pairs
    """
    return [
        ("Module-local data", package_dir / "units" / "data"),
        ("Development tables", package_dir.parent / "tables" / "units"),
    ]


def find_table_set(
    stems: Sequence[str],
    search_dirs: Sequence[Tuple[str, Path]],
) -> Optional[Dict[str, Path]]:
    """Find the first directory holding every table named in ``stems``.

    Parquet is preferred over CSV within a directory.

    Returns:
        stem -> path for that directory, or None when no directory has them all

    Examples:
        >>> find_table_set(["units", "conversions"], table_search_dirs(pkg_dir))
        {'units': PosixPath('.../units.parquet'), 'conversions': PosixPath('.../conversions.parquet')}
    """
    for _, directory in search_dirs:
        found = {}
        for stem in stems:
            for suffix in TABLE_SUFFIXES:
                path = directory / f"{stem}{suffix}"
                if path.exists():
                    found[stem] = path
                    break
        if len(found) == len(stems):
            return found
    return None


def load_table(file_path: Path) -> pd.DataFrame:
    """Read a built table; every column comes back as a string.

    Raises:
        ValueError: If the extension is not .parquet or .csv
    """
    if file_path.suffix == ".parquet":
        return pd.read_parquet(file_path).astype(str)
    if file_path.suffix == ".csv":
        return pd.read_csv(file_path, dtype=str, keep_default_na=False)
    raise ValueError(f"Unsupported table format: {file_path.suffix}. Use .parquet or .csv")


def format_not_found_error(
    searched_locations: Sequence[Tuple[str, Path]],
    fix_instructions: Sequence[str],
) -> str:
    """Message for the FileNotFoundError raised when no unit tables exist."""
    lines = ["No unit tables found.\n", "Searched:"]
    for i, (desc, path) in enumerate(searched_locations, 1):
        lines.append(f"  {i}. {desc}: {path}")
    lines.append("\nTo fix:")
    lines.extend(f"  • {instruction}" for instruction in fix_instructions)
    return "\n".join(lines)


__all__ = [
    "TABLE_SUFFIXES",
    "table_search_dirs",
    "find_table_set",
    "load_table",
    "format_not_found_error",
]
