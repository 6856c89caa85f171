"""
Build Utility Functions
-----------------------

Helpers shared by the unit table build script and the in-process loader.

Functions:
  - load_yaml_file: Load and parse a YAML file
  - expand_aliases: Expand an alias list into alias1...alias10 columns
  - get_aliases: Collect the non-empty alias columns of a row
  - format_dimension / parse_dimension: Flat string form of a dimension mapping
"""

from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

MAX_ALIAS_COLUMNS = 10


def load_yaml_file(path: Path) -> dict:
    """
    Load and parse YAML file.

    Args:
        path: Path to YAML file

    Returns:
        Parsed YAML data as dictionary

    Raises:
        FileNotFoundError: If file does not exist
    """
    import yaml

    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def expand_aliases(aliases: Optional[List[str]], max_columns: int = MAX_ALIAS_COLUMNS) -> Dict[str, str]:
    """
    Expand aliases list into alias1...alias10 columns.

    Examples:
        >>> expand_aliases(['foot', 'feet'])['alias2']
        'feet'
        >>> expand_aliases(None)['alias1']
        ''
    """
    aliases = list(aliases or [])
    if len(aliases) > max_columns:
        raise ValueError(f"At most {max_columns} aliases are supported, got {len(aliases)}: {aliases}")

    result = {}
    for i in range(1, max_columns + 1):
        result[f"alias{i}"] = str(aliases[i - 1]) if i <= len(aliases) else ""
    return result


def get_aliases(row: pd.Series, max_columns: int = MAX_ALIAS_COLUMNS) -> List[str]:
    """Extract all non-empty values from the alias1...alias10 columns of a row."""
    aliases = []
    for i in range(1, max_columns + 1):
        col = f"alias{i}"
        if col in row.index and pd.notna(row[col]) and str(row[col]).strip():
            aliases.append(str(row[col]).strip())
    return aliases


def format_dimension(mapping: Optional[Dict[str, int]]) -> str:
    """Flatten a dimension mapping into 'name=exp;name=exp' form.

    Examples:
        >>> format_dimension({'length': 1, 'time': -1})
        'length=1;time=-1'
    """
    if not mapping:
        return ""
    return ";".join(f"{name}={int(exp)}" for name, exp in mapping.items() if int(exp) != 0)


def parse_dimension(text: str) -> Dict[str, int]:
    """Inverse of format_dimension."""
    mapping: Dict[str, int] = {}
    if not text or not str(text).strip():
        return mapping
    for part in str(text).split(";"):
        name, _, exp = part.partition("=")
        if not name.strip() or not exp.strip():
            raise ValueError(f"Malformed dimension entry {part!r} in {text!r}")
        mapping[name.strip()] = int(exp)
    return mapping


__all__ = [
    "MAX_ALIAS_COLUMNS",
    "load_yaml_file",
    "expand_aliases",
    "get_aliases",
    "format_dimension",
    "parse_dimension",
]
