"""Shared utilities for the unitgrid package."""

from unitgrid.utils.dataloader import (
    table_search_dirs,
    find_table_set,
    load_table,
    format_not_found_error,
)
from unitgrid.utils.normalize import (
    normalize_formula_text,
    normalize_unit_text,
    normalize_name,
    is_valid_name,
)
from unitgrid.utils.resolver import (
    score_candidate,
    topk_matches,
    closest_names,
    did_you_mean,
)
from unitgrid.utils.build_utils import (
    load_yaml_file,
    expand_aliases,
    get_aliases,
    format_dimension,
    parse_dimension,
)

__all__ = [
    # Data loading
    "table_search_dirs",
    "find_table_set",
    "load_table",
    "format_not_found_error",
    # Normalization
    "normalize_formula_text",
    "normalize_unit_text",
    "normalize_name",
    "is_valid_name",
    # Resolution
    "score_candidate",
    "topk_matches",
    "closest_names",
    "did_you_mean",
    # Build utilities
    "load_yaml_file",
    "expand_aliases",
    "get_aliases",
    "format_dimension",
    "parse_dimension",
]
