#!/usr/bin/env python3
"""
Build units.parquet and conversions.parquet from unitconfig.yaml.

This script:
1. Loads unit definitions and direct conversion edges from YAML
2. Flattens dimensions to 'name=exp;...' strings and aliases to alias1..alias10
3. Validates symbols, canonical units and conversion endpoints
4. Writes both tables with all columns as strings

The same process_* functions are used by unitapi when no parquet table is
available, so the in-process fallback and the built tables never diverge.
"""

import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from unitgrid.utils.build_utils import expand_aliases, format_dimension, parse_dimension
from unitgrid.utils.build_framework import (
    BuildConfig,
    build_table,
    build_table_database,
    validate_duplicate_keys,
    validate_required_fields,
)

DATA_DIR = Path(__file__).parent
CONFIG_PATH = DATA_DIR.parent / "unitconfig.yaml"


def _optional(value) -> str:
    return "" if value is None else str(value)


def process_unit(unit: dict) -> dict:
    """Convert a unit entry to a DataFrame row."""
    row = {
        'symbol': str(unit.get('symbol', '')).strip(),
        'name': _optional(unit.get('name')),
        'category': _optional(unit.get('category')),
        'dimension': format_dimension(unit.get('dimension')),
        'factor': _optional(unit.get('factor')),
        'offset': _optional(unit.get('offset')),
        'offset_before': str(bool(unit.get('offset_before', True))),
        'canonical': str(bool(unit.get('canonical', False))),
    }
    row.update(expand_aliases(unit.get('aliases', [])))
    return row


def process_conversion(edge: dict) -> dict:
    """Convert a conversion entry to a DataFrame row."""
    return {
        'source': str(edge.get('source', '')).strip(),
        'target': str(edge.get('target', '')).strip(),
        'factor': _optional(edge.get('factor')),
        'offset': _optional(edge.get('offset')),
        'offset_before': str(bool(edge.get('offset_before', False))),
    }


def validate_units(df: pd.DataFrame) -> List[str]:
    """Validate unit data and return list of issues."""
    issues = []
    issues.extend(validate_duplicate_keys(df, 'symbol'))
    issues.extend(validate_required_fields(df, ['symbol', 'dimension'], 'symbol'))

    canonical = df[df['canonical'] == 'True']
    dup_canonical = canonical[canonical.duplicated(subset=['dimension'], keep=False)]
    if not dup_canonical.empty:
        issues.append(f"More than one canonical unit per dimension: {dup_canonical['symbol'].tolist()}")

    for _, row in canonical.iterrows():
        if row['factor'] not in ('1', '1.0') or row['offset']:
            issues.append(f"Canonical unit '{row['symbol']}' must have factor 1 and no offset")

    for _, row in df.iterrows():
        if row['offset'] and not row['factor']:
            issues.append(f"Affine unit '{row['symbol']}' has an offset but no factor")
        if row['factor']:
            try:
                if float(row['factor']) <= 0:
                    issues.append(f"Unit '{row['symbol']}' has a non-positive factor")
            except ValueError:
                issues.append(f"Unit '{row['symbol']}' has a non-numeric factor {row['factor']!r}")
        try:
            parse_dimension(row['dimension'])
        except ValueError as e:
            issues.append(str(e))

    return issues


def validate_conversions(df: pd.DataFrame, units_df: Optional[pd.DataFrame] = None) -> List[str]:
    """Validate conversion edges (endpoints must exist and share a dimension)."""
    issues = validate_required_fields(df, ['source', 'target', 'factor'], 'source')
    if units_df is None:
        return issues
    dims = dict(zip(units_df['symbol'], units_df['dimension']))
    for _, row in df.iterrows():
        for end in ('source', 'target'):
            if row[end] not in dims:
                issues.append(f"Conversion {row['source']}->{row['target']}: unknown {end} '{row[end]}'")
        if row['source'] in dims and row['target'] in dims and dims[row['source']] != dims[row['target']]:
            issues.append(f"Conversion {row['source']}->{row['target']} joins different dimensions")
    return issues


def generate_unit_summary(df: pd.DataFrame) -> None:
    """Print unit-specific summary statistics."""
    print("\nCategory distribution:")
    for category, count in df['category'].value_counts().items():
        if category:
            print(f"  {category}: {count}")

    print(f"\nCanonical units: {', '.join(df[df['canonical'] == 'True']['symbol'])}")
    print(f"Units without a factor: {', '.join(df[df['factor'] == '']['symbol']) or 'none'}")
    print(f"Affine units: {', '.join(df[df['offset'] != '']['symbol']) or 'none'}")


def unit_build_config(output_dir: Path = DATA_DIR, input_yaml: Path = CONFIG_PATH) -> BuildConfig:
    return BuildConfig(
        input_yaml=input_yaml,
        output_parquet=output_dir / "units.parquet",
        process_entry=process_unit,
        validate_data=validate_units,
        generate_summary=generate_unit_summary,
        table_plural="units",
        yaml_key="units",
    )


def conversion_build_config(output_dir: Path = DATA_DIR, input_yaml: Path = CONFIG_PATH,
                            units_df: Optional[pd.DataFrame] = None) -> BuildConfig:
    return BuildConfig(
        input_yaml=input_yaml,
        output_parquet=output_dir / "conversions.parquet",
        process_entry=process_conversion,
        validate_data=lambda df: validate_conversions(df, units_df),
        table_plural="conversions",
        yaml_key="conversions",
    )


def main(output_dir: Path = DATA_DIR) -> int:
    units_config = unit_build_config(output_dir)
    status = build_table_database(units_config)
    units_df = build_table(units_config)
    status |= build_table_database(conversion_build_config(output_dir, units_df=units_df))
    return status


if __name__ == "__main__":
    sys.exit(main())
