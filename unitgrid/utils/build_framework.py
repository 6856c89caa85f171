"""
Shared framework for building lookup tables from YAML files.

The unit catalogue is built into two tables (units and conversions). Both go
through the same steps: load YAML, turn each entry into a flat row, force every
column to string, validate, sort and write parquet.
"""

from pathlib import Path
from typing import Callable, List, Optional
from dataclasses import dataclass

import pandas as pd

from unitgrid.utils.build_utils import load_yaml_file


@dataclass
class BuildConfig:
    """Configuration for building one lookup table."""

    # Input source (one of these required)
    input_yaml: Optional[Path] = None
    input_data: Optional[dict] = None

    output_parquet: Path = None

    # Table-specific callbacks
    process_entry: Callable[[dict], dict] = None
    validate_data: Callable[[pd.DataFrame], List[str]] = None
    generate_summary: Optional[Callable[[pd.DataFrame], None]] = None

    table_plural: str = None  # "units", "conversions"
    yaml_key: str = None
    sort_column: Optional[str] = None


def frame_from_records(rows: List[dict], sort_column: Optional[str] = None) -> pd.DataFrame:
    """Create a DataFrame with all string dtypes from processed rows.

    None values become empty strings so that parquet and CSV round-trip the
    same way.
    """
    df = pd.DataFrame(rows)
    for col in df.columns:
        df[col] = df[col].astype(str)
        df[col] = df[col].replace('None', '')
    if sort_column and sort_column in df.columns:
        df = df.sort_values(sort_column, kind="stable").reset_index(drop=True)
    return df


def load_entries(config: BuildConfig) -> List[dict]:
    """Load the raw entries for a build from YAML or direct data."""
    if config.input_data is not None:
        return list(config.input_data.get(config.yaml_key) or [])
    if config.input_yaml is not None:
        yaml_data = load_yaml_file(config.input_yaml)
        return list(yaml_data.get(config.yaml_key) or [])
    raise ValueError("Either input_yaml or input_data must be provided")


def build_table(config: BuildConfig) -> pd.DataFrame:
    """Run the process step of a build and return the string-typed frame."""
    entries = load_entries(config)
    rows = [config.process_entry(entry) for entry in entries]
    return frame_from_records(rows, config.sort_column)


def build_table_database(config: BuildConfig) -> int:
    """
    Generic build process for a lookup table.

    Returns:
        0 on success, 1 if validation issues found
    """
    source = "direct data" if config.input_data is not None else str(config.input_yaml)
    print(f"Building {config.table_plural} table from {source}")

    df = build_table(config)
    print(f"Processed {len(df)} {config.table_plural}")

    print("\nValidating data...")
    issues = config.validate_data(df)

    if issues:
        print("\n⚠️  Validation issues found:")
        for issue in issues:
            print(f"  - {issue}")
        print()
    else:
        print("✅ All validations passed")

    config.output_parquet.parent.mkdir(parents=True, exist_ok=True)
    print(f"\nWriting {len(df)} {config.table_plural} to {config.output_parquet}")
    df.to_parquet(config.output_parquet, index=False, engine='pyarrow')

    print("\n" + "=" * 60)
    print("BUILD SUMMARY")
    print("=" * 60)
    print(f"Total {config.table_plural}: {len(df)}")
    print(f"Output file: {config.output_parquet}")
    print(f"File size: {config.output_parquet.stat().st_size / 1024:.1f} KB")

    if config.generate_summary is not None:
        config.generate_summary(df)

    if issues:
        print(f"\n⚠️  Build completed with {len(issues)} validation issues")
        return 1
    print("\n✅ Build completed successfully")
    return 0


def validate_duplicate_keys(df: pd.DataFrame, key_field: str) -> List[str]:
    """Check for duplicate keys."""
    issues = []
    dup_keys = df[df.duplicated(subset=[key_field], keep=False)]
    if not dup_keys.empty:
        issues.append(f"Duplicate {key_field}s found: {sorted(set(dup_keys[key_field]))}")
    return issues


def validate_required_fields(df: pd.DataFrame, required_fields: List[str], label_field: str) -> List[str]:
    """Check for missing required fields."""
    issues = []
    for field in required_fields:
        missing = df[df[field].isna() | (df[field] == "")]
        if not missing.empty:
            issues.append(f"Missing {field} for: {missing[label_field].tolist()}")
    return issues


__all__ = [
    "BuildConfig",
    "frame_from_records",
    "load_entries",
    "build_table",
    "build_table_database",
    "validate_duplicate_keys",
    "validate_required_fields",
]
