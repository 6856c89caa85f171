#!/usr/bin/env python3
"""Production CLI for updating/creating the unit catalogue tables.

This script wraps the unit table builder (unitgrid/units/data/build_units.py)
with a few production features:
- Automatic backups with timestamps
- CSV previews for inspection
- An info file with catalogue statistics
- A validation-only dry run

Usage:
    # Basic usage (writes units.parquet and conversions.parquet next to the package data)
    python scripts/units/update_units_db.py

    # Specify output directory
    python scripts/units/update_units_db.py --output tables/units

    # Create backups before updating
    python scripts/units/update_units_db.py --backup

    # Generate CSV previews
    python scripts/units/update_units_db.py --csv-preview

    # Validate only
    python scripts/units/update_units_db.py --dry-run

Environment Variables:
    UNITS_DB_DIR: Default output directory (default: unitgrid/units/data)
"""

import argparse
import os
import shutil
import sys
import traceback
from datetime import datetime
from pathlib import Path

import pandas as pd

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from unitgrid.units.data.build_units import (
    CONFIG_PATH,
    DATA_DIR,
    conversion_build_config,
    unit_build_config,
)
from unitgrid.utils.build_framework import build_table, build_table_database


def _write_info_file(info_path: Path, units: pd.DataFrame, conversions: pd.DataFrame):
    """Write catalogue statistics to an info file."""
    with open(info_path, 'w') as f:
        f.write("=" * 70 + "\n")
        f.write("Unit Catalogue Information\n")
        f.write("=" * 70 + "\n")
        f.write(f"\nGenerated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")

        f.write(f"Total Units: {len(units):,}\n")
        f.write(f"Direct Conversions: {len(conversions):,}\n\n")

        f.write("Breakdown by Category:\n")
        for category, count in units['category'].value_counts().items():
            if category:
                pct = count / len(units) * 100
                f.write(f"  - {category:20s}: {count:3,} units ({pct:5.1f}%)\n")
        f.write("\n")

        f.write("Data Coverage:\n")
        factor_count = (units['factor'] != '').sum()
        f.write(f"  - With factor:        {factor_count:3,} ({factor_count / len(units) * 100:5.1f}%)\n")
        affine_count = (units['offset'] != '').sum()
        f.write(f"  - Affine (offset):    {affine_count:3,}\n")
        alias_count = (units['alias1'] != '').sum() if 'alias1' in units else 0
        f.write(f"  - With aliases:       {alias_count:3,} ({alias_count / len(units) * 100:5.1f}%)\n\n")

        f.write("Canonical Units:\n")
        for _, row in units[units['canonical'] == 'True'].iterrows():
            f.write(f"  - {row['symbol']:6s} {row['dimension']}\n")
        f.write("\n")

        f.write("Database Files:\n")
        for name in ("units.parquet", "conversions.parquet", "units.csv", "conversions.csv"):
            path = info_path.parent / name
            if path.exists():
                f.write(f"  - {name} ({path.stat().st_size / 1024:.2f} KB)\n")


def _backup(path: Path):
    if path.exists():
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        backup_path = path.parent / f"{path.stem}_{timestamp}{path.suffix}"
        print(f"Creating backup: {backup_path}")
        shutil.copy2(path, backup_path)


def main():
    parser = argparse.ArgumentParser(
        description='Build/update the unit catalogue tables (units.parquet, conversions.parquet)',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    default_output = Path(os.environ.get('UNITS_DB_DIR', str(DATA_DIR)))
    parser.add_argument(
        '--output', '-o',
        type=Path,
        default=default_output,
        help=f'Output directory for the parquet tables (default: {default_output})'
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        default=CONFIG_PATH,
        help=f'Unit catalogue YAML (default: {CONFIG_PATH})'
    )

    # Feature options
    parser.add_argument(
        '--backup', '-b',
        action='store_true',
        help='Create timestamped backups of existing tables before updating'
    )
    parser.add_argument(
        '--csv-preview',
        action='store_true',
        help='Generate units.csv and conversions.csv alongside the parquet files'
    )
    parser.add_argument(
        '--no-info',
        dest='info',
        action='store_false',
        help='Skip the units.info statistics file'
    )

    # Development options
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Build and validate without writing files'
    )

    args = parser.parse_args()

    try:
        units_config = unit_build_config(args.output, args.config)

        if args.dry_run:
            units = build_table(units_config)
            conversions_config = conversion_build_config(args.output, args.config, units_df=units)
            conversions = build_table(conversions_config)
            issues = units_config.validate_data(units) + conversions_config.validate_data(conversions)
            print(f"Validated {len(units)} units and {len(conversions)} conversions")
            for issue in issues:
                print(f"  - {issue}")
            print("\nDry run complete - no files written")
            return 1 if issues else 0

        args.output.mkdir(parents=True, exist_ok=True)
        if args.backup:
            _backup(units_config.output_parquet)
            _backup(args.output / "conversions.parquet")

        print("Building unit catalogue...")
        print("=" * 70)
        result = build_table_database(units_config)
        units = pd.read_parquet(units_config.output_parquet)
        result |= build_table_database(conversion_build_config(args.output, args.config, units_df=units))
        if result != 0:
            print(f"Build failed with return code: {result}")
            return result

        conversions = pd.read_parquet(args.output / "conversions.parquet")

        if args.csv_preview:
            units.to_csv(args.output / "units.csv", index=False)
            conversions.to_csv(args.output / "conversions.csv", index=False)
            print(f"Generated CSV previews in {args.output}")

        if args.info:
            info_path = args.output / "units.info"
            _write_info_file(info_path, units, conversions)
            print(f"Generated info file: {info_path}")

        print("\n" + "=" * 70)
        print("Unit catalogue build complete!")
        print(f"Output: {args.output}")
        print(f"Units: {len(units):,}  Conversions: {len(conversions):,}")
        return 0

    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        if args.verbose:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
