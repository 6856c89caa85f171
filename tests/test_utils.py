"""Tests for shared utilities."""

import pytest
from pathlib import Path
import pandas as pd

from unitgrid.utils.dataloader import (
    find_table_set,
    format_not_found_error,
    load_table,
    table_search_dirs,
)
from unitgrid.utils.build_utils import (
    expand_aliases,
    format_dimension,
    get_aliases,
    load_yaml_file,
    parse_dimension,
)
from unitgrid.utils.build_framework import (
    BuildConfig,
    build_table,
    build_table_database,
    frame_from_records,
    validate_duplicate_keys,
)
from unitgrid.utils.normalize import (
    is_valid_name,
    normalize_formula_text,
    normalize_name,
    normalize_unit_text,
)
from unitgrid.utils.resolver import closest_names, did_you_mean, topk_matches
from unitgrid.units.data.build_units import (
    process_conversion,
    process_unit,
    unit_build_config,
    validate_conversions,
    validate_units,
)


class TestFindTableSet:
    """Locating the built unit tables"""

    def write(self, directory, *names):
        directory.mkdir(parents=True, exist_ok=True)
        for name in names:
            (directory / name).write_text("symbol\n")

    def test_search_dirs(self, tmp_path):
        dirs = table_search_dirs(tmp_path / "repo" / "unitgrid")
        assert dirs == [
            ("Module-local data", tmp_path / "repo" / "unitgrid" / "units" / "data"),
            ("Development tables", tmp_path / "repo" / "tables" / "units"),
        ]

    def test_module_local_first(self, tmp_path):
        dirs = table_search_dirs(tmp_path / "unitgrid")
        self.write(dirs[0][1], "units.csv", "conversions.csv")
        self.write(dirs[1][1], "units.parquet", "conversions.parquet")
        found = find_table_set(["units", "conversions"], dirs)
        assert found == {
            "units": dirs[0][1] / "units.csv",
            "conversions": dirs[0][1] / "conversions.csv",
        }

    def test_parquet_preferred(self, tmp_path):
        dirs = table_search_dirs(tmp_path / "unitgrid")
        self.write(dirs[1][1], "units.csv", "units.parquet")
        assert find_table_set(["units"], dirs) == {"units": dirs[1][1] / "units.parquet"}

    def test_incomplete_directory_skipped(self, tmp_path):
        dirs = table_search_dirs(tmp_path / "unitgrid")
        self.write(dirs[0][1], "units.parquet")
        self.write(dirs[1][1], "units.csv", "conversions.csv")
        found = find_table_set(["units", "conversions"], dirs)
        assert found["units"] == dirs[1][1] / "units.csv"

    def test_nothing_found(self, tmp_path):
        assert find_table_set(["units"], table_search_dirs(tmp_path / "unitgrid")) is None


class TestLoadTable:
    """Reading built tables"""

    def test_load_parquet(self, tmp_path):
        path = tmp_path / "units.parquet"
        pd.DataFrame({"symbol": ["m", "ft"], "factor": ["1", "0.3048"]}).to_parquet(path)
        loaded_df = load_table(path)
        assert len(loaded_df) == 2
        assert list(loaded_df.columns) == ["symbol", "factor"]

    def test_load_csv_as_strings(self, tmp_path):
        path = tmp_path / "units.csv"
        path.write_text("symbol,factor,offset\nm,1,\nC,1,273.15\n")
        loaded_df = load_table(path)
        assert loaded_df["factor"].tolist() == ["1", "1"]
        assert loaded_df["offset"].tolist() == ["", "273.15"]

    def test_unsupported_format(self):
        with pytest.raises(ValueError, match="Unsupported table format"):
            load_table(Path("/tmp/units.txt"))


class TestFormatNotFoundError:
    """Test error message formatting utility"""

    def test_format_basic_error(self):
        msg = format_not_found_error(
            searched_locations=[
                ("Module-local data", Path("/path/1")),
                ("Development tables", Path("/path/2")),
            ],
            fix_instructions=["Build the tables: python scripts/units/update_units_db.py"],
        )
        assert "No unit tables found" in msg
        assert "Searched:" in msg
        assert "1. Module-local data: /path/1" in msg
        assert "2. Development tables: /path/2" in msg
        assert "To fix:" in msg
        assert "update_units_db.py" in msg


class TestBuildUtils:
    """Alias columns, dimension strings and YAML loading"""

    def test_expand_aliases(self):
        cols = expand_aliases(["foot", "feet"])
        assert cols["alias1"] == "foot"
        assert cols["alias2"] == "feet"
        assert cols["alias10"] == ""
        with pytest.raises(ValueError):
            expand_aliases([str(i) for i in range(11)])

    def test_get_aliases(self):
        row = pd.Series({"symbol": "ft", "alias1": "foot", "alias2": " ", "alias3": "feet"})
        assert get_aliases(row) == ["foot", "feet"]

    def test_dimension_strings(self):
        assert format_dimension({"length": 1, "time": -1, "mass": 0}) == "length=1;time=-1"
        assert parse_dimension("length=1;time=-1") == {"length": 1, "time": -1}
        assert parse_dimension("") == {}
        with pytest.raises(ValueError):
            parse_dimension("length")

    def test_load_yaml_file(self, tmp_path):
        path = tmp_path / "units.yaml"
        path.write_text("units:\n  - {symbol: m}\n")
        assert load_yaml_file(path) == {"units": [{"symbol": "m"}]}
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "missing.yaml")


class TestBuildFramework:
    """Generic table build"""

    def test_frame_from_records_is_string_typed(self):
        df = frame_from_records([{"symbol": "m", "factor": 1.0, "offset": None}])
        assert df.loc[0, "factor"] == "1.0"
        assert df.loc[0, "offset"] == ""

    def test_build_table_from_data(self):
        config = BuildConfig(
            input_data={"units": [{"symbol": "ft", "dimension": {"length": 1}, "factor": 0.3048}]},
            process_entry=process_unit,
            yaml_key="units",
        )
        df = build_table(config)
        assert df.loc[0, "symbol"] == "ft"
        assert df.loc[0, "dimension"] == "length=1"
        assert df.loc[0, "canonical"] == "False"

    def test_build_table_database_writes_parquet(self, tmp_path):
        config = unit_build_config(output_dir=tmp_path)
        assert build_table_database(config) == 0
        written = pd.read_parquet(tmp_path / "units.parquet")
        assert "ft" in written["symbol"].tolist()

    def test_missing_source(self):
        with pytest.raises(ValueError):
            build_table(BuildConfig(process_entry=process_unit, yaml_key="units"))

    def test_validate_duplicate_keys(self):
        df = pd.DataFrame({"symbol": ["m", "m", "ft"]})
        assert validate_duplicate_keys(df, "symbol") == ["Duplicate symbols found: ['m']"]


class TestUnitValidation:
    """Checks run when the unit tables are built"""

    def rows(self, *units):
        return frame_from_records([process_unit(u) for u in units])

    def test_catalogue_is_valid(self):
        assert validate_units(build_table(unit_build_config())) == []

    def test_two_canonical_units(self):
        df = self.rows(
            {"symbol": "m", "dimension": {"length": 1}, "factor": 1, "canonical": True},
            {"symbol": "yd", "dimension": {"length": 1}, "factor": 1, "canonical": True},
        )
        assert any("canonical" in issue for issue in validate_units(df))

    def test_non_positive_factor(self):
        df = self.rows({"symbol": "x", "dimension": {"length": 1}, "factor": -2})
        assert any("non-positive" in issue for issue in validate_units(df))

    def test_conversion_endpoints(self):
        units_df = self.rows(
            {"symbol": "m", "dimension": {"length": 1}, "factor": 1},
            {"symbol": "s", "dimension": {"time": 1}, "factor": 1},
        )
        edges = frame_from_records([
            process_conversion({"source": "m", "target": "s", "factor": 2}),
            process_conversion({"source": "m", "target": "zz", "factor": 2}),
        ])
        issues = validate_conversions(edges, units_df)
        assert any("different dimensions" in issue for issue in issues)
        assert any("unknown target 'zz'" in issue for issue in issues)


class TestNormalize:
    """Text normalization"""

    def test_formula_text(self):
        assert normalize_formula_text("2 m² × 3") == "2 m^2 * 3"

    def test_unit_text(self):
        assert normalize_unit_text(" kg·m/s² ") == "kg*m/s^2"

    def test_names(self):
        assert normalize_name("  Rate ") == "rate"
        assert is_valid_name("hourly_rate")
        assert not is_valid_name("2fast")
        assert not is_valid_name("true")
        assert not is_valid_name("ab12")
        assert is_valid_name("abcd1")


class TestResolver:
    """Fuzzy suggestions"""

    def test_closest_names(self):
        assert closest_names("SUMM", ["SUM", "AVERAGE", "COUNT"]) == ["SUM"]
        assert closest_names("zzz", ["SUM"]) == []
        assert closest_names("", ["SUM"]) == []

    def test_did_you_mean(self):
        assert did_you_mean([]) == ""
        assert did_you_mean(["ft", "feet"]) == " (did you mean 'ft', 'feet'?)"

    def test_topk_matches_on_unit_table(self):
        units_df = build_table(unit_build_config())
        matches = topk_matches(units_df, "feet", k=3)
        assert matches[0][0]["symbol"] == "ft"
