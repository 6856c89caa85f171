"""Tests for the unit library, compound-unit algebra and the units API."""

import pytest

from unitgrid.units import (
    DIMENSIONLESS_UNIT,
    CompoundUnit,
    DimensionVector,
    IncompatibleUnitsError,
    NoConversionPathError,
    UnitDefinitionError,
    UnitLibrary,
    UnitSyntaxError,
    UnitTerm,
    UnknownUnitError,
    canonical_unit_text,
    convert_value,
    dimension,
    divide,
    format_canonical,
    is_dimensionless,
    list_units,
    load_unit_tables,
    multiply,
    parse_unit,
    parse_unit_text,
    power,
    root,
    simplify,
    suggest_units,
)


def unit(*terms):
    return CompoundUnit(tuple(UnitTerm(s, e) for s, e in terms))


class TestUnitLibrary:
    """Registration and lookup"""

    def test_lookup_symbol_alias_and_long_name(self, small_library):
        assert small_library.lookup_unit("ft").symbol == "ft"
        assert small_library.lookup_unit("feet").symbol == "ft"
        assert small_library.lookup_unit("foot").symbol == "ft"

    def test_case_insensitive_fallback(self, small_library):
        assert small_library.lookup_unit("FEET").symbol == "ft"
        assert small_library.lookup_unit("Hours").symbol == "hr"

    def test_symbols_are_case_sensitive(self, default_library):
        for spelling in ("Mb", "b", "M", "T"):
            with pytest.raises(UnknownUnitError):
                default_library.lookup_unit(spelling)
        assert default_library.lookup_unit("MB").symbol == "MB"
        assert default_library.lookup_unit("MEGABYTES").symbol == "MB"

    def test_unknown_unit_suggests(self, small_library):
        with pytest.raises(UnknownUnitError) as exc:
            small_library.lookup_unit("fet")
        assert "ft" in exc.value.suggestions or "feet" in exc.value.suggestions
        assert "did you mean" in str(exc.value)

    def test_duplicate_symbol_rejected(self, small_library):
        with pytest.raises(UnitDefinitionError):
            small_library.register_unit("ft", {"length": 1}, 0.3048)

    def test_duplicate_alias_rejected(self, small_library):
        with pytest.raises(UnitDefinitionError):
            small_library.register_unit("yd", {"length": 1}, 0.9144, aliases=["feet"])

    def test_invalid_symbol_rejected(self, small_library):
        for bad in ("", "2x", "a b", "m/s", "x^2"):
            with pytest.raises(UnitDefinitionError):
                small_library.register_unit(bad, {"length": 1}, 1.0)

    def test_non_positive_factor_rejected(self, small_library):
        with pytest.raises(UnitDefinitionError):
            small_library.register_unit("bad", {"length": 1}, 0.0)

    def test_second_canonical_rejected(self, small_library):
        with pytest.raises(UnitDefinitionError):
            small_library.register_unit("ft2", {"length": 1}, 1.0, canonical=True)

    def test_conversion_across_dimensions_rejected(self, small_library):
        with pytest.raises(IncompatibleUnitsError):
            small_library.add_conversion("ft", "s", 2.0)

    def test_registration_bumps_version(self, small_library):
        before = small_library.version
        small_library.register_unit("yd", {"length": 1}, 0.9144)
        assert small_library.version > before
        assert "yd" in small_library

    def test_custom_dimension(self):
        lib = UnitLibrary()
        lib.register_unit("tok", {"tokens": 1}, 1.0, canonical=True)
        lib.register_unit("Ktok", {"tokens": 1}, 1000.0)
        assert lib.lookup_unit("Ktok").dimension == DimensionVector.from_mapping({"tokens": 1})
        assert lib.graph.convert(2, unit(("Ktok", 1)), unit(("tok", 1))) == pytest.approx(2000)

    def test_builtin_catalogue(self, default_library):
        for symbol in ("m", "ft", "kg", "lb", "s", "hr", "year", "C", "F", "USD", "EUR", "GB", "tok", "J", "L"):
            assert symbol in default_library
        assert default_library.lookup_unit("$").symbol == "USD"
        assert default_library.lookup_unit("miles").symbol == "mi"


class TestUnitAlgebra:
    """Compound-unit operations"""

    def test_simplify_sums_and_drops(self):
        assert simplify(unit(("m", 1), ("s", -1), ("m", 1))) == unit(("m", 2), ("s", -1))
        assert simplify(unit(("m", 1), ("m", -1))) == DIMENSIONLESS_UNIT

    def test_multiply_and_divide(self):
        speed = divide(unit(("mi", 1)), unit(("hr", 1)))
        assert speed == unit(("mi", 1), ("hr", -1))
        assert multiply(speed, unit(("hr", 1))) == unit(("mi", 1))

    def test_unit_times_inverse_is_dimensionless(self):
        for u in (unit(("m", 1)), unit(("kg", 1), ("m", 1), ("s", -2)), unit(("USD", 1), ("month", -1))):
            assert is_dimensionless(multiply(u, power(u, -1)))

    def test_power(self):
        assert power(unit(("m", 1), ("s", -1)), 2) == unit(("m", 2), ("s", -2))
        assert power(unit(("m", 1)), 0) == DIMENSIONLESS_UNIT
        with pytest.raises(ValueError):
            power(unit(("m", 1)), 0.5)

    def test_root(self):
        assert root(unit(("m", 2)), 2) == unit(("m", 1))
        with pytest.raises(ValueError):
            root(unit(("m", 3)), 2)

    def test_format_canonical(self):
        assert format_canonical(unit(("kg", 1), ("m", 1), ("s", -2))) == "kg*m/s^2"
        assert format_canonical(unit(("s", -1))) == "1/s"
        assert format_canonical(unit(("m", 2))) == "m^2"
        assert format_canonical(DIMENSIONLESS_UNIT) == ""

    def test_dimension_of_compound(self, default_library):
        assert dimension(unit(("mi", 1), ("hr", -1)), default_library) == \
            DimensionVector.from_mapping({"length": 1, "time": -1})


class TestParseUnitText:
    """Parsing unit text"""

    def test_simple_and_compound(self):
        assert parse_unit_text("ft") == unit(("ft", 1))
        assert parse_unit_text("mi/hr") == unit(("mi", 1), ("hr", -1))
        assert parse_unit_text("kg*m/s^2") == unit(("kg", 1), ("m", 1), ("s", -2))

    def test_every_term_after_slash_is_denominator(self):
        assert parse_unit_text("J/kg*K") == unit(("J", 1), ("kg", -1), ("K", -1))

    def test_leading_one(self):
        assert parse_unit_text("1/s") == unit(("s", -1))

    def test_superscripts_and_operator_variants(self):
        assert parse_unit_text("m²") == unit(("m", 2))
        assert parse_unit_text("kg·m/s²") == unit(("kg", 1), ("m", 1), ("s", -2))

    def test_aliases_resolve_with_library(self, default_library):
        assert parse_unit_text("miles/hours", default_library) == unit(("mi", 1), ("hr", -1))

    def test_unknown_unit_with_library(self, default_library):
        with pytest.raises(UnknownUnitError):
            parse_unit_text("furlongs", default_library)

    def test_fractional_exponent_rejected(self):
        with pytest.raises(UnitSyntaxError):
            parse_unit_text("m^0.5")

    def test_malformed(self):
        for bad in ("m/", "*m", "m^", "m s"):
            with pytest.raises(UnitSyntaxError):
                parse_unit_text(bad)

    def test_empty_is_dimensionless(self):
        assert parse_unit_text("") == DIMENSIONLESS_UNIT


class TestUnitAPI:
    """Public unit helpers on the built-in catalogue"""

    def test_convert_value(self):
        assert convert_value(100, "ft^2", "m^2") == pytest.approx(9.290304)
        assert convert_value(212, "F", "C") == pytest.approx(100.0)
        assert convert_value(4, "quarter", "year") == pytest.approx(1.0)
        assert convert_value(1, "mi", "ft") == pytest.approx(5280)

    def test_convert_value_errors(self):
        with pytest.raises(IncompatibleUnitsError):
            convert_value(1, "ft", "kg")
        with pytest.raises(NoConversionPathError):
            convert_value(1, "JPY", "USD")

    def test_canonical_unit_text(self):
        assert canonical_unit_text("miles/hours") == "mi/hr"
        assert str(parse_unit("kg * m / s^2")) == "kg*m/s^2"

    def test_tables_are_string_typed(self):
        units_df, edges_df = load_unit_tables()
        assert {"symbol", "dimension", "factor", "alias1", "alias10"} <= set(units_df.columns)
        assert {"source", "target", "factor"} <= set(edges_df.columns)
        assert all(units_df[col].map(type).eq(str).all() for col in units_df.columns)

    def test_list_units(self):
        lengths = list_units("length")["symbol"].tolist()
        assert lengths[:3] == ["m", "cm", "mm"]
        assert "kg" not in lengths

    def test_suggest_units(self):
        assert "ft" in suggest_units("feat")
