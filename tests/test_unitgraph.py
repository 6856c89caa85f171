"""Tests for the conversion graph."""

import pytest

from unitgrid.units import (
    DIMENSIONLESS_UNIT,
    IncompatibleUnitsError,
    NoConversionPathError,
    UnknownUnitError,
    parse_unit_text,
)
from unitgrid.units.unitgraph import IDENTITY, ConversionEdge, Transform


class TestTransform:
    """Transform composition"""

    def test_apply_and_inverse(self):
        t = Transform(1.8, 0.0, 32.0)  # C -> F
        assert t.apply(100) == pytest.approx(212)
        assert t.inverse().apply(212) == pytest.approx(100)

    def test_then_composes_exactly(self):
        a = Transform(2.0, 1.0, 3.0)
        b = Transform(5.0, -2.0, 7.0)
        for v in (-3.0, 0.0, 1.5, 10.0):
            assert a.then(b).apply(v) == pytest.approx(b.apply(a.apply(v)))

    def test_edge_offset_placement(self):
        before = ConversionEdge("C", "K", 1.0, 273.15, offset_before=True).transform()
        after = ConversionEdge("x", "y", 2.0, 1.0, offset_before=False).transform()
        assert before.apply(0) == pytest.approx(273.15)
        assert after.apply(3) == pytest.approx(7.0)

    def test_identity_and_ratio(self):
        assert IDENTITY.apply(4.2) == 4.2
        assert not Transform(1.8, 0, 32).ratio().is_affine


class TestSimpleConversions:
    """Paths between simple units"""

    def test_direct_and_reverse(self, small_library):
        graph = small_library.graph
        assert graph.simple_transform("ft", "in").apply(1) == pytest.approx(12)
        assert graph.simple_transform("in", "ft").apply(12) == pytest.approx(1)

    def test_path_through_canonical(self, small_library):
        assert small_library.graph.find_path("in", "m") == ["in", "m"]
        assert small_library.graph.simple_transform("hr", "s").apply(1) == pytest.approx(3600)

    def test_minimal_hops_prefers_direct_edge(self, default_library):
        # quarter -> year has a direct edge; the canonical route has two hops
        assert default_library.graph.find_path("quarter", "year") == ["quarter", "year"]
        assert default_library.graph.convert(4, parse_unit_text("quarter"), parse_unit_text("year")) == 1.0

    def test_round_trip_law(self, default_library):
        graph = default_library.graph
        pairs = [("ft", "m"), ("mi", "km"), ("lb", "g"), ("hr", "week"), ("F", "C"), ("GiB", "MB"), ("gal", "L")]
        for a, b in pairs:
            there = graph.simple_transform(a, b)
            back = graph.simple_transform(b, a)
            for v in (-40.0, 0.0, 1.0, 123.456):
                assert back.apply(there.apply(v)) == pytest.approx(v, rel=1e-9, abs=1e-9)

    def test_affine_temperature(self, default_library):
        graph = default_library.graph
        assert graph.simple_transform("C", "F").apply(100) == pytest.approx(212)
        assert graph.simple_transform("F", "C").apply(-40) == pytest.approx(-40)
        assert graph.simple_transform("C", "K").apply(0) == pytest.approx(273.15)

    def test_affine_units_never_intermediate(self, small_library):
        small_library.register_unit("X", {"temperature": 1}, None)
        small_library.add_conversion("X", "C", 2.0)
        # X is only linked through the affine unit C, which may not sit mid-path
        assert small_library.graph.find_path("X", "K") is None
        assert small_library.graph.find_path("X", "C") == ["X", "C"]

    def test_incompatible(self, small_library):
        with pytest.raises(IncompatibleUnitsError):
            small_library.graph.simple_transform("ft", "s")

    def test_no_path(self, default_library):
        with pytest.raises(NoConversionPathError):
            default_library.graph.simple_transform("EUR", "JPY")

    def test_unknown(self, small_library):
        with pytest.raises(UnknownUnitError):
            small_library.graph.simple_transform("ft", "parsec")

    def test_graph_rebuilds_after_registration(self, library):
        with pytest.raises(NoConversionPathError):
            library.graph.simple_transform("JPY", "USD")
        library.set_exchange_rate("JPY", 0.0067)
        assert library.graph.simple_transform("JPY", "USD").apply(1000) == pytest.approx(6.7)


class TestCompoundConversions:
    """Term-by-term and canonical-reduction conversions"""

    def test_power_factor_law(self, default_library):
        graph = default_library.graph
        base = graph.simple_transform("ft", "m").factor
        for n in (1, 2, 3, -1, -2):
            src = parse_unit_text(f"ft^{n}")
            dst = parse_unit_text(f"m^{n}")
            assert graph.convert_units(src, dst).factor == pytest.approx(base ** n)

    def test_area(self, default_library):
        assert default_library.graph.convert(100, parse_unit_text("ft^2"), parse_unit_text("m^2")) == \
            pytest.approx(9.290304)

    def test_speed(self, default_library):
        graph = default_library.graph
        assert graph.convert(60, parse_unit_text("mi/hr"), parse_unit_text("km/hr")) == pytest.approx(96.56064)
        assert graph.convert(1, parse_unit_text("mi/hr"), parse_unit_text("mph")) == pytest.approx(1.0)

    def test_different_structures_reduce_to_canonical(self, default_library):
        graph = default_library.graph
        assert graph.convert(1, parse_unit_text("kW*hr"), parse_unit_text("J")) == pytest.approx(3.6e6)
        assert graph.convert(1, parse_unit_text("N*m"), parse_unit_text("J")) == pytest.approx(1.0)

    def test_volume_uses_virtual_canonical(self, default_library):
        graph = default_library.graph
        assert graph.convert(1, parse_unit_text("gal"), parse_unit_text("L")) == pytest.approx(3.785411784)
        assert graph.convert(1, parse_unit_text("L"), parse_unit_text("m^3")) == pytest.approx(0.001)

    def test_dimensionless_ratio(self, default_library):
        assert default_library.graph.convert(1, parse_unit_text("ft/m"), DIMENSIONLESS_UNIT) == \
            pytest.approx(0.3048)

    def test_compound_affine_is_interval(self, default_library):
        # a rate per degree uses the ratio only
        assert default_library.graph.convert(1, parse_unit_text("USD/C"), parse_unit_text("USD/K")) == \
            pytest.approx(1.0)

    def test_compound_incompatible(self, default_library):
        with pytest.raises(IncompatibleUnitsError):
            default_library.graph.convert_units(parse_unit_text("mi/hr"), parse_unit_text("mi"))
