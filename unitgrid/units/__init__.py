"""Units module: dimensions, the unit registry, compound-unit algebra and conversion.

Public API:
    UnitLibrary / get_default_library()
        Registry of units, aliases and direct conversions

    parse_unit(text) -> CompoundUnit
        Parse 'mi/hr', 'kg*m/s^2', 'm²' (aliases resolve to symbols)

    convert_value(value, source, target) -> float
        Convert a number between unit strings via the conversion graph

    list_units(category) -> DataFrame / suggest_units(query)
        Browse the built-in catalogue

Examples:
    >>> from unitgrid.units import convert_value, parse_unit
    >>> str(parse_unit("miles/hours"))
    'mi/hr'
    >>> convert_value(4, "quarter", "year")
    1.0
"""

from .unitdimension import BASE_DIMENSIONS, DIMENSIONLESS, DimensionVector
from .uniterrors import (
    UnitError,
    UnknownUnitError,
    UnitSyntaxError,
    IncompatibleUnitsError,
    NoConversionPathError,
    UnitDefinitionError,
)
from .unitalgebra import (
    UnitTerm,
    CompoundUnit,
    DIMENSIONLESS_UNIT,
    simplify,
    multiply,
    divide,
    power,
    root,
    dimension,
    is_dimensionless,
    format_canonical,
    parse_unit_text,
)
from .unitgraph import Transform, ConversionEdge, ConversionGraph
from .unitlibrary import UnitDefinition, UnitLibrary
from .unitapi import (
    load_unit_tables,
    get_default_library,
    parse_unit,
    convert_value,
    canonical_unit_text,
    list_units,
    suggest_units,
)

__all__ = [
    # Dimensions
    "BASE_DIMENSIONS",
    "DIMENSIONLESS",
    "DimensionVector",
    # Errors
    "UnitError",
    "UnknownUnitError",
    "UnitSyntaxError",
    "IncompatibleUnitsError",
    "NoConversionPathError",
    "UnitDefinitionError",
    # Algebra
    "UnitTerm",
    "CompoundUnit",
    "DIMENSIONLESS_UNIT",
    "simplify",
    "multiply",
    "divide",
    "power",
    "root",
    "dimension",
    "is_dimensionless",
    "format_canonical",
    "parse_unit_text",
    # Conversion
    "Transform",
    "ConversionEdge",
    "ConversionGraph",
    # Library
    "UnitDefinition",
    "UnitLibrary",
    # API
    "load_unit_tables",
    "get_default_library",
    "parse_unit",
    "convert_value",
    "canonical_unit_text",
    "list_units",
    "suggest_units",
]
