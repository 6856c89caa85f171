"""Formula module: parsing and unit-aware evaluation of cell formulas.

Public API:
    parse_formula(text) -> ParseResult
        Tokenize and parse '=100 mi / 2 hr' into an expression tree

    extract_references(expr) -> list
        Cell addresses and 'name:<id>' nodes a formula depends on

    Evaluator(library).evaluate(expr, context) -> CellValue
        Evaluate with dimensional analysis; failures come back as Error values

    FUNCTIONS
        Registry of built-in functions and their unit policies

Examples:
    >>> from unitgrid.formula import extract_references, parse_formula
    >>> extract_references(parse_formula("=SUM(A1:A2) * rate").expr)
    ['A1', 'A2', 'name:rate']
"""

from .formulavalue import (
    ErrorKind,
    Empty,
    Number,
    Text,
    Error,
    CellValue,
    EMPTY,
    TRUE,
    FALSE,
    boolean,
    is_error,
)
from .formulaast import (
    NumberLiteral,
    TextLiteral,
    BoolLiteral,
    CellRef,
    RangeRef,
    NameRef,
    UnaryOp,
    BinaryOp,
    FunctionCall,
    Expr,
    NAME_NODE_PREFIX,
    column_to_index,
    index_to_column,
    split_address,
    normalize_address,
    expand_range,
    range_size,
    name_node,
    extract_references,
)
from .formulaparser import (
    DEFAULT_MAX_DEPTH,
    MAX_DEPTH_LIMIT,
    MAX_RANGE_CELLS,
    ParseError,
    ParseResult,
    tokenize,
    parse_formula,
)
from .formulafunctions import FUNCTIONS, FunctionSpec, register_function, function_names
from .formulaeval import (
    Evaluator,
    EvaluationContext,
    EvaluationResult,
    unit_error_value,
    format_plain,
    text_of,
)

__all__ = [
    # Values
    "ErrorKind",
    "Empty",
    "Number",
    "Text",
    "Error",
    "CellValue",
    "EMPTY",
    "TRUE",
    "FALSE",
    "boolean",
    "is_error",
    # Syntax tree
    "NumberLiteral",
    "TextLiteral",
    "BoolLiteral",
    "CellRef",
    "RangeRef",
    "NameRef",
    "UnaryOp",
    "BinaryOp",
    "FunctionCall",
    "Expr",
    "NAME_NODE_PREFIX",
    "column_to_index",
    "index_to_column",
    "split_address",
    "normalize_address",
    "expand_range",
    "range_size",
    "name_node",
    "extract_references",
    # Parser
    "DEFAULT_MAX_DEPTH",
    "MAX_DEPTH_LIMIT",
    "MAX_RANGE_CELLS",
    "ParseError",
    "ParseResult",
    "tokenize",
    "parse_formula",
    # Functions
    "FUNCTIONS",
    "FunctionSpec",
    "register_function",
    "function_names",
    # Evaluation
    "Evaluator",
    "EvaluationContext",
    "EvaluationResult",
    "unit_error_value",
    "format_plain",
    "text_of",
]
