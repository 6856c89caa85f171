"""Formula syntax tree and cell address helpers.

Nodes are immutable dataclasses. The parser produces them; the evaluator and
the dependency graph only read them.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

ADDRESS_PATTERN = re.compile(r"^\$?([A-Z]{1,3})\$?([1-9][0-9]*)$")

NAME_NODE_PREFIX = "name:"


# ============================================================================
# Nodes
# ============================================================================

@dataclass(frozen=True)
class NumberLiteral:
    value: float
    unit_text: Optional[str] = None


@dataclass(frozen=True)
class TextLiteral:
    text: str


@dataclass(frozen=True)
class BoolLiteral:
    value: bool


@dataclass(frozen=True)
class CellRef:
    address: str


@dataclass(frozen=True)
class RangeRef:
    start: str
    end: str


@dataclass(frozen=True)
class NameRef:
    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str  # '-', '+' or '%' (postfix)
    operand: "Expr"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: Tuple["Expr", ...] = ()


Expr = Union[
    NumberLiteral, TextLiteral, BoolLiteral, CellRef, RangeRef, NameRef,
    UnaryOp, BinaryOp, FunctionCall,
]


# ============================================================================
# Addresses
# ============================================================================

def column_to_index(column: str) -> int:
    """'A' -> 0, 'Z' -> 25, 'AA' -> 26."""
    index = 0
    for ch in column:
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def index_to_column(index: int) -> str:
    """0 -> 'A', 26 -> 'AA'."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def split_address(address: str) -> Tuple[int, int]:
    """Split 'B3' (or '$B$3') into zero-based (column, row).

    Raises:
        ValueError: If the address is malformed
    """
    match = ADDRESS_PATTERN.match((address or "").strip().upper())
    if not match:
        raise ValueError(f"Invalid cell address: {address!r}")
    return column_to_index(match.group(1)), int(match.group(2)) - 1


def normalize_address(address: str) -> str:
    """Canonical form of an address: upper-case, no '$' anchors."""
    col, row = split_address(address)
    return f"{index_to_column(col)}{row + 1}"


def expand_range(start: str, end: str) -> List[str]:
    """All addresses in the rectangle between two corners, row by row.

    Examples:
        >>> expand_range("A1", "B2")
        ['A1', 'B1', 'A2', 'B2']
    """
    c1, r1 = split_address(start)
    c2, r2 = split_address(end)
    if c1 > c2:
        c1, c2 = c2, c1
    if r1 > r2:
        r1, r2 = r2, r1
    return [
        f"{index_to_column(c)}{r + 1}"
        for r in range(r1, r2 + 1)
        for c in range(c1, c2 + 1)
    ]


def range_size(start: str, end: str) -> int:
    """Number of cells in the rectangle between two corners, without expanding it."""
    c1, r1 = split_address(start)
    c2, r2 = split_address(end)
    return (abs(c2 - c1) + 1) * (abs(r2 - r1) + 1)


def name_node(name: str) -> str:
    """Dependency-graph node key for a named reference."""
    return f"{NAME_NODE_PREFIX}{name}"


# ============================================================================
# Reference extraction
# ============================================================================

def iter_nodes(expr: Expr):
    """Pre-order walk over an expression tree."""
    stack = [expr]
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, UnaryOp):
            stack.append(node.operand)
        elif isinstance(node, BinaryOp):
            stack.append(node.right)
            stack.append(node.left)
        elif isinstance(node, FunctionCall):
            stack.extend(reversed(node.args))


def extract_references(expr: Expr) -> List[str]:
    """Distinct references of an expression, in source order.

    Cell refs give their address, ranges expand to one address per cell,
    and named refs give a ``name:<id>`` node key.
    """
    refs = {}
    for node in iter_nodes(expr):
        if isinstance(node, CellRef):
            refs[node.address] = None
        elif isinstance(node, RangeRef):
            for address in expand_range(node.start, node.end):
                refs[address] = None
        elif isinstance(node, NameRef):
            refs[name_node(node.name)] = None
    return list(refs)


__all__ = [
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
    "ADDRESS_PATTERN",
    "NAME_NODE_PREFIX",
    "column_to_index",
    "index_to_column",
    "split_address",
    "normalize_address",
    "expand_range",
    "range_size",
    "name_node",
    "iter_nodes",
    "extract_references",
]
