"""Formula parser.

Turns formula text into an expression tree. The parser knows nothing about
units beyond recognising the unit suffix of a numeric literal: ``100 ft``,
``9.8 m/s^2`` and ``$15`` are single literals.

Unit suffix rule: after a number, an identifier starts the unit; the unit
then continues across ``*``, ``/`` and ``^n`` only while no whitespace
separates the pieces. ``100 mi/hr`` is one literal, ``100 mi / 2 hr`` is a
division of two literals.

Precedence, lowest first::

    = <> < > <= >=      comparison
    &                   text concatenation
    + -
    * /
    ^                   left associative
    - +                 unary
    %                   postfix percent

Parsing never raises: ``parse_formula`` returns a ParseResult holding either
the tree or a ParseError with a message and position.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from unitgrid.formula.formulaast import (
    BinaryOp,
    BoolLiteral,
    CellRef,
    Expr,
    FunctionCall,
    NameRef,
    NumberLiteral,
    RangeRef,
    TextLiteral,
    UnaryOp,
    normalize_address,
    range_size,
)
from unitgrid.utils.normalize import normalize_formula_text, normalize_name

DEFAULT_MAX_DEPTH = 64
# each nesting level costs about ten parser frames; stays under the default recursion limit
MAX_DEPTH_LIMIT = 80
MAX_RANGE_CELLS = 10000

COMPARISON_OPS = ("=", "<>", "<", ">", "<=", ">=")

_NUMBER = re.compile(r"(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_CELL = re.compile(r"\$?[A-Z]{1,3}\$?[1-9][0-9]*(?![\w$])", re.IGNORECASE)
_IDENT = re.compile(r"(?:[^\W\d]|[°€£¥$])(?:\w|[°€£¥])*")
_OPERATORS = ("<=", ">=", "<>", "+", "-", "*", "/", "^", "&", "=", "<", ">", "%", "(", ")", ",", ":")


@dataclass(frozen=True)
class ParseError:
    message: str
    position: int
    too_deep: bool = False

    def __str__(self) -> str:
        return f"{self.message} at position {self.position}"


@dataclass(frozen=True)
class ParseResult:
    expr: Optional[Expr] = None
    error: Optional[ParseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Token:
    kind: str  # NUMBER, STRING, CELL, IDENT, OP, EOF
    text: str
    pos: int
    space_before: bool = False
    value: object = None


class _ParseFailure(Exception):
    def __init__(self, message: str, position: int, too_deep: bool = False):
        super().__init__(message)
        self.message = message
        self.position = position
        self.too_deep = too_deep


# ============================================================================
# Tokenizer
# ============================================================================

def tokenize(text: str) -> List[Token]:
    """Split formula text (without the leading '=') into tokens."""
    tokens: List[Token] = []
    i = 0
    n = len(text)
    while True:
        start = i
        while i < n and text[i].isspace():
            i += 1
        space = i > start
        if i >= n:
            tokens.append(Token("EOF", "", i, space))
            return tokens

        ch = text[i]
        if ch == '"':
            j = i + 1
            chunks = []
            while True:
                k = text.find('"', j)
                if k < 0:
                    raise _ParseFailure("unterminated string", i)
                chunks.append(text[j:k])
                if k + 1 < n and text[k + 1] == '"':
                    chunks.append('"')
                    j = k + 2
                    continue
                j = k + 1
                break
            tokens.append(Token("STRING", text[i:j], i, space, "".join(chunks)))
            i = j
            continue

        match = _NUMBER.match(text, i)
        if match:
            tokens.append(Token("NUMBER", match.group(0), i, space, float(match.group(0))))
            i = match.end()
            continue

        if ch == "$" and i + 1 < n and (text[i + 1].isdigit() or text[i + 1] == "."):
            tokens.append(Token("CURRENCY", "$", i, space))
            i += 1
            continue

        match = _CELL.match(text, i)
        if match:
            tokens.append(Token("CELL", match.group(0), i, space))
            i = match.end()
            continue

        match = _IDENT.match(text, i)
        if match:
            tokens.append(Token("IDENT", match.group(0), i, space))
            i = match.end()
            continue

        for op in _OPERATORS:
            if text.startswith(op, i):
                tokens.append(Token("OP", op, i, space))
                i += len(op)
                break
        else:
            raise _ParseFailure(f"unexpected character {ch!r}", i)


# ============================================================================
# Parser
# ============================================================================

class _Parser:
    def __init__(self, tokens: List[Token], max_depth: int):
        self.tokens = tokens
        self.i = 0
        self.depth = 0
        self.max_depth = max_depth

    def peek(self, ahead: int = 0) -> Token:
        return self.tokens[min(self.i + ahead, len(self.tokens) - 1)]

    def advance(self) -> Token:
        tok = self.tokens[self.i]
        if tok.kind != "EOF":
            self.i += 1
        return tok

    def is_op(self, *ops: str, ahead: int = 0) -> bool:
        tok = self.peek(ahead)
        return tok.kind == "OP" and tok.text in ops

    def expect_op(self, op: str) -> Token:
        if not self.is_op(op):
            self.fail(f"expected '{op}'")
        return self.advance()

    def fail(self, message: str, tok: Optional[Token] = None, too_deep: bool = False):
        tok = tok or self.peek()
        found = "end of formula" if tok.kind == "EOF" else repr(tok.text)
        raise _ParseFailure(f"{message}, found {found}", tok.pos, too_deep)

    def enter(self):
        self.depth += 1
        if self.depth > self.max_depth:
            self.fail(f"formula nested deeper than {self.max_depth} levels", too_deep=True)

    def leave(self):
        self.depth -= 1

    # ------------------------------------------------------------------ grammar

    def parse(self) -> Expr:
        expr = self.expression()
        if self.peek().kind != "EOF":
            self.fail("unexpected token")
        return expr

    def expression(self) -> Expr:
        self.enter()
        try:
            return self.comparison()
        finally:
            self.leave()

    def comparison(self) -> Expr:
        left = self.concatenation()
        while self.is_op(*COMPARISON_OPS):
            op = self.advance().text
            left = BinaryOp(op, left, self.concatenation())
        return left

    def concatenation(self) -> Expr:
        left = self.additive()
        while self.is_op("&"):
            self.advance()
            left = BinaryOp("&", left, self.additive())
        return left

    def additive(self) -> Expr:
        left = self.multiplicative()
        while self.is_op("+", "-"):
            op = self.advance().text
            left = BinaryOp(op, left, self.multiplicative())
        return left

    def multiplicative(self) -> Expr:
        left = self.power()
        while self.is_op("*", "/"):
            op = self.advance().text
            left = BinaryOp(op, left, self.power())
        return left

    def power(self) -> Expr:
        left = self.unary()
        while self.is_op("^"):
            self.advance()
            left = BinaryOp("^", left, self.unary())
        return left

    def unary(self) -> Expr:
        if self.is_op("-", "+"):
            op = self.advance().text
            self.enter()
            try:
                return UnaryOp(op, self.unary())
            finally:
                self.leave()
        return self.postfix()

    def postfix(self) -> Expr:
        expr = self.primary()
        while self.is_op("%"):
            self.advance()
            expr = UnaryOp("%", expr)
        return expr

    def primary(self) -> Expr:
        tok = self.peek()

        if tok.kind == "NUMBER":
            self.advance()
            return NumberLiteral(tok.value, self.unit_suffix())

        if tok.kind == "CURRENCY":
            self.advance()
            number = self.peek()
            if number.kind != "NUMBER" or number.space_before:
                self.fail("expected a number after '$'")
            self.advance()
            return NumberLiteral(number.value, self.unit_continuation("$"))

        if tok.kind == "STRING":
            self.advance()
            return TextLiteral(tok.value)

        if tok.kind == "CELL":
            self.advance()
            if self.is_op(":"):
                self.advance()
                end = self.peek()
                if end.kind != "CELL":
                    self.fail("expected a cell address after ':'")
                self.advance()
                start_addr, end_addr = normalize_address(tok.text), normalize_address(end.text)
                if range_size(start_addr, end_addr) > MAX_RANGE_CELLS:
                    self.fail(f"range larger than {MAX_RANGE_CELLS} cells", tok)
                return RangeRef(start_addr, end_addr)
            return CellRef(normalize_address(tok.text))

        if tok.kind == "IDENT":
            self.advance()
            if self.is_op("("):
                return self.function_call(tok)
            if tok.text.upper() in ("TRUE", "FALSE"):
                return BoolLiteral(tok.text.upper() == "TRUE")
            return NameRef(normalize_name(tok.text))

        if self.is_op("("):
            self.advance()
            expr = self.expression()
            self.expect_op(")")
            return expr

        self.fail("expected a value")

    def function_call(self, name_tok: Token) -> Expr:
        self.expect_op("(")
        args = []
        if not self.is_op(")"):
            args.append(self.expression())
            while self.is_op(","):
                self.advance()
                args.append(self.expression())
        self.expect_op(")")
        return FunctionCall(name_tok.text.upper(), tuple(args))

    # -------------------------------------------------------------- unit text

    def unit_suffix(self) -> Optional[str]:
        tok = self.peek()
        if tok.kind != "IDENT" or self.is_op("(", ahead=1):
            return None
        self.advance()
        return self.unit_continuation(tok.text)

    def unit_continuation(self, text: str) -> str:
        while True:
            op = self.peek()
            nxt = self.peek(1)
            if op.kind != "OP" or op.space_before or nxt.space_before:
                return text
            if op.text == "^":
                sign = ""
                if nxt.kind == "OP" and nxt.text == "-":
                    sign = "-"
                    nxt = self.peek(2)
                    if nxt.kind != "NUMBER" or nxt.space_before:
                        return text
                elif nxt.kind != "NUMBER":
                    return text
                if not float(nxt.value).is_integer() or "." in nxt.text:
                    self.fail("unit exponents must be integers", nxt)
                self.advance()
                if sign:
                    self.advance()
                self.advance()
                text += f"^{sign}{int(nxt.value)}"
            elif op.text in ("*", "/") and nxt.kind == "IDENT" and not self.is_op("(", ahead=2):
                self.advance()
                self.advance()
                text += op.text + nxt.text
            else:
                return text


def parse_formula(text: str, max_depth: int = DEFAULT_MAX_DEPTH) -> ParseResult:
    """Parse formula text (with or without the leading '=') into an expression tree.

    ``max_depth`` is clamped to MAX_DEPTH_LIMIT.

    Examples:
        >>> parse_formula("=100 ft * 2").expr
        BinaryOp(op='*', left=NumberLiteral(value=100.0, unit_text='ft'), right=NumberLiteral(value=2.0, unit_text=None))
        >>> parse_formula("=SUM(A1:A3").error.message
        "expected ')', found end of formula"
    """
    source = normalize_formula_text(text or "")
    offset = 0
    stripped = source.lstrip()
    if stripped.startswith("="):
        offset = len(source) - len(stripped) + 1
        source = stripped[1:]
    try:
        tokens = tokenize(source)
        if tokens[0].kind == "EOF":
            return ParseResult(error=ParseError("empty formula", offset))
        return ParseResult(expr=_Parser(tokens, min(max_depth, MAX_DEPTH_LIMIT)).parse())
    except _ParseFailure as e:
        return ParseResult(error=ParseError(e.message, e.position + offset, e.too_deep))


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "MAX_DEPTH_LIMIT",
    "MAX_RANGE_CELLS",
    "COMPARISON_OPS",
    "ParseError",
    "ParseResult",
    "Token",
    "tokenize",
    "parse_formula",
]
