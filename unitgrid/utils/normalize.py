"""Shared text normalization utilities.

Formula and unit text typed by users (or pasted from documents) arrives with
typographic variants of the operators the parser understands: unicode minus,
multiplication signs, superscript exponents, smart quotes. These helpers
fold them onto the ASCII forms before tokenizing.
"""

import re
import unicodedata

SUPERSCRIPTS = {
    "⁰": "0", "¹": "1", "²": "2", "³": "3", "⁴": "4",
    "⁵": "5", "⁶": "6", "⁷": "7", "⁸": "8", "⁹": "9", "⁻": "-",
}

_OPERATOR_VARIANTS = {
    "−": "-",  # minus sign
    "–": "-",  # en dash
    "×": "*",  # multiplication sign
    "⋅": "*",  # dot operator
    "·": "*",  # middle dot
    "÷": "/",  # division sign
    "“": '"',
    "”": '"',
    " ": " ",  # no-break space
}

_SUPERSCRIPT_RUN = re.compile("[" + "".join(SUPERSCRIPTS) + "]+")
_NAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")
_CELL_LIKE = re.compile(r"^[a-z]{1,3}[1-9][0-9]*$")
RESERVED_NAMES = frozenset({"true", "false"})


def _replace_superscripts(s: str) -> str:
    return _SUPERSCRIPT_RUN.sub(lambda m: "^" + "".join(SUPERSCRIPTS[c] for c in m.group(0)), s)


def normalize_formula_text(s: str) -> str:
    """Fold typographic operator variants onto their ASCII forms.

    Examples:
        >>> normalize_formula_text("=A1 × 2 m²")
        '=A1 * 2 m^2'
    """
    if not s:
        return ""
    s = unicodedata.normalize("NFC", s)
    for old, new in _OPERATOR_VARIANTS.items():
        s = s.replace(old, new)
    return _replace_superscripts(s)


def normalize_unit_text(s: str) -> str:
    """Normalize unit text for parsing: operator variants, superscripts, padding.

    Examples:
        >>> normalize_unit_text(" kg·m/s² ")
        'kg*m/s^2'
    """
    return normalize_formula_text(s).strip()


def normalize_name(s: str) -> str:
    """Normalize a named-reference identifier (names are case-insensitive).

    Examples:
        >>> normalize_name("  Rate ")
        'rate'
    """
    if not s:
        return ""
    return s.strip().lower()


def is_valid_name(s: str) -> bool:
    """Return True if ``s`` (already normalized) is a usable named-reference identifier."""
    s = s or ""
    return bool(_NAME_PATTERN.match(s)) and not _CELL_LIKE.match(s) and s not in RESERVED_NAMES


__all__ = [
    "SUPERSCRIPTS",
    "normalize_formula_text",
    "normalize_unit_text",
    "normalize_name",
    "is_valid_name",
]
