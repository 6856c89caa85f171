"""Fuzzy "did you mean" helpers.

Unknown unit symbols, function names and named references are reported with
the closest known spellings. Scoring uses RapidFuzz, either against rows of
the unit table (symbol, name and alias columns) or against a plain list of
names.
"""

from __future__ import annotations
from typing import Iterable
import pandas as pd

try:
    from rapidfuzz import fuzz, process
except ImportError as e:
    raise ImportError("rapidfuzz not installed. pip install rapidfuzz") from e

from unitgrid.utils.build_utils import get_aliases

DEFAULT_SCORE_CUTOFF = 60.0


def score_candidate(
    row: pd.Series,
    query: str,
    name_columns: tuple[str, ...] = ("symbol", "name"),
) -> float:
    """Score a unit table row against a query.

    The symbol is compared case-sensitively (``mm`` and ``Mm`` are different
    units); names and aliases are compared lower-cased.

    Examples:
        >>> row = pd.Series({'symbol': 'ft', 'name': 'Foot', 'alias1': 'feet'})
        >>> score_candidate(row, 'feet')
        100.0
    """
    best_score = 0.0
    for col in name_columns:
        if col in row.index and pd.notna(row[col]) and str(row[col]).strip():
            value = str(row[col])
            if col == "symbol":
                score = fuzz.ratio(query, value)
            else:
                score = fuzz.ratio(query.lower(), value.lower())
            best_score = max(best_score, score)

    for alias in get_aliases(row):
        best_score = max(best_score, fuzz.ratio(query.lower(), alias.lower()))

    return best_score


def topk_matches(
    candidates: pd.DataFrame,
    query: str,
    k: int = 3,
    score_cutoff: float = DEFAULT_SCORE_CUTOFF,
) -> list[tuple[pd.Series, float]]:
    """Return the top-K candidate rows with scores, best first.

    Rows scoring below ``score_cutoff`` are dropped. Ties keep table order.
    """
    if candidates.empty or not query:
        return []

    scored = []
    for _, row in candidates.iterrows():
        score = score_candidate(row, query)
        if score >= score_cutoff:
            scored.append((row.copy(), score))

    scored.sort(key=lambda x: x[1], reverse=True)
    return scored[:k]


def closest_names(
    query: str,
    choices: Iterable[str],
    k: int = 3,
    score_cutoff: float = DEFAULT_SCORE_CUTOFF,
) -> list[str]:
    """Return up to ``k`` entries of ``choices`` closest to ``query``.

    Examples:
        >>> closest_names("SUMM", ["SUM", "AVERAGE", "COUNT"])
        ['SUM']
    """
    choices = list(dict.fromkeys(choices))
    if not query or not choices:
        return []
    matches = process.extract(
        query, choices, scorer=fuzz.ratio, limit=k, score_cutoff=score_cutoff
    )
    return [match for match, _score, _idx in matches]


def did_you_mean(suggestions: list[str]) -> str:
    """Render a suggestion suffix for error messages ('' when there are none)."""
    if not suggestions:
        return ""
    quoted = ", ".join(f"'{s}'" for s in suggestions)
    return f" (did you mean {quoted}?)"


__all__ = [
    "DEFAULT_SCORE_CUTOFF",
    "score_candidate",
    "topk_matches",
    "closest_names",
    "did_you_mean",
]
