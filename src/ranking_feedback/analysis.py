"""
Text analysis helpers: tokenization and stop filtering.

The stop filter is an immutable set of normalized terms. It is built once and
handed by reference to every TermWeightVector that needs filtering, so it can
be shared freely between threads.

Usage:
    from ranking_feedback.analysis import StopFilter, tokenize

    stop_filter = StopFilter.english()
    tokens = [t for t in tokenize("The drought reduced the yield") if t not in stop_filter]
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from pathlib import Path

# Lucene English stopwords (EnglishAnalyzer default stop set)
LUCENE_STOPWORDS: frozenset[str] = frozenset([
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "if", "in",
    "into", "is", "it", "no", "not", "of", "on", "or", "such", "that", "the",
    "their", "then", "there", "these", "they", "this", "to", "was", "will", "with",
])

_TOKEN_PATTERN = re.compile(r"[a-zA-Z0-9]+")


def tokenize(text: str) -> list[str]:
    """Lowercase and split text on non-alphanumeric boundaries."""
    return _TOKEN_PATTERN.findall(text.lower())


class StopFilter:
    """
    Immutable set of terms excluded from every term-weight vector.

    Args:
        terms: Normalized terms to exclude. Blank entries are ignored.
    """

    __slots__ = ("_terms",)

    def __init__(self, terms: Iterable[str] = ()):
        self._terms: frozenset[str] = frozenset(t.strip() for t in terms if t and t.strip())

    @classmethod
    def english(cls) -> "StopFilter":
        return cls(LUCENE_STOPWORDS)

    @classmethod
    def from_file(cls, path: str | Path) -> "StopFilter":
        """
        Load a stop list with one term per line.

        Blank lines and lines starting with '#' are skipped; terms are lowercased.
        """
        with open(path, encoding="utf-8") as f:
            terms = [
                line.strip().lower()
                for line in f
                if line.strip() and not line.lstrip().startswith("#")
            ]
        return cls(terms)

    @property
    def terms(self) -> frozenset[str]:
        return self._terms

    def __contains__(self, term: object) -> bool:
        return term in self._terms

    def __iter__(self) -> Iterator[str]:
        return iter(self._terms)

    def __len__(self) -> int:
        return len(self._terms)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StopFilter):
            return NotImplemented
        return self._terms == other._terms

    def __hash__(self) -> int:
        return hash(self._terms)

    def __repr__(self) -> str:
        return f"StopFilter({len(self._terms)} terms)"


__all__ = ["LUCENE_STOPWORDS", "StopFilter", "tokenize"]
