"""
Sparse term-weight vectors used for relevance feedback.

A TermWeightVector maps terms to weights. Every insertion goes through
add_term, which consults the vector's stop filter and drops non-finite
weights, so a vector never holds a stop-listed term or a nan/inf weight.

Usage:
    from ranking_feedback.analysis import StopFilter
    from ranking_feedback.feature_vector import TermWeightVector

    vec = TermWeightVector.from_tokens(["drought", "the", "drought"], StopFilter.english())
    vec.weight_of("drought")  # 2.0
    vec.clip(10)
"""

from __future__ import annotations

import heapq
import math
from collections.abc import Iterable, Iterator, Mapping

from ranking_feedback.analysis import StopFilter


def _rank_key(item: tuple[str, float]) -> tuple[float, str]:
    # Highest weight first, then ascending term.
    term, weight = item
    return (-weight, term)


class TermWeightVector:
    """
    Mapping from term to weight, with a caller-supplied length.

    Args:
        stop_filter: Terms that are never added. Shared by reference, never copied.
        length: Normalization scalar (e.g. total term count) used by BM25 weighting.
            It is not recomputed when terms are added.
    """

    __slots__ = ("_weights", "_stop_filter", "_length")

    def __init__(self, stop_filter: StopFilter | None = None, length: float = 0.0):
        self._weights: dict[str, float] = {}
        self._stop_filter = stop_filter
        self._length = float(length)

    @classmethod
    def from_tokens(
        cls, tokens: Iterable[str], stop_filter: StopFilter | None = None
    ) -> "TermWeightVector":
        """Build a raw term-frequency vector; length is the number of kept tokens."""
        vec = cls(stop_filter)
        kept = 0
        for token in tokens:
            if not token or (stop_filter is not None and token in stop_filter):
                continue
            vec.add_term(token, 1.0)
            kept += 1
        vec._length = float(kept)
        return vec

    @classmethod
    def from_weights(
        cls,
        weights: Mapping[str, float],
        stop_filter: StopFilter | None = None,
        length: float | None = None,
    ) -> "TermWeightVector":
        """
        Build a vector from a term -> weight mapping (length defaults to the weight sum).

        Raises:
            ValueError: If any weight is negative.
        """
        vec = cls(stop_filter)
        for term, weight in weights.items():
            if weight < 0:
                raise ValueError(f"weight of {term!r} must be >= 0, got {weight}")
            vec.add_term(term, weight)
        vec._length = float(sum(vec._weights.values()) if length is None else length)
        return vec

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def add_term(self, term: str, weight: float = 1.0) -> None:
        """Add weight to term. Stop-listed terms and non-finite weights are ignored."""
        if self._stop_filter is not None and term in self._stop_filter:
            return
        weight = float(weight)
        if not math.isfinite(weight):
            return
        self._weights[term] = self._weights.get(term, 0.0) + weight

    def features(self) -> Iterator[str]:
        return iter(list(self._weights))

    def weight_of(self, term: str) -> float:
        return self._weights.get(term, 0.0)

    @property
    def length(self) -> float:
        return self._length

    @property
    def stop_filter(self) -> StopFilter | None:
        return self._stop_filter

    def top_terms(self, k: int | None = None) -> list[tuple[str, float]]:
        """
        Return (term, weight) pairs ordered by weight descending, ties by term ascending.

        Uses a bounded heap selection, O(n log k), when k is given.
        """
        if k is None or k >= len(self._weights):
            return sorted(self._weights.items(), key=_rank_key)
        return heapq.nsmallest(k, self._weights.items(), key=_rank_key)

    def clip(self, k: int) -> None:
        """Keep only the k highest-weighted terms (ties: ascending term)."""
        if k < 1:
            raise ValueError(f"clip size must be >= 1, got {k}")
        if len(self._weights) <= k:
            return
        self._weights = dict(self.top_terms(k))

    def merge(self, other: "TermWeightVector") -> None:
        """Additively add every entry of other through add_term."""
        for term, weight in other.items():
            self.add_term(term, weight)

    def scaled(self, factor: float) -> "TermWeightVector":
        """New vector with every weight multiplied by factor (same filter and length)."""
        vec = TermWeightVector(self._stop_filter, self._length)
        for term, weight in self._weights.items():
            vec.add_term(term, weight * factor)
        return vec

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def items(self) -> list[tuple[str, float]]:
        return list(self._weights.items())

    def copy(self) -> "TermWeightVector":
        vec = TermWeightVector(self._stop_filter, self._length)
        vec._weights = dict(self._weights)
        return vec

    def to_dict(self) -> dict[str, float]:
        return dict(self._weights)

    def to_query_string(self) -> str:
        """Render as a boosted query, e.g. 'drought^1.2345 yield^0.8000'."""
        return " ".join(f"{term}^{weight:.4f}" for term, weight in self.top_terms())

    def __len__(self) -> int:
        return len(self._weights)

    def __contains__(self, term: object) -> bool:
        return term in self._weights

    def __iter__(self) -> Iterator[str]:
        return self.features()

    def __repr__(self) -> str:
        return f"TermWeightVector({self.to_query_string()!r}, length={self._length:g})"


__all__ = ["TermWeightVector"]
