from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from ranking_feedback.analysis import StopFilter, tokenize
from ranking_feedback.feature_vector import TermWeightVector


@dataclass
class Query:
    """
    A search query and its current term-weight vector.

    Query expansion replaces `vector` with a new object; the previous vector
    is discarded, never edited in place.

    Attributes:
        text: Original query text.
        vector: Current term weights.
        qid: Optional query identifier.
    """

    text: str
    vector: TermWeightVector
    qid: str | None = None

    @classmethod
    def from_text(
        cls,
        text: str,
        stop_filter: StopFilter | None = None,
        tokenizer: Callable[[str], list[str]] = tokenize,
        qid: str | None = None,
    ) -> "Query":
        return cls(text, TermWeightVector.from_tokens(tokenizer(text), stop_filter), qid)

    @classmethod
    def from_weights(
        cls,
        weights: Mapping[str, float],
        stop_filter: StopFilter | None = None,
        qid: str | None = None,
    ) -> "Query":
        """Build a query directly from term weights; text is the space-joined terms."""
        vector = TermWeightVector.from_weights(weights, stop_filter)
        return cls(" ".join(vector.features()), vector, qid)


__all__ = ["Query"]
