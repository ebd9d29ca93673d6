"""
BM25 term weighting for relevance feedback.

Each term of a document (or query) vector is re-weighted against corpus
statistics read from the search index:

    idf    = ln((N + 1) / (df + 0.5))
    weight = (idf * k1 * tf) / (tf + k1 * (1 - b + b * len / avgdl))

The "+1 / +0.5" IDF smoothing (as in Indri) keeps the IDF positive and
bounded for every df <= N, unlike the Robertson-Sparck Jones form.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ranking_feedback.errors import InvalidCorpusStatistics
from ranking_feedback.feature_vector import TermWeightVector

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from ranking_feedback.analysis import StopFilter
    from ranking_feedback.index import SearchIndex

EPSILON = 1e-9

DEFAULT_K1 = 1.2
DEFAULT_B = 0.75


@dataclass(frozen=True)
class CorpusStatistics:
    """Snapshot of the collection-level statistics used for weighting."""

    doc_count: int
    avg_doc_length: float

    def __post_init__(self) -> None:
        _check_statistics(self.doc_count, self.avg_doc_length)

    @classmethod
    def from_index(cls, index: "SearchIndex") -> "CorpusStatistics":
        return cls(int(index.document_count()), float(index.average_document_length()))


def _check_statistics(doc_count: float, avg_doc_length: float) -> None:
    if not math.isfinite(avg_doc_length) or avg_doc_length <= 0:
        raise InvalidCorpusStatistics(
            f"average document length must be a positive number, got {avg_doc_length}"
        )
    if doc_count < 0:
        raise InvalidCorpusStatistics(f"document count must be >= 0, got {doc_count}")


def bm25_idf(df: float, doc_count: float) -> float:
    return math.log((doc_count + 1) / (df + 0.5))


def bm25_term_weight(
    tf: float,
    df: float,
    doc_count: float,
    doc_length: float,
    avg_doc_length: float,
    k1: float = DEFAULT_K1,
    b: float = DEFAULT_B,
) -> float:
    """
    BM25 weight of a single term.

    Args:
        tf: Raw frequency of the term in the document.
        df: Number of documents containing the term.
        doc_count: Number of documents in the corpus (N).
        doc_length: Length of the document; non-positive values become EPSILON.
        avg_doc_length: Average document length; must be > 0.
        k1: Term frequency saturation.
        b: Length normalization strength.

    Raises:
        InvalidCorpusStatistics: If avg_doc_length is not a positive number.
    """
    _check_statistics(doc_count, avg_doc_length)
    if tf == 0:
        return 0.0
    if doc_length <= 0:
        doc_length = EPSILON
    idf = bm25_idf(df, doc_count)
    denominator = tf + k1 * (1 - b + b * doc_length / avg_doc_length)
    return (idf * k1 * tf) / denominator


def bm25_weights(
    tf: NDArray[np.float64],
    df: NDArray[np.float64],
    doc_count: float,
    doc_length: float,
    avg_doc_length: float,
    k1: float = DEFAULT_K1,
    b: float = DEFAULT_B,
) -> NDArray[np.float64]:
    """Vectorized bm25_term_weight over aligned tf/df arrays for one document."""
    _check_statistics(doc_count, avg_doc_length)
    if doc_length <= 0:
        doc_length = EPSILON
    idf = np.log((doc_count + 1) / (df + 0.5))
    denominator = tf + k1 * (1 - b + b * doc_length / avg_doc_length)
    with np.errstate(divide="ignore", invalid="ignore"):
        weights = (idf * k1 * tf) / denominator
    return np.where(tf == 0, 0.0, weights)


class BM25TermWeighter:
    """
    Applies bm25_term_weight to every term of a vector.

    Args:
        k1 (float): Term frequency saturation parameter.
        b (float): Length normalization parameter.
    """

    def __init__(self, k1: float = DEFAULT_K1, b: float = DEFAULT_B):
        self.k1 = k1
        self.b = b

    def weigh(
        self,
        vector: TermWeightVector,
        index: "SearchIndex",
        stop_filter: "StopFilter | None" = None,
    ) -> TermWeightVector:
        """
        Return a new vector with the same terms and BM25 weights.

        The vector's own length is used as the document length. Corpus
        statistics are read from the index once per call.
        """
        stats = CorpusStatistics.from_index(index)
        return self.weigh_with(vector, stats, index.document_frequency, stop_filter)

    def weigh_with(
        self,
        vector: TermWeightVector,
        stats: CorpusStatistics,
        document_frequency: Callable[[str], int],
        stop_filter: "StopFilter | None" = None,
    ) -> TermWeightVector:
        """Like weigh, with explicit statistics and a df lookup callable."""
        out = TermWeightVector(
            stop_filter if stop_filter is not None else vector.stop_filter,
            vector.length,
        )
        terms = list(vector.features())
        if not terms:
            return out

        tf = np.array([vector.weight_of(term) for term in terms], dtype=np.float64)
        df = np.array([document_frequency(term) for term in terms], dtype=np.float64)
        weights = bm25_weights(
            tf, df, stats.doc_count, vector.length, stats.avg_doc_length, self.k1, self.b
        )
        for term, weight in zip(terms, weights.tolist()):
            out.add_term(term, weight)
        return out

    def __repr__(self) -> str:
        return f"BM25TermWeighter(k1={self.k1}, b={self.b})"


__all__ = [
    "EPSILON",
    "CorpusStatistics",
    "BM25TermWeighter",
    "bm25_idf",
    "bm25_term_weight",
    "bm25_weights",
]
