"""
Rocchio pseudo-relevance feedback.

Expansion is a single linear pass per query:

    1. retrieve the top fb_docs hits for the query
    2. BM25-weight each hit's term vector and sum them into a feedback vector
    3. scale the feedback vector by beta / fb_docs
    4. BM25-weight the query vector itself and scale it by alpha
    5. add the query vector into the feedback vector
    6. keep the top fb_terms terms
    7. replace the query's vector with the result

Default alpha/beta follow the Rocchio (1971) settings used in
Manning et al., "Introduction to Information Retrieval", section 9.1.6.
BM25 defaults k1=1.2, b=0.75.

Usage:
    from ranking_feedback import ExpansionParameters, RocchioExpander

    expander = RocchioExpander(ExpansionParameters(fb_docs=10, fb_terms=20))
    expander.expand_query(index, query)
    hits = index.run_query(query, 100)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, fields, replace
from typing import TYPE_CHECKING, Any

from ranking_feedback.errors import InvalidParameters
from ranking_feedback.feature_vector import TermWeightVector
from ranking_feedback.ranking_utils import MIN_QUERIES_FOR_PARALLEL, parallel_map
from ranking_feedback.weighting import BM25TermWeighter, CorpusStatistics

if TYPE_CHECKING:
    from ranking_feedback.analysis import StopFilter
    from ranking_feedback.index import SearchHit, SearchIndex
    from ranking_feedback.query import Query

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpansionParameters:
    """
    Rocchio expansion parameters.

    Attributes:
        alpha: Weight on the original query.
        beta: Weight on the feedback terms.
        k1: BM25 term frequency saturation.
        b: BM25 length normalization, in [0, 1].
        fb_docs: Number of feedback documents to request.
        fb_terms: Number of terms kept in the expanded query.

    Raises:
        InvalidParameters: On negative or non-finite weights, b outside [0, 1],
            or fb_docs / fb_terms below 1.
    """

    alpha: float = 1.0
    beta: float = 0.75
    k1: float = 1.2
    b: float = 0.75
    fb_docs: int = 10
    fb_terms: int = 10

    def __post_init__(self) -> None:
        for name in ("alpha", "beta", "k1", "b"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidParameters(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise InvalidParameters(f"{name} must be finite, got {value}")
            if value < 0:
                raise InvalidParameters(f"{name} must be >= 0, got {value}")
        if self.b > 1:
            raise InvalidParameters(f"b must be in [0, 1], got {self.b}")
        for name in ("fb_docs", "fb_terms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidParameters(f"{name} must be an integer, got {value!r}")
            if value < 1:
                raise InvalidParameters(f"{name} must be >= 1, got {value}")

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "ExpansionParameters":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise InvalidParameters(f"unknown expansion parameters: {', '.join(unknown)}")
        return cls(**values)

    def replace(self, **changes: Any) -> "ExpansionParameters":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RocchioExpander:
    """
    Expands queries with Rocchio relevance feedback over a SearchIndex.

    The expander holds no per-query state, so one instance can serve
    concurrent expansions as long as the index supports concurrent reads.

    Args:
        parameters: Expansion parameters (validated on construction).
        stop_filter: Stop filter applied to every vector built during expansion.
        num_workers: Threads used to fetch feedback document vectors and to
            expand batches of queries. 1 means sequential.
    """

    def __init__(
        self,
        parameters: ExpansionParameters | None = None,
        stop_filter: "StopFilter | None" = None,
        num_workers: int = 1,
    ):
        self.parameters = parameters if parameters is not None else ExpansionParameters()
        self.stop_filter = stop_filter
        self.num_workers = max(1, num_workers)
        self.weighter = BM25TermWeighter(self.parameters.k1, self.parameters.b)

    def expand(self, index: "SearchIndex", query: "Query") -> TermWeightVector:
        """Compute the expanded vector for query without modifying it."""
        params = self.parameters

        hits = index.run_query(query, params.fb_docs)
        logger.debug("query %r: %d feedback hits (requested %d)", query.qid, len(hits), params.fb_docs)

        doc_vectors = self._fetch_document_vectors(index, hits)

        stats = CorpusStatistics.from_index(index)
        feedback = TermWeightVector(self.stop_filter)
        # Accumulate in rank order so sums are reproducible for any worker count.
        for doc_vector in doc_vectors:
            feedback.merge(self._weigh(doc_vector, stats, index))

        # Divide by the requested count, even when fewer hits came back.
        expanded = feedback.scaled(params.beta / params.fb_docs)

        # The query is weighted as a pseudo-document against the same statistics.
        expanded.merge(self._weigh(query.vector, stats, index).scaled(params.alpha))

        expanded.clip(params.fb_terms)
        logger.debug(
            "query %r: %d feedback terms, %d kept after clipping",
            query.qid,
            len(feedback),
            len(expanded),
        )
        return expanded

    def expand_query(self, index: "SearchIndex", query: "Query") -> None:
        """Expand query and replace its vector. On error the query is left untouched."""
        query.vector = self.expand(index, query)

    def expand_queries(self, index: "SearchIndex", queries: Sequence["Query"]) -> None:
        """Expand independent queries, in parallel when num_workers > 1."""
        expanded = parallel_map(
            lambda q: self.expand(index, q),
            queries,
            num_workers=self.num_workers,
            min_items_for_parallel=MIN_QUERIES_FOR_PARALLEL,
        )
        for query, vector in zip(queries, expanded):
            query.vector = vector

    def rerank(self, index: "SearchIndex", query: "Query", n: int) -> Sequence["SearchHit"]:
        """Expand query, then run the expanded query against the index."""
        self.expand_query(index, query)
        return index.run_query(query, n)

    def _weigh(
        self, vector: TermWeightVector, stats: CorpusStatistics, index: "SearchIndex"
    ) -> TermWeightVector:
        return self.weighter.weigh_with(vector, stats, index.document_frequency, self.stop_filter)

    def _fetch_document_vectors(
        self, index: "SearchIndex", hits: Sequence["SearchHit"]
    ) -> list[TermWeightVector]:
        return parallel_map(
            lambda hit: index.get_document_term_vector(hit.doc_id, self.stop_filter),
            list(hits),
            num_workers=self.num_workers,
            min_items_for_parallel=2,
        )

    def __repr__(self) -> str:
        return f"RocchioExpander({self.parameters!r}, num_workers={self.num_workers})"


def expand_query(
    index: "SearchIndex",
    query: "Query",
    parameters: ExpansionParameters | None = None,
    stop_filter: "StopFilter | None" = None,
) -> None:
    """Expand query in place with Rocchio feedback from index."""
    RocchioExpander(parameters, stop_filter).expand_query(index, query)


__all__ = ["ExpansionParameters", "RocchioExpander", "expand_query"]
