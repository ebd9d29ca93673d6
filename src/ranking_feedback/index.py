"""
Search index capability consumed by the feedback expander, plus an
in-memory reference backend.

The expander depends only on the SearchIndex protocol (run_query,
get_document_term_vector and the three corpus statistics). InMemoryIndex
implements it over a sparse term-document matrix and ranks with
Lucene-style BM25, weighting each query term by its current weight in the
query vector.

Usage:
    from ranking_feedback.index import InMemoryIndex
    from ranking_feedback.query import Query

    index = InMemoryIndex.from_texts(texts, ids)
    hits = index.run_query(Query.from_text("drought yield"), 10)
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np
from scipy.sparse import csr_matrix

from ranking_feedback.analysis import StopFilter, tokenize
from ranking_feedback.errors import IndexAccessFailure
from ranking_feedback.feature_vector import TermWeightVector
from ranking_feedback.ranking_utils import (
    get_candidates_from_posting_lists,
    score_candidates_fused,
    select_top_k,
)

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from ranking_feedback.query import Query


@dataclass(frozen=True)
class SearchHit:
    """One ranked search result."""

    doc_id: str
    score: float


@runtime_checkable
class SearchIndex(Protocol):
    """Read-only index operations needed for relevance feedback."""

    def run_query(self, query: "Query", n: int) -> Sequence[SearchHit]: ...

    def get_document_term_vector(
        self, doc_id: str, stop_filter: StopFilter | None
    ) -> TermWeightVector: ...

    def document_count(self) -> int: ...

    def document_frequency(self, term: str) -> int: ...

    def average_document_length(self) -> float: ...


class InMemoryIndex:
    """
    Inverted index over tokenized documents held in memory.

    Args:
        documents: Tokenized documents. Each document is a list of terms.
        ids: Optional document IDs (defaults to "0", "1", ...).
        stop_filter: Analysis-time stop filter; stop-listed tokens are not indexed.
        k1: BM25 term frequency saturation used by run_query.
        b: BM25 length normalization used by run_query.

    Raises:
        ValueError: If ids and documents differ in length or ids are not unique.
    """

    def __init__(
        self,
        documents: Iterable[Iterable[str]],
        ids: Iterable[str] | None = None,
        stop_filter: StopFilter | None = None,
        k1: float = 0.9,
        b: float = 0.4,
    ):
        self.stop_filter = stop_filter
        self.k1 = k1
        self.b = b
        self.documents: list[list[str]] = [
            [t for t in doc if t and (stop_filter is None or t not in stop_filter)]
            for doc in documents
        ]
        if ids is not None:
            ids_list = [str(doc_id) for doc_id in ids]
            if len(ids_list) != len(self.documents):
                raise ValueError("ids length must match the number of documents")
            if len(set(ids_list)) != len(ids_list):
                raise ValueError("document ids must be unique")
            self.ids = ids_list
        else:
            self.ids = [str(idx) for idx in range(len(self.documents))]
        self.N = len(self.documents)

    @classmethod
    def from_texts(
        cls,
        texts: Iterable[str],
        ids: Iterable[str] | None = None,
        tokenizer: Callable[[str], list[str]] = tokenize,
        stop_filter: StopFilter | None = None,
        **kwargs,
    ) -> "InMemoryIndex":
        return cls([tokenizer(text) for text in texts], ids, stop_filter, **kwargs)

    @classmethod
    def from_huggingface_dataset(
        cls,
        dataset,
        tokenizer: Callable[[str], list[str]] = tokenize,
        stop_filter: StopFilter | None = None,
        **kwargs,
    ) -> "InMemoryIndex":
        ids = [doc["id"] for doc in dataset]
        documents = [tokenizer(doc["content"]) for doc in dataset]
        return cls(documents, ids, stop_filter, **kwargs)

    def __len__(self) -> int:
        return self.N

    # ------------------------------------------------------------------
    # Precomputed structures
    # ------------------------------------------------------------------

    @cached_property
    def map_id_to_idx(self) -> dict[str, int]:
        return {doc_id: idx for idx, doc_id in enumerate(self.ids)}

    @cached_property
    def term_frequency(self) -> list[Counter[str]]:
        """Term frequency for each document."""
        return [Counter(doc) for doc in self.documents]

    @cached_property
    def vocabulary(self) -> dict[str, int]:
        """Vocabulary mapping: assigns each term a unique integer ID."""
        vocab: dict[str, int] = {}
        for doc in self.documents:
            for term in doc:
                if term not in vocab:
                    vocab[term] = len(vocab)
        return vocab

    @cached_property
    def tf_matrix(self) -> csr_matrix:
        """Sparse term-document matrix of raw counts, shape (vocab_size, N)."""
        vocab = self.vocabulary
        rows: list[int] = []
        cols: list[int] = []
        data: list[float] = []
        for doc_idx, frequencies in enumerate(self.term_frequency):
            for term, count in frequencies.items():
                rows.append(vocab[term])
                cols.append(doc_idx)
                data.append(float(count))
        matrix = csr_matrix(
            (np.array(data, dtype=np.float64), (np.array(rows, dtype=np.int64), np.array(cols, dtype=np.int64))),
            shape=(len(vocab), self.N),
        )
        matrix.sort_indices()
        return matrix

    @cached_property
    def df_array(self) -> NDArray[np.int64]:
        return np.diff(self.tf_matrix.indptr).astype(np.int64)

    @cached_property
    def document_length(self) -> NDArray[np.float64]:
        return np.array([len(doc) for doc in self.documents], dtype=np.float64)

    @cached_property
    def avgdl(self) -> float:
        return float(np.mean(self.document_length)) if self.N else 0.0

    @cached_property
    def idf_array(self) -> NDArray[np.float64]:
        """Lucene IDF: log(1 + (N - df + 0.5) / (df + 0.5))."""
        df = self.df_array.astype(np.float64)
        return np.log(1.0 + (self.N - df + 0.5) / (df + 0.5))

    @cached_property
    def norm_array(self) -> NDArray[np.float64]:
        avgdl = self.avgdl or 1e-9
        return 1.0 - self.b + self.b * (self.document_length / avgdl)

    def get_term_id(self, term: str) -> int | None:
        return self.vocabulary.get(term)

    def posting_list(self, term_id: int) -> NDArray[np.int64]:
        indptr = self.tf_matrix.indptr
        return self.tf_matrix.indices[indptr[term_id] : indptr[term_id + 1]].astype(np.int64)

    # ------------------------------------------------------------------
    # SearchIndex protocol
    # ------------------------------------------------------------------

    def document_count(self) -> int:
        return self.N

    def document_frequency(self, term: str) -> int:
        term_id = self.get_term_id(term)
        return 0 if term_id is None else int(self.df_array[term_id])

    def average_document_length(self) -> float:
        return self.avgdl

    def get_document_term_vector(
        self, doc_id: str, stop_filter: StopFilter | None = None
    ) -> TermWeightVector:
        """
        Raw term-frequency vector of one document.

        The vector's length is the document's indexed token count.

        Raises:
            IndexAccessFailure: If doc_id is not in the index.
        """
        idx = self.map_id_to_idx.get(doc_id)
        if idx is None:
            raise IndexAccessFailure(f"unknown document id: {doc_id!r}")
        vec = TermWeightVector(stop_filter, float(self.document_length[idx]))
        for term, count in self.term_frequency[idx].items():
            vec.add_term(term, float(count))
        return vec

    def run_query(self, query: "Query", n: int) -> list[SearchHit]:
        """
        Rank documents by weighted BM25 and return at most n positive-scoring hits.

        Each query term contributes weight * idf * tf / (tf + k1 * norm).
        Equal scores are ordered by index position.
        """
        if n < 1 or self.N == 0:
            return []

        term_ids: list[int] = []
        weights: list[float] = []
        for term, weight in query.vector.items():
            term_id = self.get_term_id(term)
            if term_id is not None and weight != 0.0:
                term_ids.append(term_id)
                weights.append(weight)
        if not term_ids:
            return []

        candidates = get_candidates_from_posting_lists(term_ids, self.posting_list)
        candidate_scores = score_candidates_fused(
            term_ids,
            np.array(weights, dtype=np.float64),
            candidates,
            self.tf_matrix,
            self.idf_array,
            self.norm_array,
            k1=self.k1,
        )
        order, ranked_scores = select_top_k(candidate_scores, None)
        hits: list[SearchHit] = []
        for pos, score in zip(order.tolist(), ranked_scores.tolist()):
            if score <= 0.0:
                break
            hits.append(SearchHit(self.ids[int(candidates[pos])], float(score)))
            if len(hits) == n:
                break
        return hits


__all__ = ["SearchHit", "SearchIndex", "InMemoryIndex"]
