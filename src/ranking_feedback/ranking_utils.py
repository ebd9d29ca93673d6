"""
Shared utilities for sparse BM25 ranking and parallel execution.

This module provides reusable components for the in-memory index and the
feedback expander:
1. Fused scoring - weighted query terms scored against candidates in one pass
2. Deterministic top-k - stable ordering so equal scores keep index order
3. Candidate retrieval from posting lists
4. Parallel map - ThreadPoolExecutor for independent work items

Usage:
    from ranking_feedback.ranking_utils import (
        score_candidates_fused,
        select_top_k,
        parallel_map,
    )
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, TypeVar

import numpy as np
from scipy.sparse import csr_matrix

if TYPE_CHECKING:
    from numpy.typing import NDArray

T = TypeVar("T")
R = TypeVar("R")


# =============================================================================
# Configuration
# =============================================================================

# Default number of workers for parallel expansion
DEFAULT_NUM_WORKERS = 8

# Minimum work items before enabling parallelism
MIN_QUERIES_FOR_PARALLEL = 4


# =============================================================================
# Fused Scoring
# =============================================================================


def score_candidates_fused(
    query_term_ids: list[int],
    query_weights: NDArray[np.float64],
    candidate_docs: NDArray[np.int64],
    tf_matrix: csr_matrix,
    idf_array: NDArray[np.float64],
    norm_array: NDArray[np.float64],
    k1: float = 0.9,
    epsilon: float = 1e-9,
) -> NDArray[np.float64]:
    """
    Score candidates for a weighted query using one sparse slice.

    Args:
        query_term_ids: Term IDs in the query
        query_weights: Weight of each query term (aligned with query_term_ids)
        candidate_docs: Array of document indices to score
        tf_matrix: Sparse term-document matrix (vocab_size, N_docs)
        idf_array: IDF values for each term (vocab_size,)
        norm_array: Length normalization for each doc (N_docs,)
        k1: TF saturation parameter (default 0.9 for Lucene)
        epsilon: Small value for numerical stability

    Returns:
        Scores for candidate documents (len(candidate_docs),)
    """
    if len(candidate_docs) == 0 or len(query_term_ids) == 0:
        return np.array([], dtype=np.float64)

    # (num_terms, num_candidates)
    tf_rows = tf_matrix[query_term_ids, :][:, candidate_docs].toarray()

    term_weights = (idf_array[query_term_ids] * query_weights)[:, np.newaxis]
    norms = norm_array[candidate_docs]

    # Lucene saturation: tf / (tf + k1 * norm)
    saturated = tf_rows / (tf_rows + k1 * norms + epsilon)

    return np.sum(term_weights * saturated, axis=0)


# =============================================================================
# Deterministic Top-K Selection
# =============================================================================


def select_top_k(
    scores: NDArray[np.float64],
    top_k: int | None,
) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
    """
    Select the top-k positions of a score array.

    Uses a stable sort on negated scores, so equal scores keep their original
    (index) order and results are reproducible across runs.

    Args:
        scores: Score array (N,)
        top_k: Number of top results (None for all)

    Returns:
        (sorted_indices, sorted_scores) in descending score order
    """
    order = np.argsort(-scores, kind="stable").astype(np.int64)
    if top_k is not None:
        order = order[: max(top_k, 0)]
    return order, scores[order]


# =============================================================================
# Candidate Retrieval from Inverted Index
# =============================================================================


def get_candidates_from_posting_lists(
    query_term_ids: list[int],
    posting_lists: Callable[[int], NDArray[np.int64]],
) -> NDArray[np.int64]:
    """
    Union of the posting lists of all query terms, sorted by document index.

    Args:
        query_term_ids: Term IDs in query
        posting_lists: Lookup returning the document indices for a term id
    """
    if not query_term_ids:
        return np.array([], dtype=np.int64)
    postings = [posting_lists(term_id) for term_id in query_term_ids]
    return np.unique(np.concatenate(postings)).astype(np.int64)


# =============================================================================
# Parallel Map
# =============================================================================


def parallel_map(
    fn: Callable[[T], R],
    items: Sequence[T],
    num_workers: int = DEFAULT_NUM_WORKERS,
    min_items_for_parallel: int = MIN_QUERIES_FOR_PARALLEL,
) -> list[R]:
    """
    Apply fn to every item, preserving input order in the result.

    Small batches (or num_workers <= 1) run sequentially. Exceptions raised by
    fn propagate to the caller.
    """
    if not items:
        return []

    if num_workers <= 1 or len(items) < min_items_for_parallel:
        return [fn(item) for item in items]

    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        return list(executor.map(fn, items))


__all__ = [
    "score_candidates_fused",
    "select_top_k",
    "get_candidates_from_posting_lists",
    "parallel_map",
    "DEFAULT_NUM_WORKERS",
    "MIN_QUERIES_FOR_PARALLEL",
]
