"""Retrieval metrics over ranked document-id lists, for feedback evaluation."""

from collections.abc import Collection, Sequence

import numpy as np


def recall_at_k(relevant: Collection[str], retrieved: Sequence[str], k: int) -> float:
    """
    Computes Recall@K.

    Args:
        relevant: IDs of the relevant documents.
        retrieved: Ranked document IDs.
        k: Top-k cutoff.

    Returns:
        Fraction of the relevant documents found in the top k.
    """
    if not relevant:
        return 0.0
    relevant_set = set(relevant)
    hits = sum(1 for doc_id in retrieved[:k] if doc_id in relevant_set)
    return hits / len(relevant_set)


def ndcg_at_k(relevant: Collection[str], retrieved: Sequence[str], k: int) -> float:
    """
    Computes binary-gain NDCG at rank K.

    Args:
        relevant: IDs of the relevant documents.
        retrieved: Ranked document IDs.
        k: Top-k cutoff.

    Returns:
        NDCG at rank k (0.0 when there is nothing relevant).
    """
    relevant_set = set(relevant)
    if k <= 0 or not relevant_set:
        return 0.0
    # i + 2 because log2(1 + 1) = 1 for the first rank
    discounts = np.log2(np.arange(k) + 2.0)
    gains = np.array([1.0 if doc_id in relevant_set else 0.0 for doc_id in retrieved[:k]])
    dcg = float(np.sum(gains / discounts[: len(gains)]))
    ideal = min(len(relevant_set), k)
    idcg = float(np.sum(1.0 / discounts[:ideal]))
    return dcg / idcg if idcg > 0 else 0.0


def mean(scores: Sequence[float]) -> float:
    return float(np.mean(scores)) if len(scores) else 0.0
