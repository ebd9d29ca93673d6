import pytest

from ranking_feedback.metrics import mean, ndcg_at_k, recall_at_k


def test_ndcg_perfect_ranking():
    assert ndcg_at_k(["a", "b"], ["a", "b", "c"], k=10) == pytest.approx(1.0)


def test_ndcg_penalizes_late_hits():
    early = ndcg_at_k(["a"], ["a", "b", "c"], k=3)
    late = ndcg_at_k(["a"], ["b", "c", "a"], k=3)
    assert early > late > 0.0


@pytest.mark.parametrize("relevant,retrieved,k", [([], ["a"], 10), (["a"], ["b"], 10), (["a"], ["a"], 0)])
def test_ndcg_zero_cases(relevant, retrieved, k):
    assert ndcg_at_k(relevant, retrieved, k) == 0.0


def test_recall_at_k():
    assert recall_at_k(["a", "b", "c", "d"], ["a", "x", "c", "b"], k=3) == pytest.approx(0.5)
    assert recall_at_k([], ["a"], k=3) == 0.0


def test_mean():
    assert mean([1.0, 2.0]) == pytest.approx(1.5)
    assert mean([]) == 0.0
