import math

import numpy as np
import pytest

from ranking_feedback.analysis import StopFilter
from ranking_feedback.errors import InvalidCorpusStatistics
from ranking_feedback.feature_vector import TermWeightVector
from ranking_feedback.weighting import (
    BM25TermWeighter,
    CorpusStatistics,
    bm25_term_weight,
    bm25_weights,
)


def reference_weight(tf, df, n, length, avgdl, k1=1.2, b=0.75):
    idf = math.log((n + 1) / (df + 0.5))
    return (idf * k1 * tf) / (tf + k1 * (1 - b + b * length / avgdl))


class StatsOnly:
    """Minimal index exposing only corpus statistics."""

    def __init__(self, doc_count, avgdl, df):
        self._doc_count = doc_count
        self._avgdl = avgdl
        self._df = df

    def document_count(self):
        return self._doc_count

    def average_document_length(self):
        return self._avgdl

    def document_frequency(self, term):
        return self._df.get(term, 0)


@pytest.mark.parametrize(
    "df,n,length,avgdl,k1,b",
    [
        (2, 10, 120, 100.0, 1.2, 0.75),
        (0, 1, 1, 1.0, 0.9, 0.4),
        (500, 1000, 10, 250.0, 2.0, 1.0),
        (1, 5, 0, 3.0, 1.2, 0.0),
    ],
)
def test_zero_tf_gives_zero_weight(df, n, length, avgdl, k1, b):
    assert bm25_term_weight(0, df, n, length, avgdl, k1, b) == 0.0


@pytest.mark.parametrize(
    "tf,df,n,length,avgdl",
    [
        (3, 2, 10, 120, 100.0),
        (5, 4, 10, 120, 100.0),
        (1, 2, 10, 1, 100.0),
        (7, 1, 100000, 3000, 250.5),
    ],
)
def test_matches_formula(tf, df, n, length, avgdl):
    assert bm25_term_weight(tf, df, n, length, avgdl) == pytest.approx(
        reference_weight(tf, df, n, length, avgdl), rel=1e-12
    )


def test_idf_smoothing_stays_positive_when_every_doc_matches():
    assert bm25_term_weight(1, 10, 10, 100, 100.0) > 0.0


@pytest.mark.parametrize("avgdl", [0.0, -1.0, math.nan, math.inf])
def test_rejects_bad_average_length(avgdl):
    with pytest.raises(InvalidCorpusStatistics):
        bm25_term_weight(1, 1, 10, 10, avgdl)


def test_rejects_negative_document_count():
    with pytest.raises(InvalidCorpusStatistics):
        bm25_term_weight(1, 1, -1, 10, 10.0)


def test_zero_document_length_is_finite():
    weight = bm25_term_weight(2, 1, 10, 0, 50.0, k1=1.2, b=1.0)
    assert math.isfinite(weight)
    assert weight > 0.0


def test_vectorized_matches_scalar():
    tf = np.array([0.0, 1.0, 3.0, 8.0])
    df = np.array([1.0, 2.0, 4.0, 9.0])
    got = bm25_weights(tf, df, 10, 42.0, 30.0, 1.2, 0.75)
    expected = [bm25_term_weight(t, d, 10, 42.0, 30.0, 1.2, 0.75) for t, d in zip(tf, df)]
    assert got.tolist() == pytest.approx(expected)
    assert got[0] == 0.0


class TestCorpusStatistics:
    def test_from_index(self):
        stats = CorpusStatistics.from_index(StatsOnly(10, 100.0, {}))
        assert stats == CorpusStatistics(10, 100.0)

    def test_empty_corpus_rejected(self):
        with pytest.raises(InvalidCorpusStatistics):
            CorpusStatistics.from_index(StatsOnly(0, 0.0, {}))


class TestBM25TermWeighter:
    def test_weigh_keeps_term_set_and_length(self):
        index = StatsOnly(10, 100.0, {"drought": 2, "yield": 4})
        doc = TermWeightVector.from_weights({"drought": 3, "yield": 5}, length=120)
        weighted = BM25TermWeighter(k1=1.2, b=0.75).weigh(doc, index)

        assert set(weighted.features()) == {"drought", "yield"}
        assert weighted.length == 120.0
        assert weighted.weight_of("drought") == pytest.approx(reference_weight(3, 2, 10, 120, 100.0))
        assert weighted.weight_of("yield") == pytest.approx(reference_weight(5, 4, 10, 120, 100.0))

    def test_weigh_applies_stop_filter(self):
        index = StatsOnly(10, 100.0, {"drought": 2, "the": 10})
        doc = TermWeightVector.from_weights({"drought": 3, "the": 9}, length=12)
        weighted = BM25TermWeighter().weigh(doc, index, StopFilter(["the"]))
        assert set(weighted.features()) == {"drought"}

    def test_weigh_empty_vector_still_checks_statistics(self):
        with pytest.raises(InvalidCorpusStatistics):
            BM25TermWeighter().weigh(TermWeightVector(), StatsOnly(0, 0.0, {}))

    def test_weigh_does_not_modify_input(self):
        index = StatsOnly(10, 100.0, {"drought": 2})
        doc = TermWeightVector.from_weights({"drought": 3}, length=120)
        BM25TermWeighter().weigh(doc, index)
        assert doc.to_dict() == {"drought": 3.0}

    def test_weigh_with_explicit_statistics(self):
        doc = TermWeightVector.from_weights({"drought": 3, "yield": 5}, length=120)
        df = {"drought": 2, "yield": 4}
        weighted = BM25TermWeighter().weigh_with(doc, CorpusStatistics(10, 100.0), df.__getitem__)

        assert weighted.weight_of("drought") == pytest.approx(reference_weight(3, 2, 10, 120, 100.0))
        assert weighted.weight_of("yield") == pytest.approx(reference_weight(5, 4, 10, 120, 100.0))

    def test_weigh_matches_weigh_with(self):
        index = StatsOnly(10, 100.0, {"drought": 2, "yield": 4})
        doc = TermWeightVector.from_weights({"drought": 3, "yield": 5}, length=120)
        weighter = BM25TermWeighter(k1=0.9, b=0.4)
        stats = CorpusStatistics.from_index(index)

        assert weighter.weigh(doc, index).to_dict() == weighter.weigh_with(
            doc, stats, index.document_frequency
        ).to_dict()

    def test_short_query_weights_stay_positive(self):
        index = StatsOnly(10, 100.0, {"drought": 2, "wheat": 1})
        query = TermWeightVector.from_weights({"drought": 0.5, "wheat": 1.0})
        weighted = BM25TermWeighter(k1=1.2, b=1.0).weigh(query, index)

        for term in ("drought", "wheat"):
            assert 0.0 < weighted.weight_of(term) < 10.0
