import numpy as np
import pytest

from ranking_feedback.analysis import StopFilter
from ranking_feedback.errors import IndexAccessFailure
from ranking_feedback.feature_vector import TermWeightVector
from ranking_feedback.index import InMemoryIndex, SearchHit, SearchIndex
from ranking_feedback.query import Query


@pytest.fixture
def index():
    documents = [
        "drought drought yield".split(),
        "drought rain".split(),
        "wheat rain".split(),
    ]
    return InMemoryIndex(documents, ids=["d0", "d1", "d2"])


def test_implements_search_index_protocol(index):
    assert isinstance(index, SearchIndex)


class TestStatistics:
    def test_counts(self, index):
        assert index.document_count() == 3
        assert len(index) == 3
        assert index.document_frequency("drought") == 2
        assert index.document_frequency("rain") == 2
        assert index.document_frequency("wheat") == 1
        assert index.document_frequency("missing") == 0
        assert index.average_document_length() == pytest.approx(7 / 3)

    def test_tf_matrix_shape(self, index):
        assert index.tf_matrix.shape == (len(index.vocabulary), 3)
        drought = index.get_term_id("drought")
        assert index.tf_matrix[drought, 0] == 2.0
        assert index.posting_list(drought).tolist() == [0, 1]

    def test_empty_index(self):
        empty = InMemoryIndex([])
        assert empty.document_count() == 0
        assert empty.average_document_length() == 0.0
        assert empty.run_query(Query.from_text("drought"), 5) == []

    def test_analysis_stop_filter(self):
        stop_index = InMemoryIndex(["the drought of the year".split()], stop_filter=StopFilter(["the", "of"]))
        assert stop_index.document_frequency("the") == 0
        assert stop_index.average_document_length() == 2.0


class TestConstruction:
    def test_default_ids(self):
        assert InMemoryIndex([["a"], ["b"]]).ids == ["0", "1"]

    def test_ids_length_mismatch(self):
        with pytest.raises(ValueError):
            InMemoryIndex([["a"], ["b"]], ids=["x"])

    def test_duplicate_ids(self):
        with pytest.raises(ValueError):
            InMemoryIndex([["a"], ["b"]], ids=["x", "x"])

    def test_from_texts(self):
        built = InMemoryIndex.from_texts(["Drought, drought!", "Rain"], ids=["a", "b"])
        assert built.document_frequency("drought") == 1
        assert built.get_document_term_vector("a").to_dict() == {"drought": 2.0}

    def test_from_huggingface_style_rows(self):
        rows = [{"id": "x", "content": "wheat rust"}, {"id": "y", "content": "wheat yield"}]
        built = InMemoryIndex.from_huggingface_dataset(rows)
        assert built.ids == ["x", "y"]
        assert built.document_frequency("wheat") == 2


class TestDocumentVectors:
    def test_raw_term_frequencies(self, index):
        vec = index.get_document_term_vector("d0", None)
        assert isinstance(vec, TermWeightVector)
        assert vec.to_dict() == {"drought": 2.0, "yield": 1.0}
        assert vec.length == 3.0

    def test_stop_filter_applied(self, index):
        vec = index.get_document_term_vector("d0", StopFilter(["yield"]))
        assert vec.to_dict() == {"drought": 2.0}
        assert vec.stop_filter is not None

    def test_unknown_document(self, index):
        with pytest.raises(IndexAccessFailure):
            index.get_document_term_vector("nope", None)


class TestRunQuery:
    def test_ranks_by_bm25(self, index):
        hits = index.run_query(Query.from_text("drought"), 10)
        assert [hit.doc_id for hit in hits] == ["d0", "d1"]
        assert hits[0].score > hits[1].score > 0.0
        assert all(isinstance(hit, SearchHit) for hit in hits)

    def test_limits_to_n(self, index):
        hits = index.run_query(Query.from_text("drought rain"), 2)
        assert len(hits) == 2

    @pytest.mark.parametrize("n", [0, -3])
    def test_non_positive_n(self, index, n):
        assert index.run_query(Query.from_text("drought"), n) == []

    def test_unknown_terms(self, index):
        assert index.run_query(Query.from_text("hurricane"), 10) == []

    def test_query_weights_change_ranking(self, index):
        rain_heavy = Query.from_weights({"drought": 0.1, "rain": 5.0})
        drought_heavy = Query.from_weights({"drought": 5.0, "rain": 0.1})
        assert index.run_query(rain_heavy, 1)[0].doc_id in {"d1", "d2"}
        assert index.run_query(drought_heavy, 1)[0].doc_id == "d0"

    def test_ties_keep_index_order(self):
        tied = InMemoryIndex(["a b".split(), "a b".split(), "c".split()], ids=["y", "x", "z"])
        hits = tied.run_query(Query.from_text("a"), 10)
        assert [hit.doc_id for hit in hits] == ["y", "x"]
        assert np.isclose(hits[0].score, hits[1].score)
