"""Rocchio relevance feedback (query expansion) over an inverted-index backend."""

from ranking_feedback.analysis import LUCENE_STOPWORDS, StopFilter, tokenize
from ranking_feedback.errors import (
    IndexAccessFailure,
    InvalidCorpusStatistics,
    InvalidParameters,
    RankingFeedbackError,
)
from ranking_feedback.feature_vector import TermWeightVector
from ranking_feedback.index import InMemoryIndex, SearchHit, SearchIndex
from ranking_feedback.query import Query
from ranking_feedback.rocchio import ExpansionParameters, RocchioExpander, expand_query
from ranking_feedback.weighting import BM25TermWeighter, CorpusStatistics, bm25_term_weight

__all__ = [
    "LUCENE_STOPWORDS",
    "StopFilter",
    "tokenize",
    "IndexAccessFailure",
    "InvalidCorpusStatistics",
    "InvalidParameters",
    "RankingFeedbackError",
    "TermWeightVector",
    "InMemoryIndex",
    "SearchHit",
    "SearchIndex",
    "Query",
    "ExpansionParameters",
    "RocchioExpander",
    "expand_query",
    "BM25TermWeighter",
    "CorpusStatistics",
    "bm25_term_weight",
]
