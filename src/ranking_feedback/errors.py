"""Exception types raised by the relevance-feedback engine."""


class RankingFeedbackError(Exception):
    """Base class for all errors raised by ranking_feedback."""


class InvalidParameters(RankingFeedbackError, ValueError):
    """Expansion parameters are out of range; raised before any index access."""


class InvalidCorpusStatistics(RankingFeedbackError, ValueError):
    """Corpus statistics cannot be used for weighting (e.g. avgdl <= 0)."""


class IndexAccessFailure(RankingFeedbackError, LookupError):
    """The search index could not serve a query or a document vector."""


__all__ = [
    "RankingFeedbackError",
    "InvalidParameters",
    "InvalidCorpusStatistics",
    "IndexAccessFailure",
]
