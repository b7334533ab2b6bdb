"""Content review of external pages: terminology heuristics, model analysis, aggregation."""

from folderlens.services.review.aggregator import AnalysisAggregator
from folderlens.services.review.review_service import ContentReviewService
from folderlens.services.review.terminology import (
    DEFAULT_TERM_RULES,
    TermMatch,
    TermRule,
    detect_outdated_terms,
    load_review_terms,
)

__all__ = [
    "AnalysisAggregator",
    "ContentReviewService",
    "DEFAULT_TERM_RULES",
    "TermMatch",
    "TermRule",
    "detect_outdated_terms",
    "load_review_terms",
]
