"""
Review Trust Core Models
========================

Review entity, persistence and the admin stats reduction.

Modules:
    review_models      : Review, DetectionResult, ReviewStats and friends
    review_stats       : StatsAggregator (pure reductions)
    review_repository  : persistence port, in-memory and PostgreSQL stores
    history_provider   : author history / event rating distribution providers
"""

from .review_models import (
    AuthorHistory,
    DetectionResult,
    EventKind,
    EventRef,
    FlagCode,
    RatingDistribution,
    Review,
    ReviewStats,
    ReviewStatus,
    ReviewSubmission,
    Sentiment,
    SentimentResult,
    ValidationError,
)
from .review_stats import StatsAggregator
from .review_repository import (
    InMemoryReviewRepository,
    PostgresReviewRepository,
    ReviewNotFoundError,
    ReviewPage,
    ReviewQuery,
    ReviewRepository,
)
