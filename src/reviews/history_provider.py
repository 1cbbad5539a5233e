"""
Author History & Rating Distribution Providers
==============================================

Collaborator ports feeding the SuspicionScorer, and adapters that derive
both snapshots from the review store.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from .review_models import AuthorHistory, RatingDistribution, ReviewStatus, utcnow
from .review_repository import ReviewRepository

logger = logging.getLogger(__name__)


AccountLookup = Callable[[str], Optional[datetime]]


class ReviewHistoryProvider(ABC):
    """Supplies the author's prior activity. May raise on infrastructure failure."""

    @abstractmethod
    def get_history(self, author_id: str, event_id: str) -> AuthorHistory:
        pass


class RatingDistributionProvider(ABC):
    """Supplies the event's existing rating distribution."""

    @abstractmethod
    def get_rating_distribution(self, event_id: str) -> RatingDistribution:
        pass


class RepositoryHistoryProvider(ReviewHistoryProvider):
    """
    Author history from stored reviews.

    Account age comes from the identity collaborator through `account_lookup`;
    an unknown account yields account_age_seconds=None.
    """

    def __init__(
        self,
        repository: ReviewRepository,
        account_lookup: Optional[AccountLookup] = None,
        max_prior_reviews: int = 50,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.account_lookup = account_lookup
        self.max_prior_reviews = max_prior_reviews
        self._clock = clock

    def get_history(self, author_id: str, event_id: str) -> AuthorHistory:
        prior = self.repository.reviews_by_author(author_id, limit=self.max_prior_reviews)

        account_age: Optional[float] = None
        if self.account_lookup is not None:
            created_at = self.account_lookup(author_id)
            if created_at is not None:
                account_age = max(0.0, (self._clock() - created_at).total_seconds())

        return AuthorHistory(
            prior_review_texts=tuple(r.content for r in prior),
            account_age_seconds=account_age,
            recent_submission_timestamps=tuple(r.created_at for r in prior),
        )


class RepositoryRatingDistributionProvider(RatingDistributionProvider):
    """Distribution over the event's reviews, excluding rejected ones."""

    def __init__(self, repository: ReviewRepository):
        self.repository = repository

    def get_rating_distribution(self, event_id: str) -> RatingDistribution:
        ratings = [
            r.rating for r in self.repository.list_all(event_id)
            if r.status is not ReviewStatus.REJECTED
        ]
        return RatingDistribution.from_ratings(ratings)
