"""
Tests for StatsAggregator: admin overview and public event summary.

Usage:
    pytest tests/test_review_stats.py -v
"""

from datetime import datetime, timezone
from typing import Optional

import pytest

from src.reviews.review_models import Review, ReviewStatus, Sentiment
from src.reviews.review_stats import StatsAggregator


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_review(
    review_id: str,
    status: ReviewStatus,
    rating: int,
    event_id: str = "evt-1",
    sentiment: Sentiment = Sentiment.UNSET,
    atmosphere: Optional[int] = None,
) -> Review:
    return Review(
        id=review_id,
        author_id=f"user-{review_id}",
        event_id=event_id,
        rating=rating,
        title="t",
        content="c",
        created_at=NOW,
        status=status,
        suspicion_score=0.0,
        sentiment=sentiment,
        sentiment_confidence=None if sentiment is Sentiment.UNSET else 0.9,
        ai_summary=None if sentiment is Sentiment.UNSET else "summary",
        atmosphere_rating=atmosphere,
    )


MIXED = [
    make_review("1", ReviewStatus.PENDING, 5),
    make_review("2", ReviewStatus.FLAGGED, 1),
    make_review("3", ReviewStatus.APPROVED, 4, sentiment=Sentiment.POSITIVE, atmosphere=5),
    make_review("4", ReviewStatus.APPROVED, 2, sentiment=Sentiment.NEGATIVE, atmosphere=2),
    make_review("5", ReviewStatus.REJECTED, 3),
    make_review("6", ReviewStatus.APPROVED, 5, event_id="evt-2", sentiment=Sentiment.POSITIVE),
]


class TestAggregate:

    def setup_method(self):
        self.aggregator = StatsAggregator()

    def test_counts(self):
        stats = self.aggregator.aggregate(MIXED)
        assert stats.total == 6
        assert stats.pending == 2          # pending + flagged
        assert stats.flagged == 1
        assert stats.approved == 3
        assert stats.rejected == 1

    def test_average_covers_all_statuses(self):
        stats = self.aggregator.aggregate(MIXED)
        assert stats.average_rating == pytest.approx(20 / 6)

    def test_empty_set(self):
        stats = self.aggregator.aggregate([])
        assert stats.total == 0
        assert stats.average_rating == 0.0

    def test_counts_add_up(self):
        stats = self.aggregator.aggregate(MIXED)
        assert stats.pending + stats.approved + stats.rejected == stats.total

    def test_to_dict(self):
        assert self.aggregator.aggregate([]).to_dict() == {
            "total": 0, "pending": 0, "approved": 0, "rejected": 0,
            "average_rating": 0.0, "flagged": 0,
        }


class TestEventSummary:

    def setup_method(self):
        self.aggregator = StatsAggregator()

    def test_only_approved_reviews_of_event(self):
        summary = self.aggregator.summarize_event("evt-1", MIXED)
        assert summary.review_count == 2
        assert summary.average_rating == pytest.approx(3.0)

    def test_histogram_and_sentiment(self):
        summary = self.aggregator.summarize_event("evt-1", MIXED)
        assert summary.rating_counts == {5: 0, 4: 1, 3: 0, 2: 1, 1: 0}
        assert list(summary.rating_counts) == [5, 4, 3, 2, 1]
        assert summary.sentiment_counts == {"positive": 1, "negative": 1, "neutral": 0}

    def test_sub_rating_averages(self):
        summary = self.aggregator.summarize_event("evt-1", MIXED)
        assert summary.average_atmosphere == pytest.approx(3.5)
        assert summary.average_organization == 0.0

    def test_unknown_event(self):
        summary = self.aggregator.summarize_event("nope", MIXED)
        assert summary.review_count == 0
        assert summary.average_rating == 0.0
