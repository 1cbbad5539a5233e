"""
Review Stats Aggregator
=======================

Point-in-time reductions over a set of reviews. Nothing here is cached:
callers pass the current review set and get a fresh snapshot.

Usage:
    aggregator = StatsAggregator()
    stats = aggregator.aggregate(repository.list_all())
    summary = aggregator.summarize_event("evt-1", repository.list_all("evt-1"))
"""

from typing import Iterable, List

from .review_models import (
    EventReviewSummary,
    Review,
    ReviewStats,
    ReviewStatus,
    Sentiment,
)


def _mean(values: List[int]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


class StatsAggregator:
    """Pure reductions. No I/O, no state."""

    def aggregate(self, reviews: Iterable[Review]) -> ReviewStats:
        """
        Admin overview.

        Flagged reviews count towards `pending` since both await a moderator
        decision. The average covers every review regardless of status.
        """
        reviews = list(reviews)
        total = len(reviews)
        flagged = sum(1 for r in reviews if r.status is ReviewStatus.FLAGGED)
        pending = sum(1 for r in reviews if r.status is ReviewStatus.PENDING) + flagged

        return ReviewStats(
            total=total,
            pending=pending,
            approved=sum(1 for r in reviews if r.status is ReviewStatus.APPROVED),
            rejected=sum(1 for r in reviews if r.status is ReviewStatus.REJECTED),
            average_rating=_mean([r.rating for r in reviews]),
            flagged=flagged,
        )

    def summarize_event(
        self,
        event_id: str,
        reviews: Iterable[Review],
    ) -> EventReviewSummary:
        """Public summary. Only approved reviews of the event are counted."""
        approved = [
            r for r in reviews
            if r.event_id == event_id and r.status is ReviewStatus.APPROVED
        ]

        rating_counts = {star: 0 for star in (5, 4, 3, 2, 1)}
        for r in approved:
            rating_counts[r.rating] += 1

        sentiment_counts = {
            s.value: sum(1 for r in approved if r.sentiment is s)
            for s in (Sentiment.POSITIVE, Sentiment.NEGATIVE, Sentiment.NEUTRAL)
        }

        def sub_average(attr: str) -> float:
            values: List[int] = [
                getattr(r, attr) for r in approved if getattr(r, attr) is not None
            ]
            return _mean(values)

        return EventReviewSummary(
            event_id=event_id,
            review_count=len(approved),
            average_rating=_mean([r.rating for r in approved]),
            rating_counts=rating_counts,
            sentiment_counts=sentiment_counts,
            average_atmosphere=sub_average("atmosphere_rating"),
            average_organization=sub_average("organization_rating"),
            average_value=sub_average("value_rating"),
        )
