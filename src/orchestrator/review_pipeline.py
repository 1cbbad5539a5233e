"""
Review Pipeline Coordinator
===========================

Composes scoring, moderation, persistence, sentiment enrichment and
admin alerts for review submissions.

Submission flow:
    1. Validate the submission
    2. Fetch author history (failure -> degraded scoring)
    3. Fetch the event rating distribution (failure -> no outlier signal)
    4. Score, then apply the moderation entry rule
    5. Persist the review
    6. [detached] Sentiment analysis
    7. [detached] Admin alert if the review was flagged

Steps 1-5 complete before submit_review returns; 6 and 7 never block it
and never surface their failures to the submitter.

Usage:
    pipeline = ReviewPipeline(repository, history, distribution, ...)
    review = await pipeline.submit_review(submission)
    ...
    await pipeline.drain()
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional, Set, Union

from ..ai.sentiment_analyzer import SentimentAnalyzer
from ..moderation.state_machine import InvalidTransition, ModerationStateMachine
from ..notifications.dispatcher import NotificationDispatcher
from ..reviews.history_provider import RatingDistributionProvider, ReviewHistoryProvider
from ..reviews.review_models import (
    AuthorHistory,
    DetectionResult,
    EventReviewSummary,
    RatingDistribution,
    Review,
    ReviewStats,
    ReviewStatus,
    ReviewSubmission,
    utcnow,
)
from ..reviews.review_repository import (
    ReviewNotFoundError,
    ReviewPage,
    ReviewQuery,
    ReviewRepository,
)
from ..reviews.review_stats import StatsAggregator
from ..scoring.suspicion_scorer import ScoringDegraded, SuspicionScorer

logger = logging.getLogger(__name__)


class ReviewPipeline:
    """Coordinator for the review write path and moderation reads."""

    def __init__(
        self,
        repository: ReviewRepository,
        history_provider: ReviewHistoryProvider,
        distribution_provider: Optional[RatingDistributionProvider] = None,
        scorer: Optional[SuspicionScorer] = None,
        state_machine: Optional[ModerationStateMachine] = None,
        sentiment_analyzer: Optional[SentimentAnalyzer] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        stats_aggregator: Optional[StatsAggregator] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.history_provider = history_provider
        self.distribution_provider = distribution_provider
        self.scorer = scorer or SuspicionScorer()
        self.state_machine = state_machine or ModerationStateMachine()
        self.sentiment_analyzer = sentiment_analyzer
        self.dispatcher = dispatcher
        self.stats_aggregator = stats_aggregator or StatsAggregator()
        self._clock = clock
        self._background: Set[asyncio.Task] = set()

    # =========================================================================
    # WRITE PATH
    # =========================================================================

    async def submit_review(self, submission: ReviewSubmission) -> Review:
        """
        Score, classify and persist a new review.

        Raises:
            ValidationError: malformed submission. Nothing is persisted.
        """
        submission = submission.validated()

        history = await asyncio.to_thread(self._load_history, submission)
        distribution = await asyncio.to_thread(self._load_distribution, submission.event_id)

        detection = self.scorer.score(submission, history, distribution, now=self._clock())
        status = self.state_machine.initial_status(detection)
        review = Review.create(submission, detection, status)

        await asyncio.to_thread(self.repository.add, review)

        logger.info(
            "Review %s created as %s (score=%.4f)", review.id, status.value, detection.suspicion_score,
            extra={
                "review_id": review.id,
                "event_id": review.event_id,
                "author_id": review.author_id,
                "status": status.value,
                "score": detection.suspicion_score,
                "flags": list(detection.flags),
            },
        )

        if self.sentiment_analyzer is not None:
            self.sentiment_analyzer.trigger(review)

        if status is ReviewStatus.FLAGGED and self.dispatcher is not None:
            self._spawn(self._notify(review, detection))

        return review

    def _load_history(self, submission: ReviewSubmission) -> Optional[AuthorHistory]:
        try:
            return self.history_provider.get_history(submission.author_id, submission.event_id)
        except Exception as e:
            degraded = ScoringDegraded(submission.author_id, e)
            logger.warning(
                "%s. Scoring without history signals", degraded,
                extra={"author_id": submission.author_id},
            )
            return None

    def _load_distribution(self, event_id: str) -> Optional[RatingDistribution]:
        if self.distribution_provider is None:
            return None
        try:
            return self.distribution_provider.get_rating_distribution(event_id)
        except Exception as e:
            logger.warning(
                "Rating distribution unavailable for event %s: %s", event_id, e,
                extra={"event_id": event_id},
            )
            return None

    async def _notify(self, review: Review, detection: DetectionResult) -> bool:
        try:
            return await asyncio.to_thread(self.dispatcher.notify_flagged, review, detection)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                "Unexpected error notifying admins about review %s", review.id,
                extra={"review_id": review.id, "score": detection.suspicion_score},
            )
            return False

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for detached sentiment and notification work."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        if self.sentiment_analyzer is not None:
            await self.sentiment_analyzer.drain()

    # =========================================================================
    # MODERATION
    # =========================================================================

    def transition(
        self,
        review_id: str,
        target: Union[ReviewStatus, str],
        moderator_id: Optional[str],
    ) -> Review:
        """
        Apply a moderator decision with a guarded write.

        Raises:
            ReviewNotFoundError: unknown review id.
            InvalidTransition: illegal edge, or the review changed
                concurrently and the new state does not allow it.
        """
        current = self.repository.get(review_id)
        if current is None:
            raise ReviewNotFoundError(review_id)

        updated = self.state_machine.transition(current, target, moderator_id, now=self._clock())

        if not self.repository.apply_transition(updated, expected_status=current.status):
            latest = self.repository.get(review_id)
            if latest is None:
                raise ReviewNotFoundError(review_id)
            raise InvalidTransition(latest.status, updated.status, reason="review was modified concurrently")

        logger.info(
            "Review %s moved %s -> %s by %s",
            review_id, current.status.value, updated.status.value, moderator_id,
            extra={"review_id": review_id, "status": updated.status.value},
        )
        return self.repository.get(review_id) or updated

    # =========================================================================
    # READS
    # =========================================================================

    def get_review(self, review_id: str) -> Review:
        review = self.repository.get(review_id)
        if review is None:
            raise ReviewNotFoundError(review_id)
        return review

    def list_reviews(self, query: ReviewQuery) -> ReviewPage:
        return self.repository.list_reviews(query)

    def stats(self, event_id: Optional[str] = None) -> ReviewStats:
        return self.stats_aggregator.aggregate(self.repository.list_all(event_id))

    def public_reviews(self, event_id: str, page: int = 1, page_size: int = 20) -> ReviewPage:
        query = ReviewQuery(
            status=ReviewStatus.APPROVED,
            event_id=event_id,
            page=page,
            page_size=page_size,
        )
        return self.repository.list_reviews(query)

    def event_summary(self, event_id: str) -> EventReviewSummary:
        return self.stats_aggregator.summarize_event(event_id, self.repository.list_all(event_id))
