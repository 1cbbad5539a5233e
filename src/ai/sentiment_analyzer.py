"""
Sentiment Analyzer
==================

Drives the external sentiment call for a freshly created review and
applies the result.

Rules:
    - at most one in-flight analysis per review id
    - transient failures (timeouts, 5xx, 429) retry with backoff 0.5s, 1.5s
    - permanent failures abandon immediately
    - the three sentiment fields are written together or not at all
    - failures are logged, never raised to the submitter or moderator
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Sequence

from ..reviews.review_models import Review, SentimentResult
from ..reviews.review_repository import ReviewRepository
from .llm_client import SentimentClient, SentimentServiceError

logger = logging.getLogger(__name__)

DEFAULT_BACKOFF = (0.5, 1.5)


@dataclass
class SentimentOutcome:
    """What happened to one analysis run."""
    review_id: str
    result: Optional[SentimentResult]
    attempts: int
    error: Optional[str] = None
    applied: bool = False

    @property
    def succeeded(self) -> bool:
        return self.result is not None


class SentimentAnalyzer:
    """
    Retrying orchestration around a SentimentClient.

    Usage:
        analyzer = SentimentAnalyzer(client, repository)
        analyzer.trigger(review)      # from inside a running event loop
        await analyzer.drain()        # on shutdown
    """

    def __init__(
        self,
        client: SentimentClient,
        repository: ReviewRepository,
        backoff_delays: Sequence[float] = DEFAULT_BACKOFF,
        timeout: Optional[float] = 20.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.repository = repository
        self.backoff_delays = tuple(backoff_delays)
        self.timeout = timeout
        self._sleep = sleep
        self._in_flight: Dict[str, asyncio.Task] = {}

    @property
    def max_attempts(self) -> int:
        return len(self.backoff_delays) + 1

    def is_in_flight(self, review_id: str) -> bool:
        task = self._in_flight.get(review_id)
        return task is not None and not task.done()

    def trigger(self, review: Review) -> Optional[asyncio.Task]:
        """
        Schedule a detached analysis.

        Returns None when an analysis for this review is already running.
        Must be called with a running event loop.
        """
        if self.is_in_flight(review.id):
            logger.debug("Sentiment already in flight for %s, ignoring trigger", review.id)
            return None

        task = asyncio.get_running_loop().create_task(
            self._run_detached(review.id, review.title, review.content)
        )
        self._in_flight[review.id] = task
        task.add_done_callback(lambda t, rid=review.id: self._forget(rid, t))
        return task

    def _forget(self, review_id: str, task: asyncio.Task) -> None:
        if self._in_flight.get(review_id) is task:
            del self._in_flight[review_id]

    async def _run_detached(self, review_id: str, title: str, content: str) -> Optional[SentimentOutcome]:
        try:
            return await self.analyze(review_id, title, content)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Unexpected error in sentiment task for review %s", review_id)
            return None

    async def analyze(self, review_id: str, title: str, content: str) -> SentimentOutcome:
        """
        Call the collaborator with retries, then apply the result.

        Returns:
            SentimentOutcome. On failure the review is left untouched.
        """
        last_error: Optional[str] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                call = self.client.analyze(review_id, title, content)
                if self.timeout:
                    result = await asyncio.wait_for(call, timeout=self.timeout)
                else:
                    result = await call
            except asyncio.TimeoutError:
                last_error = f"timed out after {self.timeout}s"
                transient = True
            except SentimentServiceError as e:
                last_error = e.message
                transient = e.transient
            else:
                applied = await asyncio.to_thread(self.repository.apply_sentiment, review_id, result)
                if applied:
                    logger.info(
                        "Sentiment applied to review %s: %s (%.2f)",
                        review_id, result.sentiment.value, result.confidence,
                        extra={"review_id": review_id, "attempt": attempt},
                    )
                else:
                    logger.warning(
                        "Review %s no longer exists, sentiment discarded", review_id,
                        extra={"review_id": review_id, "attempt": attempt},
                    )
                return SentimentOutcome(review_id, result, attempt, applied=applied)

            if not transient:
                logger.error(
                    "Sentiment analysis failed permanently for review %s: %s",
                    review_id, last_error,
                    extra={"review_id": review_id, "attempt": attempt},
                )
                return SentimentOutcome(review_id, None, attempt, error=last_error)

            if attempt < self.max_attempts:
                delay = self.backoff_delays[attempt - 1]
                logger.warning(
                    "Sentiment attempt %d/%d failed for review %s: %s. Retrying in %.1fs",
                    attempt, self.max_attempts, review_id, last_error, delay,
                    extra={"review_id": review_id, "attempt": attempt},
                )
                await self._sleep(delay)

        logger.error(
            "Sentiment analysis gave up on review %s after %d attempts: %s",
            review_id, self.max_attempts, last_error,
            extra={"review_id": review_id, "attempt": self.max_attempts},
        )
        return SentimentOutcome(review_id, None, self.max_attempts, error=last_error)

    async def drain(self) -> None:
        """Wait for every in-flight analysis to finish."""
        pending = [t for t in self._in_flight.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
