"""
Review Trust API Services
=========================

Builds the ReviewPipeline from Settings and exposes it to routes as a
FastAPI dependency.
"""

from typing import Optional
import logging

from ..ai.llm_client import get_sentiment_client
from ..ai.sentiment_analyzer import SentimentAnalyzer
from ..cache.idempotency import get_idempotency_store
from ..data.config import Settings, get_settings
from ..notifications.dispatcher import NotificationDispatcher
from ..notifications.slack_notifier import SlackNotifier
from ..orchestrator.review_pipeline import ReviewPipeline
from ..reviews.history_provider import (
    RepositoryHistoryProvider,
    RepositoryRatingDistributionProvider,
)
from ..reviews.review_repository import (
    InMemoryReviewRepository,
    PostgresReviewRepository,
    ReviewRepository,
)

logger = logging.getLogger(__name__)

# Global pipeline instance (built on first use)
_pipeline: Optional[ReviewPipeline] = None


def build_repository(settings: Settings) -> ReviewRepository:
    if settings.storage.backend == "postgres":
        from ..data import db
        db.get_pool(settings.database)
        return PostgresReviewRepository()
    return InMemoryReviewRepository()


def build_sentiment_analyzer(settings: Settings, repository: ReviewRepository) -> Optional[SentimentAnalyzer]:
    cfg = settings.sentiment
    if not cfg.enabled:
        logger.info("Sentiment enrichment disabled")
        return None
    try:
        client = get_sentiment_client(cfg.provider, cfg.model, cfg.timeout_seconds)
    except ValueError as e:
        logger.warning(f"Sentiment enrichment disabled: {e}")
        return None
    return SentimentAnalyzer(
        client,
        repository,
        backoff_delays=cfg.backoff_seconds,
        timeout=cfg.timeout_seconds,
    )


def build_review_pipeline(settings: Optional[Settings] = None) -> ReviewPipeline:
    """Wire every collaborator according to configuration."""
    settings = settings or get_settings()
    repository = build_repository(settings)

    account_lookup = None
    if settings.storage.backend == "postgres":
        from ..data.db import get_account_created_at
        account_lookup = get_account_created_at

    notif = settings.notifications
    dispatcher = NotificationDispatcher(
        SlackNotifier(webhook_url=notif.slack_webhook_url, enabled=notif.enabled),
        get_idempotency_store(notif.redis_url, notif.idempotency_ttl_seconds),
    )

    pipeline = ReviewPipeline(
        repository=repository,
        history_provider=RepositoryHistoryProvider(repository, account_lookup=account_lookup),
        distribution_provider=RepositoryRatingDistributionProvider(repository),
        sentiment_analyzer=build_sentiment_analyzer(settings, repository),
        dispatcher=dispatcher,
    )
    logger.info(
        "Review pipeline ready: store=%s sentiment=%s notifications=%s",
        settings.storage.backend,
        "on" if pipeline.sentiment_analyzer else "off",
        "on" if notif.enabled else "off",
    )
    return pipeline


def get_pipeline() -> ReviewPipeline:
    """FastAPI dependency. Tests override it with app.dependency_overrides."""
    global _pipeline
    if _pipeline is None:
        _pipeline = build_review_pipeline()
    return _pipeline


def reset_pipeline() -> Optional[ReviewPipeline]:
    """Forget the global pipeline, returning it for shutdown."""
    global _pipeline
    pipeline, _pipeline = _pipeline, None
    return pipeline
