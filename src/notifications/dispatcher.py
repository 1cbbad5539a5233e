"""
Notification Dispatcher
=======================

At-most-once admin alert when a review enters "flagged" via the
scoring rule.

Outbound payload (fire-and-forget):
    {"type": "suspicious_review", "review_id", "score", "flags"}

The review id is the idempotency key: concurrent duplicate triggers for
the same review collapse to a single send. A failed send is logged and
never reverses the flagging decision.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..cache.idempotency import IdempotencyStore, InMemoryIdempotencyStore
from ..reviews.review_models import DetectionResult, Review, ReviewStatus

logger = logging.getLogger(__name__)

NOTIFICATION_TYPE = "suspicious_review"


class NotificationDispatchError(Exception):
    """The notification collaborator could not deliver an alert."""
    pass


class AdminNotifier(ABC):
    """Outbound admin alert channel."""

    @abstractmethod
    def send_suspicious_review(self, payload: Dict[str, Any]) -> None:
        """
        Deliver one alert.

        Raises:
            NotificationDispatchError: delivery failed.
        """
        pass


def idempotency_key(review_id: str) -> str:
    return f"{NOTIFICATION_TYPE}:{review_id}"


def build_suspicious_review_payload(review: Review, detection: DetectionResult) -> Dict[str, Any]:
    return {
        "type": NOTIFICATION_TYPE,
        "review_id": review.id,
        "score": detection.suspicion_score,
        "flags": list(detection.flags),
    }


class NotificationDispatcher:
    """Idempotent front for an AdminNotifier."""

    def __init__(self, notifier: AdminNotifier, store: Optional[IdempotencyStore] = None):
        self.notifier = notifier
        self.store = store if store is not None else InMemoryIdempotencyStore()

    def notify_flagged(self, review: Review, detection: DetectionResult) -> bool:
        """
        Alert admins about a flagged review.

        Returns:
            True if this call delivered the alert, False if it was a
            duplicate, skipped, or failed.
        """
        if review.status is not ReviewStatus.FLAGGED:
            logger.debug("Review %s is %s, no alert", review.id, review.status.value)
            return False

        if not self.store.claim(idempotency_key(review.id)):
            logger.debug("Alert for review %s already claimed", review.id)
            return False

        payload = build_suspicious_review_payload(review, detection)
        try:
            self.notifier.send_suspicious_review(payload)
        except NotificationDispatchError as e:
            logger.error(
                "Failed to notify admins about review %s: %s", review.id, e,
                extra={"review_id": review.id, "score": detection.suspicion_score},
            )
            return False

        logger.info(
            "Admins notified about suspicious review %s", review.id,
            extra={
                "review_id": review.id,
                "score": detection.suspicion_score,
                "flags": list(detection.flags),
            },
        )
        return True
