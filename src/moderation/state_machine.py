"""
Moderation State Machine
========================

Owns review status transitions and their guards.

    pending  --(moderator)--> approved | rejected
    flagged  --(moderator)--> approved | rejected
    approved, rejected: terminal

The only system transition is the entry rule at creation:
flagged if the detection result is suspicious, otherwise pending.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Union

from ..reviews.review_models import DetectionResult, Review, ReviewStatus, utcnow

logger = logging.getLogger(__name__)


TERMINAL_STATES: FrozenSet[ReviewStatus] = frozenset({ReviewStatus.APPROVED, ReviewStatus.REJECTED})

_MODERATOR_TRANSITIONS: Dict[ReviewStatus, FrozenSet[ReviewStatus]] = {
    ReviewStatus.PENDING: frozenset({ReviewStatus.APPROVED, ReviewStatus.REJECTED}),
    ReviewStatus.FLAGGED: frozenset({ReviewStatus.APPROVED, ReviewStatus.REJECTED}),
    ReviewStatus.APPROVED: frozenset(),
    ReviewStatus.REJECTED: frozenset(),
}


class InvalidTransition(Exception):
    """Illegal moderator action. The review is left unchanged."""

    def __init__(
        self,
        current: Optional[ReviewStatus],
        requested: Union[ReviewStatus, str],
        reason: Optional[str] = None,
    ):
        self.current = current
        self.requested = requested
        self.reason = reason

        current_label = current.value if isinstance(current, ReviewStatus) else current
        requested_label = requested.value if isinstance(requested, ReviewStatus) else requested
        message = f"Cannot transition from {current_label} to {requested_label}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ModerationStateMachine:
    """Stateless guard over review status changes."""

    def initial_status(self, detection: DetectionResult) -> ReviewStatus:
        """System entry rule."""
        return ReviewStatus.FLAGGED if detection.is_suspicious else ReviewStatus.PENDING

    def can_transition(self, current: ReviewStatus, target: ReviewStatus) -> bool:
        return target in _MODERATOR_TRANSITIONS.get(current, frozenset())

    def transition(
        self,
        review: Review,
        target: Union[ReviewStatus, str],
        moderator_id: Optional[str],
        now: Optional[datetime] = None,
    ) -> Review:
        """
        Apply a moderator-invoked transition.

        Returns the updated review; the caller persists it with a guarded write.

        Raises:
            InvalidTransition: unknown target, missing moderator, or an edge
                not in the transition table.
        """
        if not isinstance(target, ReviewStatus):
            try:
                target = ReviewStatus(target)
            except ValueError:
                raise InvalidTransition(review.status, target, reason="unknown status")

        if not moderator_id or not str(moderator_id).strip():
            raise InvalidTransition(review.status, target, reason="moderator_id is required")

        if not self.can_transition(review.status, target):
            if review.status in TERMINAL_STATES:
                reason = f"{review.status.value} is terminal"
            elif review.status is target:
                reason = "review is already in this state"
            else:
                reason = "transition not allowed"
            raise InvalidTransition(review.status, target, reason=reason)

        logger.debug(
            "Review %s: %s -> %s by %s",
            review.id, review.status.value, target.value, moderator_id,
        )
        return replace(
            review,
            status=target,
            moderator_id=moderator_id,
            moderated_at=now or utcnow(),
        )
