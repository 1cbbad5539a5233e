"""
Review Trust Data Models
========================

Core entities of the review-trust pipeline.

    ReviewSubmission  : validated inbound payload from the submission collaborator
    DetectionResult   : transient output of the SuspicionScorer
    Review            : the persisted review (status decided at creation)
    SentimentResult   : the three enrichment fields, applied together
    ReviewStats       : admin overview, recomputed on every query
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


RATING_MIN = 1
RATING_MAX = 5


class ReviewStatus(str, Enum):
    """Moderation states. APPROVED and REJECTED are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FLAGGED = "flagged"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    UNSET = "unset"


class FlagCode(str, Enum):
    """Heuristic signals, in evaluation order."""
    DUPLICATE_CONTENT = "duplicate_content"
    LOW_EFFORT_EXTREME_RATING = "low_effort_extreme_rating"
    RATING_OUTLIER = "rating_outlier"
    BURST_SUBMISSION = "burst_submission"
    GENERIC_LANGUAGE = "generic_language"
    NEW_ACCOUNT_RAPID_REVIEW = "new_account_rapid_review"


class EventKind(str, Enum):
    LOCAL = "local"
    EXTERNAL = "external"


class ValidationError(ValueError):
    """Malformed submission. Rejected before persistence."""

    def __init__(self, field_name: str, message: str):
        self.field = field_name
        self.message = message
        super().__init__(f"{field_name}: {message}")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate_rating(name: str, value: Any, required: bool = True) -> Optional[int]:
    if value is None:
        if required:
            raise ValidationError(name, "rating is required")
        return None
    # bool is an int subclass; True must not pass as a 1-star rating
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(name, f"rating must be an integer, got {value!r}")
    if not RATING_MIN <= value <= RATING_MAX:
        raise ValidationError(name, f"rating must be between {RATING_MIN} and {RATING_MAX}, got {value}")
    return value


@dataclass(frozen=True)
class EventRef:
    """
    Explicitly tagged reference to the reviewed event.

    Local events are owned by this product; external events come from a
    third-party listing source and are keyed as "<source>:<id>".
    """
    kind: EventKind
    event_id: str
    source: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.kind, EventKind):
            try:
                object.__setattr__(self, "kind", EventKind(self.kind))
            except ValueError:
                raise ValidationError("event.kind", f"unknown event kind {self.kind!r}")
        if not self.event_id or not str(self.event_id).strip():
            raise ValidationError("event_id", "event reference is required")
        if self.kind is EventKind.EXTERNAL and not self.source:
            raise ValidationError("event.source", "external events require a source")
        if self.kind is EventKind.LOCAL and self.source:
            raise ValidationError("event.source", "local events do not take a source")

    @property
    def key(self) -> str:
        """Identifier stored on the review."""
        if self.kind is EventKind.EXTERNAL:
            return f"{self.source}:{self.event_id}"
        return str(self.event_id)

    @classmethod
    def local(cls, event_id: str) -> "EventRef":
        return cls(kind=EventKind.LOCAL, event_id=event_id)

    @classmethod
    def external(cls, source: str, external_id: str) -> "EventRef":
        return cls(kind=EventKind.EXTERNAL, event_id=external_id, source=source)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventRef":
        if "kind" not in data:
            raise ValidationError("event.kind", "event reference must declare its kind")
        return cls(
            kind=data["kind"],
            event_id=data.get("event_id") or data.get("id") or "",
            source=data.get("source"),
        )


@dataclass(frozen=True)
class ReviewSubmission:
    """Inbound review payload. Use validated() before scoring."""
    author_id: str
    event: EventRef
    rating: int
    title: str
    content: str
    atmosphere_rating: Optional[int] = None
    organization_rating: Optional[int] = None
    value_rating: Optional[int] = None

    @property
    def event_id(self) -> str:
        return self.event.key

    def validated(self) -> "ReviewSubmission":
        """
        Return a normalised copy (trimmed text) or raise ValidationError.
        """
        if not self.author_id or not str(self.author_id).strip():
            raise ValidationError("author_id", "author is required")
        _validate_rating("rating", self.rating)
        for name in ("atmosphere_rating", "organization_rating", "value_rating"):
            _validate_rating(name, getattr(self, name), required=False)

        title = (self.title or "").strip()
        content = (self.content or "").strip()
        if not title:
            raise ValidationError("title", "title must not be empty")
        if not content:
            raise ValidationError("content", "content must not be empty")

        return replace(self, title=title, content=content)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewSubmission":
        """
        Build from the submission collaborator payload.

        A bare "event_id" is a local event; an "event" object must carry its kind.
        """
        if isinstance(data.get("event"), dict):
            event = EventRef.from_dict(data["event"])
        else:
            event = EventRef.local(data.get("event_id") or "")
        return cls(
            author_id=data.get("author_id") or "",
            event=event,
            rating=data.get("rating"),
            title=data.get("title") or "",
            content=data.get("content") or "",
            atmosphere_rating=data.get("atmosphere_rating"),
            organization_rating=data.get("organization_rating"),
            value_rating=data.get("value_rating"),
        )


@dataclass(frozen=True)
class AuthorHistory:
    """Snapshot supplied by the ReviewHistoryProvider."""
    prior_review_texts: Tuple[str, ...] = ()
    account_age_seconds: Optional[float] = None   # None when the identity service has no record
    recent_submission_timestamps: Tuple[datetime, ...] = ()


@dataclass(frozen=True)
class RatingDistribution:
    """Existing rating distribution of the target event."""
    mean: float
    stddev: float
    count: int

    @classmethod
    def from_ratings(cls, ratings: List[int]) -> "RatingDistribution":
        if not ratings:
            return cls(mean=0.0, stddev=0.0, count=0)
        count = len(ratings)
        mean = sum(ratings) / count
        variance = sum((r - mean) ** 2 for r in ratings) / count
        return cls(mean=mean, stddev=variance ** 0.5, count=count)


@dataclass(frozen=True)
class DetectionResult:
    """Output of the SuspicionScorer. Folded into the Review at creation."""
    is_suspicious: bool
    suspicion_score: float          # 0.0 to 1.0
    flags: Tuple[str, ...]          # FlagCode values, evaluation order
    computed_at: datetime
    signal_scores: Dict[str, float] = field(default_factory=dict)
    degraded: bool = False          # True when author history was unavailable


@dataclass(frozen=True)
class SentimentResult:
    """Parsed response of the sentiment analysis collaborator."""
    sentiment: Sentiment
    confidence: float
    summary: str


@dataclass(frozen=True)
class Review:
    """
    A persisted review.

    Mutated only through the repository: the one-time sentiment update
    and moderator transitions. Instances are immutable snapshots.
    """
    id: str
    author_id: str
    event_id: str
    rating: int
    title: str
    content: str
    created_at: datetime
    status: ReviewStatus
    suspicion_score: float
    suspicion_flags: Tuple[str, ...] = ()
    sentiment: Sentiment = Sentiment.UNSET
    sentiment_confidence: Optional[float] = None
    ai_summary: Optional[str] = None
    moderator_id: Optional[str] = None
    moderated_at: Optional[datetime] = None
    event_kind: EventKind = EventKind.LOCAL
    atmosphere_rating: Optional[int] = None
    organization_rating: Optional[int] = None
    value_rating: Optional[int] = None

    @classmethod
    def create(
        cls,
        submission: ReviewSubmission,
        detection: DetectionResult,
        status: ReviewStatus,
        created_at: Optional[datetime] = None,
        review_id: Optional[str] = None,
    ) -> "Review":
        # Flags are only recorded when the system rule flagged the review
        flags = tuple(detection.flags) if status is ReviewStatus.FLAGGED else ()
        return cls(
            id=review_id or str(uuid.uuid4()),
            author_id=submission.author_id,
            event_id=submission.event_id,
            rating=submission.rating,
            title=submission.title,
            content=submission.content,
            created_at=created_at or detection.computed_at,
            status=status,
            suspicion_score=detection.suspicion_score,
            suspicion_flags=flags,
            event_kind=submission.event.kind,
            atmosphere_rating=submission.atmosphere_rating,
            organization_rating=submission.organization_rating,
            value_rating=submission.value_rating,
        )

    @property
    def is_public(self) -> bool:
        return self.status is ReviewStatus.APPROVED

    @property
    def awaiting_decision(self) -> bool:
        return self.status in (ReviewStatus.PENDING, ReviewStatus.FLAGGED)

    @property
    def has_sentiment(self) -> bool:
        return self.sentiment is not Sentiment.UNSET

    @property
    def auto_flagged(self) -> bool:
        """Flagged by the scoring rule rather than by a moderator."""
        return self.status is ReviewStatus.FLAGGED and self.moderator_id is None

    def with_sentiment(self, result: SentimentResult) -> "Review":
        return replace(
            self,
            sentiment=result.sentiment,
            sentiment_confidence=result.confidence,
            ai_summary=result.summary,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "author_id": self.author_id,
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "rating": self.rating,
            "atmosphere_rating": self.atmosphere_rating,
            "organization_rating": self.organization_rating,
            "value_rating": self.value_rating,
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "suspicion_score": self.suspicion_score,
            "suspicion_flags": list(self.suspicion_flags),
            "sentiment": self.sentiment.value,
            "sentiment_confidence": self.sentiment_confidence,
            "ai_summary": self.ai_summary,
            "moderator_id": self.moderator_id,
            "moderated_at": self.moderated_at.isoformat() if self.moderated_at else None,
        }


@dataclass(frozen=True)
class ReviewStats:
    """Admin overview. `pending` includes flagged reviews (both await a decision)."""
    total: int
    pending: int
    approved: int
    rejected: int
    average_rating: float
    flagged: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "pending": self.pending,
            "approved": self.approved,
            "rejected": self.rejected,
            "average_rating": self.average_rating,
            "flagged": self.flagged,
        }


@dataclass(frozen=True)
class EventReviewSummary:
    """Public summary of an event's approved reviews."""
    event_id: str
    review_count: int
    average_rating: float
    rating_counts: Dict[int, int]           # 5..1
    sentiment_counts: Dict[str, int]        # positive / negative / neutral
    average_atmosphere: float = 0.0
    average_organization: float = 0.0
    average_value: float = 0.0
