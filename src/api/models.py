"""
Review Trust API Models
=======================

Pydantic models for API request/response serialization.
Aligned with the admin moderation table and public review cards.
"""

from pydantic import BaseModel, Field
from typing import List, Dict, Optional
from datetime import datetime

from ..reviews.review_models import EventRef, EventReviewSummary, Review, ReviewStats, ReviewSubmission
from ..reviews.review_repository import ReviewPage


class ReviewModel(BaseModel):
    """Full review as seen by moderators."""
    id: str
    author_id: str
    event_id: str
    event_kind: str
    rating: int
    atmosphere_rating: Optional[int] = None
    organization_rating: Optional[int] = None
    value_rating: Optional[int] = None
    title: str
    content: str
    created_at: datetime
    status: str
    suspicion_score: float
    suspicion_flags: List[str] = Field(default_factory=list)
    sentiment: str
    sentiment_confidence: Optional[float] = None
    ai_summary: Optional[str] = None
    moderator_id: Optional[str] = None
    moderated_at: Optional[datetime] = None

    @classmethod
    def from_review(cls, review: Review) -> "ReviewModel":
        return cls(**review.to_dict())


class PublicReviewModel(BaseModel):
    """Approved review as shown on an event page. No moderation data."""
    id: str
    event_id: str
    rating: int
    atmosphere_rating: Optional[int] = None
    organization_rating: Optional[int] = None
    value_rating: Optional[int] = None
    title: str
    content: str
    created_at: datetime
    sentiment: str
    ai_summary: Optional[str] = None

    @classmethod
    def from_review(cls, review: Review) -> "PublicReviewModel":
        return cls(
            id=review.id,
            event_id=review.event_id,
            rating=review.rating,
            atmosphere_rating=review.atmosphere_rating,
            organization_rating=review.organization_rating,
            value_rating=review.value_rating,
            title=review.title,
            content=review.content,
            created_at=review.created_at,
            sentiment=review.sentiment.value,
            ai_summary=review.ai_summary,
        )


class ReviewPageResponse(BaseModel):
    """Paginated admin listing."""
    items: List[ReviewModel]
    total: int
    page: int
    page_size: int
    pages: int

    @classmethod
    def from_page(cls, page: ReviewPage) -> "ReviewPageResponse":
        return cls(
            items=[ReviewModel.from_review(r) for r in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            pages=page.pages,
        )


class PublicReviewPageResponse(BaseModel):
    """Paginated public listing."""
    items: List[PublicReviewModel]
    total: int
    page: int
    page_size: int
    pages: int

    @classmethod
    def from_page(cls, page: ReviewPage) -> "PublicReviewPageResponse":
        return cls(
            items=[PublicReviewModel.from_review(r) for r in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            pages=page.pages,
        )


class ReviewSubmissionRequest(BaseModel):
    """New review for a local event. Business rules are checked by the pipeline."""
    author_id: str
    rating: int
    title: str
    content: str
    atmosphere_rating: Optional[int] = None
    organization_rating: Optional[int] = None
    value_rating: Optional[int] = None

    def to_submission(self, event_id: str) -> ReviewSubmission:
        return ReviewSubmission(
            author_id=self.author_id,
            event=EventRef.local(event_id),
            rating=self.rating,
            title=self.title,
            content=self.content,
            atmosphere_rating=self.atmosphere_rating,
            organization_rating=self.organization_rating,
            value_rating=self.value_rating,
        )


class TransitionRequest(BaseModel):
    """Moderator decision."""
    target_status: str = Field(..., description="approved or rejected")
    moderator_id: Optional[str] = Field(None, description="Acting moderator")


class ReviewStatsResponse(BaseModel):
    """Admin overview counters. `pending` includes flagged reviews."""
    total: int
    pending: int
    approved: int
    rejected: int
    flagged: int
    average_rating: float

    @classmethod
    def from_stats(cls, stats: ReviewStats) -> "ReviewStatsResponse":
        return cls(**stats.to_dict())


class EventSummaryResponse(BaseModel):
    """Public per-event summary over approved reviews."""
    event_id: str
    review_count: int
    average_rating: float
    rating_counts: Dict[int, int]
    sentiment_counts: Dict[str, int]
    average_atmosphere: float
    average_organization: float
    average_value: float

    @classmethod
    def from_summary(cls, summary: EventReviewSummary) -> "EventSummaryResponse":
        return cls(
            event_id=summary.event_id,
            review_count=summary.review_count,
            average_rating=round(summary.average_rating, 2),
            rating_counts=summary.rating_counts,
            sentiment_counts=summary.sentiment_counts,
            average_atmosphere=round(summary.average_atmosphere, 2),
            average_organization=round(summary.average_organization, 2),
            average_value=round(summary.average_value, 2),
        )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    store: str
    database: Optional[str] = None
    sentiment: str
    notifications: str
