"""
Review Moderation API Routes
============================

Admin:
    GET  /api/admin/reviews                          filtered, paginated listing
    GET  /api/admin/reviews/stats                    overview counters
    GET  /api/admin/reviews/{review_id}              one review
    POST /api/admin/reviews/{review_id}/transition   approve / reject

Public:
    POST /api/events/{event_id}/reviews              submit a review (201, 422 when invalid)
    GET  /api/events/{event_id}/reviews              approved reviews
    GET  /api/events/{event_id}/reviews/summary      rating + sentiment summary
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..moderation.state_machine import InvalidTransition
from ..orchestrator.review_pipeline import ReviewPipeline
from ..reviews.review_models import ReviewStatus, Sentiment, ValidationError
from ..reviews.review_repository import ReviewNotFoundError, ReviewQuery
from .models import (
    EventSummaryResponse,
    PublicReviewPageResponse,
    ReviewModel,
    ReviewPageResponse,
    ReviewStatsResponse,
    ReviewSubmissionRequest,
    TransitionRequest,
)
from .services import get_pipeline

logger = logging.getLogger(__name__)

admin_router = APIRouter(prefix="/api/admin/reviews", tags=["Moderation"])
public_router = APIRouter(prefix="/api/events", tags=["Reviews"])


@admin_router.get("", response_model=ReviewPageResponse)
def list_reviews(
    status: Optional[ReviewStatus] = Query(None, description="pending, approved, rejected, flagged"),
    rating: Optional[int] = Query(None, ge=1, le=5),
    sentiment: Optional[Sentiment] = Query(None),
    event_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Matches title or content"),
    sort: str = Query("created_at", pattern="^(created_at|rating)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    pipeline: ReviewPipeline = Depends(get_pipeline),
):
    """Moderation table: filter bar, sorting and pagination."""
    query = ReviewQuery(
        status=status,
        rating=rating,
        sentiment=sentiment,
        event_id=event_id,
        search=search or None,
        sort_field=sort,
        descending=order == "desc",
        page=page,
        page_size=page_size,
    )
    return ReviewPageResponse.from_page(pipeline.list_reviews(query))


@admin_router.get("/stats", response_model=ReviewStatsResponse)
def review_stats(
    event_id: Optional[str] = Query(None),
    pipeline: ReviewPipeline = Depends(get_pipeline),
):
    return ReviewStatsResponse.from_stats(pipeline.stats(event_id))


@admin_router.get("/{review_id}", response_model=ReviewModel)
def get_review(review_id: str, pipeline: ReviewPipeline = Depends(get_pipeline)):
    try:
        return ReviewModel.from_review(pipeline.get_review(review_id))
    except ReviewNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@admin_router.post("/{review_id}/transition", response_model=ReviewModel)
def transition_review(
    review_id: str,
    request: TransitionRequest,
    pipeline: ReviewPipeline = Depends(get_pipeline),
):
    """
    Apply a moderator decision.

    404 for an unknown review, 409 when the transition is not allowed
    from the review's current state.
    """
    try:
        review = pipeline.transition(review_id, request.target_status, request.moderator_id)
    except ReviewNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransition as e:
        logger.info(f"Rejected transition on {review_id}: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    return ReviewModel.from_review(review)


@public_router.post("/{event_id}/reviews", response_model=ReviewModel, status_code=201)
async def submit_review(
    event_id: str,
    request: ReviewSubmissionRequest,
    pipeline: ReviewPipeline = Depends(get_pipeline),
):
    """
    Accept a review from the submission form.

    The review is scored and stored as pending or flagged. Sentiment and
    admin alerts run in the background.
    """
    try:
        review = await pipeline.submit_review(request.to_submission(event_id))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"field": e.field, "message": e.message})
    return ReviewModel.from_review(review)


@public_router.get("/{event_id}/reviews", response_model=PublicReviewPageResponse)
def event_reviews(
    event_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    pipeline: ReviewPipeline = Depends(get_pipeline),
):
    """Approved reviews only, newest first."""
    return PublicReviewPageResponse.from_page(pipeline.public_reviews(event_id, page, page_size))


@public_router.get("/{event_id}/reviews/summary", response_model=EventSummaryResponse)
def event_review_summary(event_id: str, pipeline: ReviewPipeline = Depends(get_pipeline)):
    return EventSummaryResponse.from_summary(pipeline.event_summary(event_id))
