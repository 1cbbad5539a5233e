"""
Review Repository
=================

Persistence port for reviews plus two adapters:

    InMemoryReviewRepository  : thread-safe dict store (tests, local dev)
    PostgresReviewRepository  : psycopg2 store backed by the `reviews` table

The only mutations are the two guarded single-row writes:
    apply_transition  : compare-and-set on status
    apply_sentiment   : all three sentiment fields in one write
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from .review_models import (
    EventKind,
    Review,
    ReviewStatus,
    Sentiment,
    SentimentResult,
)

logger = logging.getLogger(__name__)


SORT_FIELDS = ("created_at", "rating")
MAX_PAGE_SIZE = 100


class ReviewNotFoundError(LookupError):
    """No review with this id."""

    def __init__(self, review_id: str):
        self.review_id = review_id
        super().__init__(f"Review {review_id} not found")


@dataclass(frozen=True)
class ReviewQuery:
    """Admin filter bar + pagination."""
    status: Optional[ReviewStatus] = None
    rating: Optional[int] = None
    sentiment: Optional[Sentiment] = None
    event_id: Optional[str] = None
    search: Optional[str] = None
    sort_field: str = "created_at"
    descending: bool = True
    page: int = 1
    page_size: int = 20

    def __post_init__(self):
        if self.sort_field not in SORT_FIELDS:
            raise ValueError(f"sort_field must be one of {SORT_FIELDS}, got: {self.sort_field}")
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def matches(self, review: Review) -> bool:
        if self.status is not None and review.status is not self.status:
            return False
        if self.rating is not None and review.rating != self.rating:
            return False
        if self.sentiment is not None and review.sentiment is not self.sentiment:
            return False
        if self.event_id is not None and review.event_id != self.event_id:
            return False
        if self.search:
            needle = self.search.lower()
            if needle not in review.title.lower() and needle not in review.content.lower():
                return False
        return True


@dataclass(frozen=True)
class ReviewPage:
    items: List[Review]
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        if self.total == 0:
            return 0
        return (self.total + self.page_size - 1) // self.page_size


class ReviewRepository(ABC):
    """Review persistence port."""

    @abstractmethod
    def add(self, review: Review) -> Review:
        """Persist a newly created review."""

    @abstractmethod
    def get(self, review_id: str) -> Optional[Review]:
        """Current snapshot, or None."""

    @abstractmethod
    def list_reviews(self, query: ReviewQuery) -> ReviewPage:
        """Filtered, sorted, paginated read."""

    @abstractmethod
    def list_all(self, event_id: Optional[str] = None) -> List[Review]:
        """Every review (optionally of one event), for stats."""

    @abstractmethod
    def reviews_by_author(self, author_id: str, limit: int = 50) -> List[Review]:
        """Author's reviews, newest first."""

    @abstractmethod
    def apply_transition(self, updated: Review, expected_status: ReviewStatus) -> bool:
        """
        Write status/moderator fields iff the stored status is still
        `expected_status`. Returns False when the guard fails.
        """

    @abstractmethod
    def apply_sentiment(self, review_id: str, result: SentimentResult) -> bool:
        """Write the three sentiment fields together. False if the review is gone."""


class InMemoryReviewRepository(ReviewRepository):
    """Dict-backed store. All operations hold a single re-entrant lock."""

    def __init__(self):
        self._reviews: Dict[str, Review] = {}
        self._lock = threading.RLock()

    def add(self, review: Review) -> Review:
        with self._lock:
            if review.id in self._reviews:
                raise ValueError(f"Review {review.id} already exists")
            self._reviews[review.id] = review
        return review

    def get(self, review_id: str) -> Optional[Review]:
        with self._lock:
            return self._reviews.get(review_id)

    def list_reviews(self, query: ReviewQuery) -> ReviewPage:
        with self._lock:
            matched = [r for r in self._reviews.values() if query.matches(r)]

        # Secondary key on id keeps ordering stable across equal sort values
        matched.sort(
            key=lambda r: (getattr(r, query.sort_field), r.id),
            reverse=query.descending,
        )
        items = matched[query.offset:query.offset + query.page_size]
        return ReviewPage(items=items, total=len(matched), page=query.page, page_size=query.page_size)

    def list_all(self, event_id: Optional[str] = None) -> List[Review]:
        with self._lock:
            reviews = list(self._reviews.values())
        if event_id is not None:
            reviews = [r for r in reviews if r.event_id == event_id]
        return reviews

    def reviews_by_author(self, author_id: str, limit: int = 50) -> List[Review]:
        with self._lock:
            reviews = [r for r in self._reviews.values() if r.author_id == author_id]
        reviews.sort(key=lambda r: r.created_at, reverse=True)
        return reviews[:limit]

    def apply_transition(self, updated: Review, expected_status: ReviewStatus) -> bool:
        with self._lock:
            current = self._reviews.get(updated.id)
            if current is None or current.status is not expected_status:
                return False
            self._reviews[updated.id] = replace(
                current,
                status=updated.status,
                moderator_id=updated.moderator_id,
                moderated_at=updated.moderated_at,
            )
            return True

    def apply_sentiment(self, review_id: str, result: SentimentResult) -> bool:
        with self._lock:
            current = self._reviews.get(review_id)
            if current is None:
                return False
            self._reviews[review_id] = current.with_sentiment(result)
            return True


# =============================================================================
# PostgreSQL
# =============================================================================

_COLUMNS = (
    "id", "author_id", "event_id", "event_kind", "rating",
    "atmosphere_rating", "organization_rating", "value_rating",
    "title", "content", "created_at", "status", "suspicion_score",
    "suspicion_flags", "sentiment", "sentiment_confidence", "ai_summary",
    "moderator_id", "moderated_at",
)
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM reviews"


def _row_to_review(row: Tuple[Any, ...]) -> Review:
    data = dict(zip(_COLUMNS, row))
    return Review(
        id=str(data["id"]),
        author_id=data["author_id"],
        event_id=data["event_id"],
        event_kind=EventKind(data["event_kind"]),
        rating=data["rating"],
        atmosphere_rating=data["atmosphere_rating"],
        organization_rating=data["organization_rating"],
        value_rating=data["value_rating"],
        title=data["title"],
        content=data["content"],
        created_at=data["created_at"],
        status=ReviewStatus(data["status"]),
        suspicion_score=float(data["suspicion_score"]),
        suspicion_flags=tuple(data["suspicion_flags"] or ()),
        sentiment=Sentiment(data["sentiment"]),
        sentiment_confidence=data["sentiment_confidence"],
        ai_summary=data["ai_summary"],
        moderator_id=data["moderator_id"],
        moderated_at=data["moderated_at"],
    )


class PostgresReviewRepository(ReviewRepository):
    """Store backed by the `reviews` table (see src.data.db.SCHEMA_SQL)."""

    def __init__(self, connection_factory=None):
        if connection_factory is None:
            from ..data.db import get_connection
            connection_factory = get_connection
        self._connection = connection_factory

    def _fetch(self, sql: str, params: Tuple[Any, ...]) -> List[Tuple[Any, ...]]:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.fetchall()

    def _execute(self, sql: str, params: Tuple[Any, ...]) -> int:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.rowcount

    def add(self, review: Review) -> Review:
        placeholders = ", ".join(["%s"] * len(_COLUMNS))
        self._execute(
            f"INSERT INTO reviews ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            (
                review.id, review.author_id, review.event_id, review.event_kind.value,
                review.rating, review.atmosphere_rating, review.organization_rating,
                review.value_rating, review.title, review.content, review.created_at,
                review.status.value, review.suspicion_score, list(review.suspicion_flags),
                review.sentiment.value, review.sentiment_confidence, review.ai_summary,
                review.moderator_id, review.moderated_at,
            ),
        )
        return review

    def get(self, review_id: str) -> Optional[Review]:
        rows = self._fetch(f"{_SELECT} WHERE id = %s", (review_id,))
        return _row_to_review(rows[0]) if rows else None

    def _where(self, query: ReviewQuery) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        if query.status is not None:
            clauses.append("status = %s")
            params.append(query.status.value)
        if query.rating is not None:
            clauses.append("rating = %s")
            params.append(query.rating)
        if query.sentiment is not None:
            clauses.append("sentiment = %s")
            params.append(query.sentiment.value)
        if query.event_id is not None:
            clauses.append("event_id = %s")
            params.append(query.event_id)
        if query.search:
            clauses.append("(title ILIKE %s OR content ILIKE %s)")
            pattern = f"%{query.search}%"
            params.extend([pattern, pattern])
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    def list_reviews(self, query: ReviewQuery) -> ReviewPage:
        where, params = self._where(query)
        direction = "DESC" if query.descending else "ASC"
        # sort_field is validated against SORT_FIELDS in ReviewQuery
        rows = self._fetch(
            f"{_SELECT}{where} ORDER BY {query.sort_field} {direction}, id {direction} "
            f"LIMIT %s OFFSET %s",
            tuple(params) + (query.page_size, query.offset),
        )
        total_rows = self._fetch(f"SELECT count(*) FROM reviews{where}", tuple(params))
        total = total_rows[0][0] if total_rows else 0
        return ReviewPage(
            items=[_row_to_review(r) for r in rows],
            total=total,
            page=query.page,
            page_size=query.page_size,
        )

    def list_all(self, event_id: Optional[str] = None) -> List[Review]:
        if event_id is None:
            rows = self._fetch(_SELECT, ())
        else:
            rows = self._fetch(f"{_SELECT} WHERE event_id = %s", (event_id,))
        return [_row_to_review(r) for r in rows]

    def reviews_by_author(self, author_id: str, limit: int = 50) -> List[Review]:
        rows = self._fetch(
            f"{_SELECT} WHERE author_id = %s ORDER BY created_at DESC LIMIT %s",
            (author_id, limit),
        )
        return [_row_to_review(r) for r in rows]

    def apply_transition(self, updated: Review, expected_status: ReviewStatus) -> bool:
        rowcount = self._execute(
            "UPDATE reviews SET status = %s, moderator_id = %s, moderated_at = %s "
            "WHERE id = %s AND status = %s",
            (
                updated.status.value, updated.moderator_id, updated.moderated_at,
                updated.id, expected_status.value,
            ),
        )
        return rowcount == 1

    def apply_sentiment(self, review_id: str, result: SentimentResult) -> bool:
        rowcount = self._execute(
            "UPDATE reviews SET sentiment = %s, sentiment_confidence = %s, ai_summary = %s "
            "WHERE id = %s",
            (result.sentiment.value, result.confidence, result.summary, review_id),
        )
        return rowcount == 1
