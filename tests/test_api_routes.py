"""
Tests for the FastAPI adapter (admin moderation + public display).

The pipeline dependency is overridden with an in-memory pipeline.

Usage:
    pytest tests/test_api_routes.py -v
"""

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from src.api.main import app
from src.api.services import get_pipeline
from src.orchestrator import ReviewPipeline
from src.reviews.history_provider import ReviewHistoryProvider
from src.reviews.review_models import AuthorHistory, Review, ReviewStatus, Sentiment
from src.reviews.review_repository import InMemoryReviewRepository


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class EmptyHistory(ReviewHistoryProvider):

    def get_history(self, author_id, event_id):
        return AuthorHistory()


def make_review(
    review_id: str,
    status: ReviewStatus,
    rating: int = 4,
    minutes_ago: int = 0,
    sentiment: Sentiment = Sentiment.UNSET,
    content: str = "Good music and friendly staff.",
) -> Review:
    return Review(
        id=review_id,
        author_id="user-1",
        event_id="evt-1",
        rating=rating,
        title="Nice evening",
        content=content,
        created_at=NOW - timedelta(minutes=minutes_ago),
        status=status,
        suspicion_score=0.75 if status is ReviewStatus.FLAGGED else 0.0,
        suspicion_flags=("burst_submission",) if status is ReviewStatus.FLAGGED else (),
        sentiment=sentiment,
        sentiment_confidence=None if sentiment is Sentiment.UNSET else 0.9,
        ai_summary=None if sentiment is Sentiment.UNSET else "Positive overall.",
        atmosphere_rating=5 if status is ReviewStatus.APPROVED else None,
    )


class TestReviewRoutes:

    def setup_method(self):
        self.repo = InMemoryReviewRepository()
        self.repo.add(make_review("flagged-1", ReviewStatus.FLAGGED, rating=5, minutes_ago=3, content="Great!"))
        self.repo.add(make_review("pending-1", ReviewStatus.PENDING, rating=3, minutes_ago=2))
        self.repo.add(make_review("approved-1", ReviewStatus.APPROVED, rating=4, minutes_ago=1, sentiment=Sentiment.POSITIVE))
        self.repo.add(make_review("rejected-1", ReviewStatus.REJECTED, rating=1))

        self.pipeline = ReviewPipeline(self.repo, EmptyHistory(), clock=lambda: NOW)
        app.dependency_overrides[get_pipeline] = lambda: self.pipeline
        self.client = TestClient(app)

    def teardown_method(self):
        app.dependency_overrides.clear()

    # ------------------------------------------------------------------ admin

    def test_list_reviews(self):
        response = self.client.get("/api/admin/reviews")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 4
        assert [r["id"] for r in data["items"]] == ["rejected-1", "approved-1", "pending-1", "flagged-1"]

    def test_list_filters(self):
        data = self.client.get("/api/admin/reviews", params={"status": "flagged"}).json()
        assert [r["id"] for r in data["items"]] == ["flagged-1"]
        assert data["items"][0]["suspicion_flags"] == ["burst_submission"]

        data = self.client.get("/api/admin/reviews", params={"search": "great"}).json()
        assert [r["id"] for r in data["items"]] == ["flagged-1"]

        data = self.client.get("/api/admin/reviews", params={"sentiment": "positive"}).json()
        assert [r["id"] for r in data["items"]] == ["approved-1"]

    def test_list_sort_and_pagination(self):
        data = self.client.get(
            "/api/admin/reviews",
            params={"sort": "rating", "order": "asc", "page": 1, "page_size": 2},
        ).json()
        assert [r["rating"] for r in data["items"]] == [1, 3]
        assert data["pages"] == 2

    def test_list_rejects_bad_params(self):
        assert self.client.get("/api/admin/reviews", params={"status": "archived"}).status_code == 422
        assert self.client.get("/api/admin/reviews", params={"sort": "helpful"}).status_code == 422
        assert self.client.get("/api/admin/reviews", params={"page_size": 500}).status_code == 422

    def test_stats(self):
        data = self.client.get("/api/admin/reviews/stats").json()
        assert data == {
            "total": 4,
            "pending": 2,
            "approved": 1,
            "rejected": 1,
            "flagged": 1,
            "average_rating": 3.25,
        }

    def test_get_review(self):
        response = self.client.get("/api/admin/reviews/approved-1")
        assert response.status_code == 200
        assert response.json()["sentiment"] == "positive"

    def test_get_unknown_review(self):
        assert self.client.get("/api/admin/reviews/missing").status_code == 404

    def test_approve_flagged_review(self):
        response = self.client.post(
            "/api/admin/reviews/flagged-1/transition",
            json={"target_status": "approved", "moderator_id": "mod-1"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["moderator_id"] == "mod-1"
        assert self.repo.get("flagged-1").status is ReviewStatus.APPROVED

    def test_terminal_transition_conflicts(self):
        response = self.client.post(
            "/api/admin/reviews/approved-1/transition",
            json={"target_status": "rejected", "moderator_id": "mod-1"},
        )
        assert response.status_code == 409
        assert "approved" in response.json()["detail"]

    def test_transition_without_moderator_conflicts(self):
        response = self.client.post(
            "/api/admin/reviews/pending-1/transition",
            json={"target_status": "approved"},
        )
        assert response.status_code == 409
        assert self.repo.get("pending-1").status is ReviewStatus.PENDING

    def test_transition_unknown_review(self):
        response = self.client.post(
            "/api/admin/reviews/missing/transition",
            json={"target_status": "approved", "moderator_id": "mod-1"},
        )
        assert response.status_code == 404

    # ----------------------------------------------------------------- public

    def submission(self, **overrides) -> dict:
        body = {
            "author_id": "user-9",
            "rating": 4,
            "title": "Solid night out",
            "content": "Enjoyed the venue and sound quality, would return.",
        }
        body.update(overrides)
        return body

    def test_submit_review(self):
        response = self.client.post("/api/events/evt-1/reviews", json=self.submission(atmosphere_rating=4))
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["event_id"] == "evt-1"
        assert data["suspicion_flags"] == []
        assert self.repo.get(data["id"]).atmosphere_rating == 4
        assert len(self.repo.list_all()) == 5

    def test_submit_rating_out_of_range(self):
        response = self.client.post("/api/events/evt-1/reviews", json=self.submission(rating=6))
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "rating"
        assert len(self.repo.list_all()) == 4

    def test_submit_blank_content(self):
        response = self.client.post("/api/events/evt-1/reviews", json=self.submission(content="   "))
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "content"
        assert len(self.repo.list_all()) == 4

    def test_public_reviews_only_approved(self):
        data = self.client.get("/api/events/evt-1/reviews").json()
        assert [r["id"] for r in data["items"]] == ["approved-1"]
        assert "suspicion_score" not in data["items"][0]
        assert "author_id" not in data["items"][0]

    def test_event_summary(self):
        data = self.client.get("/api/events/evt-1/reviews/summary").json()
        assert data["review_count"] == 1
        assert data["average_rating"] == 4.0
        assert data["rating_counts"] == {"5": 0, "4": 1, "3": 0, "2": 0, "1": 0}
        assert data["sentiment_counts"]["positive"] == 1
        assert data["average_atmosphere"] == 5.0

    # ----------------------------------------------------------------- health

    def test_health(self):
        response = self.client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["sentiment"] == "disabled"
