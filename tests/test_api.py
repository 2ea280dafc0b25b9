"""Tests for the feedback API."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from font_evaluator.api import create_app
from font_evaluator.core.errors import FeedbackStoreError
from font_evaluator.services.auth import UserDirectory
from font_evaluator.services.storage import (
    DocumentFeedbackStore,
    HttpFeedbackStore,
    JsonFeedbackStore,
)

HELVETICA = "fonts from helvetica"


@pytest.fixture
def users(tmp_path):
    path = tmp_path / "user.json"
    path.write_text(
        json.dumps({"users": [{"username": "alice", "password": "secret", "email": "a@x.io"}]})
    )
    return UserDirectory(path)


@pytest.fixture
def client(tmp_path, users):
    app = create_app(store=JsonFeedbackStore(tmp_path / "feedback.json"), users=users)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_client(tmp_path, users):
    store = DocumentFeedbackStore(f"duckdb:///{tmp_path / 'scores.duckdb'}")
    with TestClient(create_app(store=store, users=users)) as test_client:
        yield test_client


def feedback(md5: str = "a", score: str = "Good Match", reason: str = "") -> dict:
    return {
        "promptName": HELVETICA,
        "feedbackData": {
            "promptID": 1,
            "md5": md5,
            "familyName": "Helvetica Now",
            "score": score,
            "reason": reason,
            "username": "alice",
        },
    }


class TestHealthAndLogin:
    """Tests for /health and /api/login."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "OK"

    def test_login_success(self, client):
        response = client.post("/api/login", json={"username": "alice", "password": "secret"})

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["user"] == {"username": "alice", "email": "a@x.io"}

    def test_login_missing_fields(self, client):
        response = client.post("/api/login", json={"username": "alice"})

        assert response.status_code == 400

    def test_login_invalid(self, client):
        response = client.post("/api/login", json={"username": "alice", "password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid username or password"}


class TestFeedbackRoutes:
    """Tests for /api/feedback."""

    def test_get_requires_username(self, client):
        assert client.get("/api/feedback").status_code == 400

    def test_save_and_read(self, client):
        first = client.post("/api/feedback", json=feedback())
        second = client.post("/api/feedback", json=feedback(score="Bad Match", reason="wide"))

        assert first.json()["isNew"] is True
        assert second.json()["isNew"] is False

        data = client.get("/api/feedback", params={"username": "alice"}).json()
        assert list(data) == [HELVETICA]
        assert len(data[HELVETICA]) == 1
        assert data[HELVETICA][0]["score"] == "Bad Match"

    def test_save_requires_username(self, client):
        body = feedback()
        del body["feedbackData"]["username"]

        assert client.post("/api/feedback", json=body).status_code == 400

    def test_save_rejects_bad_score(self, client):
        assert client.post("/api/feedback", json=feedback(score="Great")).status_code == 400

    def test_save_requires_reason_for_bad_score(self, client):
        response = client.post("/api/feedback", json=feedback(score="Bad Match", reason=""))

        assert response.status_code == 400
        assert "reason is required" in response.json()["error"]
        assert client.get("/api/feedback", params={"username": "alice"}).json() == {}

    def test_delete_prompt(self, client):
        client.post("/api/feedback", json=feedback())

        response = client.delete(f"/api/feedback/{HELVETICA}", params={"username": "alice"})

        assert response.json()["success"] is True
        assert response.json()["removed"] is True
        assert client.get("/api/feedback", params={"username": "alice"}).json() == {}

    def test_font_score_routes_need_db_backend(self, client):
        assert client.get("/api/font-scores", params={"username": "alice"}).status_code == 404

    def test_store_failure_maps_to_500(self, tmp_path, users):
        class BrokenStore(JsonFeedbackStore):
            async def get_ratings(self, username):
                raise FeedbackStoreError("read", "disk gone")

        store = BrokenStore(tmp_path / "broken.json")
        with TestClient(create_app(store=store, users=users)) as test_client:
            response = test_client.get("/api/feedback", params={"username": "alice"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to read feedback"}

    def test_http_backend_is_rejected(self, users):
        store = HttpFeedbackStore("http://other.test", client=httpx.AsyncClient())

        with pytest.raises(ValueError, match="http backend"):
            create_app(store=store, users=users)


class TestFontScoreRoutes:
    """Tests for /api/font-scores on the database backend."""

    def score(self, **kwargs) -> dict:
        body = {
            "prompt": HELVETICA,
            "font_family": "Helvetica Now",
            "font_md5": "a",
            "score": "Good Match",
            "username": "alice",
            "user_agent": "pytest",
        }
        return {**body, **kwargs}

    def test_create_and_list(self, db_client):
        response = db_client.post("/api/font-scores", json=self.score())

        assert response.status_code == 201
        assert response.json()["success"] is True

        events = db_client.get("/api/font-scores", params={"username": "alice"}).json()
        assert len(events) == 1
        assert events[0]["score"] == "good"
        assert events[0]["user_agent"] == "pytest"

    def test_stats(self, db_client):
        db_client.post("/api/font-scores", json=self.score())
        db_client.post(
            "/api/font-scores", json=self.score(font_md5="b", score="bad", reason="too wide")
        )

        stats = db_client.get("/api/font-scores/stats", params={"username": "alice"}).json()

        assert stats["total_scores"] == 2
        assert [d["score"] for d in stats["score_distribution"]] == ["bad", "good"]

    def test_by_prompt(self, db_client):
        db_client.post("/api/font-scores", json=self.score())
        db_client.post("/api/font-scores", json=self.score(prompt="other prompt"))

        events = db_client.get(
            "/api/font-scores/prompt/other prompt", params={"username": "alice"}
        ).json()

        assert [e["prompt"] for e in events] == ["other prompt"]

    def test_delete(self, db_client):
        event_id = db_client.post("/api/font-scores", json=self.score()).json()["id"]

        assert db_client.delete(f"/api/font-scores/{event_id}").status_code == 200
        missing = db_client.delete(f"/api/font-scores/{event_id}")
        assert missing.status_code == 404
        assert missing.json()["success"] is False

    def test_posting_twice_keeps_one_rating(self, db_client):
        first = db_client.post("/api/font-scores", json=self.score())
        second = db_client.post(
            "/api/font-scores", json=self.score(score="Bad Match", reason="too heavy")
        )

        assert first.json()["isNew"] is True
        assert second.json()["isNew"] is False
        assert second.json()["id"] == first.json()["id"]

        data = db_client.get("/api/feedback", params={"username": "alice"}).json()
        assert [(r["md5"], r["score"]) for r in data[HELVETICA]] == [("a", "Bad Match")]
        events = db_client.get("/api/font-scores", params={"username": "alice"}).json()
        assert len(events) == 1

    def test_reason_required_for_bad_score(self, db_client):
        response = db_client.post("/api/font-scores", json=self.score(score="bad", reason=" "))

        assert response.status_code == 400
        assert db_client.get("/api/font-scores", params={"username": "alice"}).json() == []

    def test_invalid_score(self, db_client):
        assert db_client.post("/api/font-scores", json=self.score(score="meh")).status_code == 422

    def test_feedback_routes_share_the_store(self, db_client):
        db_client.post("/api/feedback", json=feedback())

        events = db_client.get("/api/font-scores", params={"username": "alice"}).json()

        assert [e["font_md5"] for e in events] == ["a"]
