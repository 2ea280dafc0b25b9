"""Tests for the HTTP feedback store client."""

import json

import httpx
import pytest

from font_evaluator.core.errors import FeedbackStoreError
from font_evaluator.models import Score
from font_evaluator.services.storage import HttpFeedbackStore

BASE_URL = "http://feedback.test"
HELVETICA = "fonts from helvetica"


def make_store(handler, max_retries: int = 3) -> HttpFeedbackStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpFeedbackStore(BASE_URL, max_retries=max_retries, client=client)


class TestHttpFeedbackStore:
    """Tests for HttpFeedbackStore."""

    async def test_get_ratings(self, make_record):
        wire = make_record("a", "bad", "no").to_wire()
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={HELVETICA: [wire]})

        store = make_store(handler)
        ratings = await store.get_ratings("alice")
        await store.close()

        assert seen[0].url.path == "/api/feedback"
        assert seen[0].url.params["username"] == "alice"
        assert ratings[HELVETICA][0].score is Score.BAD
        assert ratings[HELVETICA][0].font_key == "a"

    async def test_upsert_posts_feedback(self, make_record):
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True, "isNew": True})

        store = make_store(handler)

        assert await store.upsert(make_record("a")) is True
        assert bodies[0]["promptName"] == HELVETICA
        assert bodies[0]["feedbackData"]["md5"] == "a"
        assert bodies[0]["feedbackData"]["username"] == "alice"

    async def test_delete_prompt(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "removed": False})

        store = make_store(handler)

        assert await store.delete_prompt("alice", HELVETICA) is False
        assert seen[0].method == "DELETE"
        assert seen[0].url.params["username"] == "alice"
        assert "helvetica" in seen[0].url.path

    async def test_retries_network_errors(self):
        attempts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            if len(attempts) < 2:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={})

        store = make_store(handler)

        assert await store.get_ratings("alice") == {}
        assert len(attempts) == 2

    async def test_gives_up_after_max_retries(self):
        attempts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            raise httpx.ConnectError("refused", request=request)

        store = make_store(handler, max_retries=2)

        with pytest.raises(FeedbackStoreError) as exc_info:
            await store.get_ratings("alice")

        assert exc_info.value.operation == "read"
        assert len(attempts) == 2

    async def test_status_error_is_not_retried(self, make_record):
        attempts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            return httpx.Response(500, json={"error": "Failed to save feedback"})

        store = make_store(handler)

        with pytest.raises(FeedbackStoreError, match="status 500"):
            await store.upsert(make_record())

        assert len(attempts) == 1
