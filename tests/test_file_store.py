"""Tests for the JSON-file feedback store."""

import json

from font_evaluator.models import Score
from font_evaluator.services.storage import JsonFeedbackStore

HELVETICA = "fonts from helvetica"


class TestJsonFeedbackStore:
    """Tests for JsonFeedbackStore."""

    def test_creates_empty_file(self, tmp_path):
        path = tmp_path / "nested" / "feedback.json"

        JsonFeedbackStore(path)

        assert json.loads(path.read_text()) == {}

    def test_resets_corrupt_file(self, tmp_path):
        path = tmp_path / "feedback.json"
        path.write_text("{not json")

        JsonFeedbackStore(path)

        assert json.loads(path.read_text()) == {}

    def test_keeps_valid_file(self, tmp_path):
        path = tmp_path / "feedback.json"
        path.write_text(json.dumps({"alice": {}}))

        JsonFeedbackStore(path)

        assert json.loads(path.read_text()) == {"alice": {}}

    async def test_upsert_is_idempotent_per_font(self, tmp_path, make_record):
        """Saving the same font twice keeps one record with the latest score."""
        store = JsonFeedbackStore(tmp_path / "feedback.json")

        assert await store.upsert(make_record("a", "good")) is True
        assert await store.upsert(make_record("a", "bad", "too heavy")) is False

        ratings = await store.get_ratings("alice")
        assert len(ratings[HELVETICA]) == 1
        assert ratings[HELVETICA][0].score is Score.BAD
        assert ratings[HELVETICA][0].reason == "too heavy"

    async def test_file_shape(self, tmp_path, make_record):
        path = tmp_path / "feedback.json"
        store = JsonFeedbackStore(path)

        await store.upsert(make_record("a", "average", "fine", prompt_id=1))

        data = json.loads(path.read_text())
        item = data["alice"][HELVETICA][0]
        assert item["md5"] == "a"
        assert item["score"] == "Average Match"
        assert item["promptID"] == 1

    async def test_partitioned_by_username(self, tmp_path, make_record):
        store = JsonFeedbackStore(tmp_path / "feedback.json")
        await store.upsert(make_record("a", username="alice"))
        await store.upsert(make_record("a", "bad", "no", username="bob"))

        alice = await store.get_history("alice")
        bob = await store.get_history("bob")

        assert [r.score for r in alice] == [Score.GOOD]
        assert [r.score for r in bob] == [Score.BAD]
        assert await store.get_ratings("carol") == {}

    async def test_delete_prompt(self, tmp_path, make_record):
        store = JsonFeedbackStore(tmp_path / "feedback.json")
        await store.upsert(make_record("a"))
        await store.upsert(make_record("b", prompt="other prompt"))

        assert await store.delete_prompt("alice", HELVETICA) is True
        assert await store.delete_prompt("alice", HELVETICA) is False

        ratings = await store.get_ratings("alice")
        assert list(ratings) == ["other prompt"]

    async def test_invalid_records_are_skipped(self, tmp_path):
        path = tmp_path / "feedback.json"
        path.write_text(
            json.dumps(
                {
                    "alice": {
                        HELVETICA: [
                            {"md5": "a", "score": "Good Match", "familyName": "A"},
                            {"score": "Good Match"},
                            {"md5": "c", "score": "Great"},
                            "junk",
                        ]
                    }
                }
            )
        )
        store = JsonFeedbackStore(path)

        history = await store.get_history("alice")

        assert [r.font_key for r in history] == ["a"]
        assert history[0].username == "alice"
        assert history[0].prompt_name == HELVETICA
