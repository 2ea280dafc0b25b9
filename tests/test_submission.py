"""Tests for ordered rating submission."""

import asyncio

import pytest

from font_evaluator.core.errors import FeedbackStoreError
from font_evaluator.models import ConfirmationState, RatingRecord, Score
from font_evaluator.services.reconciler import SessionScoreSet
from font_evaluator.services.storage import EventMetadata, FeedbackStore
from font_evaluator.services.submission import RatingSubmitter


class MemoryStore(FeedbackStore):
    """In-memory store that records every write."""

    def __init__(self) -> None:
        self.records: dict[tuple[str, str, str], RatingRecord] = {}
        self.writes: list[RatingRecord] = []
        self.metadata: list[EventMetadata | None] = []
        self.fail = False
        self.gate: asyncio.Event | None = None

    async def get_ratings(self, username):
        grouped: dict[str, list[RatingRecord]] = {}
        for record in self.records.values():
            if record.username == username:
                grouped.setdefault(record.prompt_name, []).append(record)
        return grouped

    async def upsert(self, record, metadata=None):
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise FeedbackStoreError("upsert", "disk full")
        self.writes.append(record)
        self.metadata.append(metadata)
        is_new = record.key not in self.records
        self.records[record.key] = record
        return is_new

    async def delete_prompt(self, username, prompt_name):
        keys = [k for k in self.records if k[0] == username and k[1] == prompt_name]
        for key in keys:
            del self.records[key]
        return bool(keys)


class TestRatingSubmitter:
    """Tests for RatingSubmitter."""

    async def test_confirms_successful_write(self, make_record):
        store = MemoryStore()
        session = SessionScoreSet()

        outcome = await RatingSubmitter(store, session).submit(make_record("a"))

        assert outcome.state is ConfirmationState.CONFIRMED
        assert outcome.is_new is True
        assert session.get("a").state is ConfirmationState.CONFIRMED

    async def test_last_submitted_rating_wins(self, make_record):
        """Queued writes for the same font are superseded by the newest one."""
        store = MemoryStore()
        session = SessionScoreSet()
        submitter = RatingSubmitter(store, session)

        outcomes = await asyncio.gather(
            submitter.submit(make_record("a", "good")),
            submitter.submit(make_record("a", "average", "ok")),
            submitter.submit(make_record("a", "bad", "no")),
        )

        assert outcomes[1].superseded is True
        assert store.records[("alice", "fonts from helvetica", "a")].score is Score.BAD
        assert store.writes[-1].score is Score.BAD
        assert session.get("a").record.score is Score.BAD
        assert session.get("a").state is ConfirmationState.CONFIRMED

    async def test_different_fonts_are_independent(self, make_record):
        store = MemoryStore()
        submitter = RatingSubmitter(store, SessionScoreSet())

        outcomes = await asyncio.gather(
            submitter.submit(make_record("a")), submitter.submit(make_record("b"))
        )

        assert not any(o.superseded for o in outcomes)
        assert len(store.records) == 2

    async def test_failed_write_is_flagged(self, make_record):
        store = MemoryStore()
        store.fail = True
        session = SessionScoreSet()
        submitter = RatingSubmitter(store, session)

        with pytest.raises(FeedbackStoreError):
            await submitter.submit(make_record("a", "bad", "no"))

        assert session.get("a").state is ConfirmationState.FAILED
        assert session.get("a").record.score is Score.BAD

    async def test_retry_failed(self, make_record):
        store = MemoryStore()
        store.fail = True
        session = SessionScoreSet()
        submitter = RatingSubmitter(store, session)
        with pytest.raises(FeedbackStoreError):
            await submitter.submit(make_record("a"))

        store.fail = False
        outcomes = await submitter.retry_failed()

        assert [o.state for o in outcomes] == [ConfirmationState.CONFIRMED]
        assert session.get("a").state is ConfirmationState.CONFIRMED
        assert len(store.records) == 1

    async def test_retry_keeps_metadata(self, make_record):
        store = MemoryStore()
        store.fail = True
        submitter = RatingSubmitter(store, SessionScoreSet())
        metadata = EventMetadata(style_name="Bold", foundry_name="Monotype")
        with pytest.raises(FeedbackStoreError):
            await submitter.submit(make_record("a"), metadata)

        store.fail = False
        await submitter.retry_failed()

        assert store.metadata == [metadata]

    async def test_settle_drops_queued_writes(self, make_record):
        """The running write finishes, the queued one is never sent."""
        store = MemoryStore()
        store.gate = asyncio.Event()
        submitter = RatingSubmitter(store, SessionScoreSet())
        running = asyncio.create_task(submitter.submit(make_record("a", "good")))
        await asyncio.sleep(0)
        queued = asyncio.create_task(submitter.submit(make_record("a", "bad", "no")))
        await asyncio.sleep(0)

        settling = asyncio.create_task(submitter.settle("alice", "fonts from helvetica"))
        await asyncio.sleep(0)
        assert not settling.done()
        store.gate.set()
        await settling

        assert running.done()
        assert (await running).state is ConfirmationState.CONFIRMED
        assert (await queued).superseded is True
        assert [w.score for w in store.writes] == [Score.GOOD]

    async def test_settle_ignores_other_prompts(self, make_record):
        store = MemoryStore()
        submitter = RatingSubmitter(store, SessionScoreSet())
        await submitter.submit(make_record("a", prompt="other prompt"))

        await submitter.settle("alice", "fonts from helvetica")
        outcome = await submitter.submit(make_record("a", prompt="other prompt"))

        assert outcome.superseded is False
        assert len(store.writes) == 2
