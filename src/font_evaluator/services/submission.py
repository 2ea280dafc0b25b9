"""Ordered rating submission with per-record confirmation state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog

from font_evaluator.core.errors import FeedbackStoreError
from font_evaluator.models import ConfirmationState, RatingRecord
from font_evaluator.services.reconciler import SessionScoreSet
from font_evaluator.services.storage import EventMetadata, FeedbackStore

logger = structlog.get_logger()

RecordKey = tuple[str, str, str]


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of one submission.

    ``superseded`` is set when a newer rating for the same font was queued
    before this one reached the store; such a write is dropped.
    """

    record: RatingRecord
    state: ConfirmationState
    is_new: bool | None = None
    superseded: bool = False


class RatingSubmitter:
    """Write ratings so that the last one submitted per key is the one kept.

    Writes for the same (username, prompt, font key) are serialized by a
    lock. A write still waiting for the lock when a newer rating for the
    same key arrives is dropped instead of sent.
    """

    def __init__(self, store: FeedbackStore, session: SessionScoreSet) -> None:
        self.store = store
        self.session = session
        self._locks: dict[RecordKey, asyncio.Lock] = {}
        self._latest: dict[RecordKey, int] = {}

    async def submit(
        self,
        record: RatingRecord,
        metadata: EventMetadata | None = None,
    ) -> SubmissionOutcome:
        """Record the rating in the session as pending and persist it.

        Raises:
            FeedbackStoreError: If the store rejects the write. The session
                entry stays in place, marked ``failed``.
        """
        entry = self.session.record(record, metadata=metadata)
        key = record.key
        self._latest[key] = entry.sequence
        lock = self._locks.setdefault(key, asyncio.Lock())

        async with lock:
            if self._latest.get(key) != entry.sequence:
                logger.debug("rating_superseded", font=record.font_key, prompt=record.prompt_name)
                return SubmissionOutcome(record, ConfirmationState.PENDING, superseded=True)
            try:
                is_new = await self.store.upsert(record, metadata)
            except FeedbackStoreError:
                self.session.mark(record.font_key, ConfirmationState.FAILED, entry.sequence)
                logger.warning(
                    "rating_submit_failed",
                    font=record.font_key,
                    prompt=record.prompt_name,
                    score=record.score.short,
                )
                raise

        self.session.mark(record.font_key, ConfirmationState.CONFIRMED, entry.sequence)
        logger.debug("rating_confirmed", font=record.font_key, is_new=is_new)
        return SubmissionOutcome(record, ConfirmationState.CONFIRMED, is_new=is_new)

    async def retry_failed(self, prompt: str | None = None) -> list[SubmissionOutcome]:
        """Resubmit every session rating currently marked ``failed``."""
        failed = [
            entry for entry in self.session.entries(prompt) if entry.state is ConfirmationState.FAILED
        ]
        return list(
            await asyncio.gather(*(self.submit(entry.record, entry.metadata) for entry in failed))
        )

    async def settle(self, username: str, prompt: str) -> None:
        """Drop queued writes for a prompt and wait for the running ones.

        After this returns, no write for ``(username, prompt)`` submitted
        earlier can still reach the store.
        """
        keys = [key for key in self._locks if key[:2] == (username, prompt)]
        for key in keys:
            # Sequences start at 1, so queued writes no longer match
            self._latest[key] = 0
        for key in keys:
            async with self._locks[key]:
                pass
        if keys:
            logger.debug("submissions_settled", username=username, prompt=prompt, fonts=len(keys))
