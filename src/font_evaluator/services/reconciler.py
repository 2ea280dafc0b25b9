"""Merge durable ratings with the current session into one view."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from font_evaluator.models import ConfirmationState, RatingRecord, Score
from font_evaluator.services.storage.base import EventMetadata

logger = structlog.get_logger()


@dataclass
class SessionEntry:
    """A session rating and whether the store has acknowledged it."""

    record: RatingRecord
    state: ConfirmationState = ConfirmationState.PENDING
    sequence: int = 0
    metadata: EventMetadata | None = None


class SessionScoreSet:
    """Ratings made since the active prompt was loaded, keyed by font key.

    ``refresh_marker`` increments every time a reset succeeds, so a durable
    snapshot taken before the reset can be recognised as stale.
    """

    def __init__(self) -> None:
        self._entries: dict[str, SessionEntry] = {}
        self._sequence = 0
        self.refresh_marker = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, font_key: object) -> bool:
        return font_key in self._entries

    def record(
        self,
        record: RatingRecord,
        state: ConfirmationState = ConfirmationState.PENDING,
        metadata: EventMetadata | None = None,
    ) -> SessionEntry:
        """Add or replace the rating for ``record.font_key``."""
        self._sequence += 1
        entry = SessionEntry(
            record=record, state=state, sequence=self._sequence, metadata=metadata
        )
        self._entries[record.font_key] = entry
        return entry

    def get(self, font_key: str) -> SessionEntry | None:
        return self._entries.get(font_key)

    def mark(
        self,
        font_key: str,
        state: ConfirmationState,
        sequence: int | None = None,
    ) -> bool:
        """Set the confirmation state of an entry.

        When ``sequence`` is given, the entry is only updated if it has not
        been replaced by a newer rating since.
        """
        entry = self._entries.get(font_key)
        if entry is None:
            return False
        if sequence is not None and entry.sequence != sequence:
            return False
        entry.state = state
        return True

    def entries(self, prompt: str | None = None) -> list[SessionEntry]:
        return [
            entry
            for entry in self._entries.values()
            if prompt is None or entry.record.prompt_name == prompt
        ]

    def records(self, prompt: str | None = None) -> list[RatingRecord]:
        return [entry.record for entry in self.entries(prompt)]

    def clear(self) -> None:
        self._entries.clear()

    def mark_reset(self) -> None:
        """Drop all entries after a successful reset of the active prompt."""
        self.clear()
        self.refresh_marker += 1


def _percent(count: int, total: int) -> int:
    """Percentage rounded half up; 0 for an empty denominator."""
    if total <= 0:
        return 0
    return math.floor(count * 100 / total + 0.5)


@dataclass(frozen=True)
class ScoreSummary:
    """Counts and percentages for the effective ratings of one prompt."""

    total: int
    good: int
    average: int
    bad: int
    total_candidates: int
    pending: int = 0
    failed: int = 0

    @property
    def good_percent(self) -> int:
        return _percent(self.good, self.total)

    @property
    def average_percent(self) -> int:
        return _percent(self.average, self.total)

    @property
    def bad_percent(self) -> int:
        return _percent(self.bad, self.total)

    @property
    def progress(self) -> float:
        """Share of the returned candidates that have an effective rating."""
        if self.total_candidates <= 0:
            return 0.0
        return self.total / self.total_candidates

    @property
    def progress_percent(self) -> int:
        return _percent(self.total, self.total_candidates)

    def count(self, score: Score | str) -> int:
        score = Score.normalize(score)
        return {Score.GOOD: self.good, Score.AVERAGE: self.average, Score.BAD: self.bad}[score]


class ScoreReconciler:
    """Combine durable history and session state for the active prompt."""

    def reconcile(
        self,
        durable: Iterable[RatingRecord],
        session: SessionScoreSet,
        prompt: str,
        fetched_at_marker: int | None = None,
    ) -> list[RatingRecord]:
        """Build the effective, deduplicated rating list for ``prompt``.

        Args:
            durable: The user's persisted ratings, across all prompts.
            session: Ratings made in this session.
            prompt: The active prompt.
            fetched_at_marker: ``session.refresh_marker`` when ``durable`` was
                fetched. A lower value than the current marker means a reset
                happened since, and the durable records are ignored.

        Returns:
            One record per font key; session ratings replace durable ones.
        """
        if not prompt:
            return []

        stale = fetched_at_marker is not None and fetched_at_marker < session.refresh_marker
        effective: dict[str, RatingRecord] = {}
        if stale:
            logger.debug("durable_snapshot_stale", prompt=prompt, marker=fetched_at_marker)
        else:
            for record in durable:
                if record.prompt_name == prompt:
                    effective[record.font_key] = record

        for record in session.records(prompt):
            effective[record.font_key] = record

        return list(effective.values())

    def summarize(
        self,
        effective: list[RatingRecord],
        total_candidates: int,
        session: SessionScoreSet | None = None,
    ) -> ScoreSummary:
        """Derive counts, percentages and progress from an effective list."""
        counts = dict.fromkeys(Score, 0)
        for record in effective:
            counts[Score.normalize(record.score)] += 1

        pending = failed = 0
        if session is not None:
            keys = {record.font_key for record in effective}
            for entry in session.entries():
                if entry.record.font_key not in keys:
                    continue
                if entry.state is ConfirmationState.PENDING:
                    pending += 1
                elif entry.state is ConfirmationState.FAILED:
                    failed += 1

        return ScoreSummary(
            total=len(effective),
            good=counts[Score.GOOD],
            average=counts[Score.AVERAGE],
            bad=counts[Score.BAD],
            total_candidates=total_candidates,
            pending=pending,
            failed=failed,
        )
