"""Evaluation session orchestration for one evaluator."""

from __future__ import annotations

import structlog

from font_evaluator.core.catalog import PromptCatalog
from font_evaluator.core.errors import FeedbackStoreError, ReasonRequiredError
from font_evaluator.models import RatingRecord, RecommendationCandidate, Score
from font_evaluator.services.reconciler import ScoreReconciler, ScoreSummary, SessionScoreSet
from font_evaluator.services.recommendation import (
    ProgressCallback,
    PromptLoader,
    RecommendationClient,
)
from font_evaluator.services.storage import EventMetadata, FeedbackStore
from font_evaluator.services.submission import RatingSubmitter, SubmissionOutcome

logger = structlog.get_logger()


class EvaluationSession:
    """Prompt selection, rating and reset for one explicitly named user.

    Nothing here reads an ambient "current user": every store call carries
    ``username``.
    """

    def __init__(
        self,
        username: str,
        client: RecommendationClient,
        store: FeedbackStore,
        catalog: PromptCatalog | None = None,
        email: str = "",
    ) -> None:
        """Initialize the session.

        Args:
            username: Evaluator identity; partitions all stored ratings.
            client: Recommendation client.
            store: Feedback store backend.
            catalog: Prompt catalog used for display ids.
            email: Optional evaluator email kept on each record.
        """
        if not username:
            msg = "username is required"
            raise ValueError(msg)
        self.username = username
        self.email = email
        self.store = store
        self.catalog = catalog or PromptCatalog()
        self.loader = PromptLoader(client)
        self.scores = SessionScoreSet()
        self.submitter = RatingSubmitter(store, self.scores)
        self.reconciler = ScoreReconciler()

        self.prompt = ""
        self.candidates: list[RecommendationCandidate] = []
        self._history: list[RatingRecord] = []
        self._history_marker: int | None = None

    async def select_prompt(
        self,
        prompt: str,
        on_progress: ProgressCallback | None = None,
    ) -> list[RecommendationCandidate] | None:
        """Make ``prompt`` active and load its recommendations.

        Returns:
            The ranked candidates, or None if another selection superseded
            this one while it was loading.
        """
        self.prompt = prompt
        self.candidates = []
        self.scores.clear()
        logger.info("prompt_selected", username=self.username, prompt=prompt)

        result = await self.loader.load(prompt, on_progress)
        if result is None or self.prompt != prompt:
            return None
        self.candidates = result.candidates
        await self.refresh_history()
        if self.prompt != prompt:
            return None
        return self.candidates

    async def refresh_history(self) -> list[RatingRecord]:
        """Re-read the user's durable ratings."""
        marker = self.scores.refresh_marker
        self._history = await self.store.get_history(self.username)
        self._history_marker = marker
        logger.debug("history_refreshed", username=self.username, records=len(self._history))
        return self._history

    def build_record(
        self,
        candidate: RecommendationCandidate,
        score: Score | str,
        reason: str = "",
    ) -> RatingRecord:
        """Validate a rating action and turn it into a record.

        Raises:
            ValueError: If no prompt is active or the score label is unknown.
            ReasonRequiredError: If an average/bad rating has no reason.
        """
        if not self.prompt:
            msg = "Select a prompt before rating"
            raise ValueError(msg)
        score = Score.normalize(score)
        reason = reason.strip()
        if score.requires_reason and not reason:
            raise ReasonRequiredError(score.value)
        if not candidate.md5:
            logger.warning(
                "font_key_fallback",
                family=candidate.family_name,
                prompt=self.prompt,
            )
        return RatingRecord(
            prompt_id=self.catalog.prompt_id(self.prompt),
            prompt_name=self.prompt,
            font_key=candidate.font_key,
            family_name=candidate.family_name,
            score=score,
            reason=reason,
            username=self.username,
            email=self.email,
        )

    async def rate(
        self,
        candidate: RecommendationCandidate,
        score: Score | str,
        reason: str = "",
        metadata: EventMetadata | None = None,
    ) -> SubmissionOutcome:
        """Rate a candidate of the active prompt and persist the rating."""
        record = self.build_record(candidate, score, reason)
        if metadata is None:
            metadata = EventMetadata(
                style_name=candidate.style_name,
                foundry_name=candidate.foundry_name,
                font_data=candidate.raw,
            )
        return await self.submitter.submit(record, metadata)

    async def reset_prompt(self, prompt: str | None = None) -> bool:
        """Delete all of the user's ratings for a prompt.

        Pending writes for the prompt are dropped or awaited first. The
        session set is only cleared once the store confirms the delete.
        """
        prompt = prompt or self.prompt
        if not prompt:
            msg = "No prompt to reset"
            raise ValueError(msg)
        await self.submitter.settle(self.username, prompt)
        removed = await self.store.delete_prompt(self.username, prompt)
        if prompt == self.prompt:
            self.scores.mark_reset()
        logger.info("prompt_reset", username=self.username, prompt=prompt, removed=removed)
        try:
            await self.refresh_history()
        except FeedbackStoreError as exc:
            logger.warning("history_refresh_failed", username=self.username, error=str(exc))
        return removed

    def effective_ratings(self) -> list[RatingRecord]:
        return self.reconciler.reconcile(
            self._history,
            self.scores,
            self.prompt,
            fetched_at_marker=self._history_marker,
        )

    def summary(self) -> ScoreSummary:
        return self.reconciler.summarize(
            self.effective_ratings(),
            total_candidates=len(self.candidates),
            session=self.scores,
        )

    def candidate(self, font_key: str) -> RecommendationCandidate:
        """Find a loaded candidate by font key or 1-based rank."""
        for candidate in self.candidates:
            if candidate.font_key == font_key:
                return candidate
        if font_key.isdigit() and 1 <= int(font_key) <= len(self.candidates):
            return self.candidates[int(font_key) - 1]
        msg = f"No candidate '{font_key}' for the active prompt"
        raise KeyError(msg)
