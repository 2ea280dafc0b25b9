"""One active recommendation request per prompt selection."""

from __future__ import annotations

import asyncio

import structlog

from .client import RecommendationClient, RecommendationResult
from .stream import ProgressCallback

logger = structlog.get_logger()


class PromptLoader:
    """Load recommendations, superseding any request still in flight.

    Each call to :meth:`load` starts a new generation. The previous task is
    cancelled, its progress callbacks are dropped and its result, if any,
    is discarded.
    """

    def __init__(self, client: RecommendationClient) -> None:
        self.client = client
        self._generation = 0
        self._task: asyncio.Task[RecommendationResult] | None = None

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def cancel(self) -> None:
        """Abandon the in-flight request, if any."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def load(
        self,
        prompt: str,
        on_progress: ProgressCallback | None = None,
    ) -> RecommendationResult | None:
        """Fetch recommendations for ``prompt``.

        Returns:
            The result, or None if a newer call superseded this one.
        """
        self.cancel()
        generation = self._generation

        def _progress(value: float) -> None:
            if on_progress is not None and self.is_current(generation):
                on_progress(value)

        task = asyncio.create_task(self.client.recommend(prompt, on_progress=_progress))
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if not self.is_current(generation):
                logger.info("recommendation_superseded", prompt=prompt, generation=generation)
                return None
            raise

        if not self.is_current(generation):
            logger.info("recommendation_discarded", prompt=prompt, generation=generation)
            return None
        self._task = None
        return result
