"""Tests for superseding recommendation loads."""

import asyncio

from font_evaluator.models import RecommendationCandidate
from font_evaluator.services.recommendation import (
    PromptLoader,
    RecommendationClient,
    RecommendationResult,
)


class GatedClient(RecommendationClient):
    """Client whose requests finish only when their gate is opened."""

    def __init__(self) -> None:
        self.gates: dict[str, asyncio.Event] = {}

    async def recommend(self, prompt, on_progress=None):
        gate = self.gates.setdefault(prompt, asyncio.Event())
        if on_progress is not None:
            on_progress(10)
        await gate.wait()
        if on_progress is not None:
            on_progress(100)
        return RecommendationResult(
            payload={}, candidates=[RecommendationCandidate(family_name=prompt, md5=prompt)]
        )


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


class TestPromptLoader:
    """Tests for PromptLoader."""

    async def test_returns_result(self):
        client = GatedClient()
        client.gates["a"] = asyncio.Event()
        client.gates["a"].set()

        result = await PromptLoader(client).load("a")

        assert result is not None
        assert result.candidates[0].family_name == "a"

    async def test_newer_load_supersedes_older(self):
        """The first load returns None and its later progress is dropped."""
        client = GatedClient()
        loader = PromptLoader(client)
        progress_a: list[float] = []
        progress_b: list[float] = []

        first = asyncio.create_task(loader.load("a", progress_a.append))
        await settle()
        second = asyncio.create_task(loader.load("b", progress_b.append))
        await settle()
        client.gates["a"].set()
        client.gates["b"].set()

        assert await second is not None
        assert await first is None
        assert progress_a == [10]
        assert progress_b == [10, 100]

    async def test_cancel_abandons_in_flight_load(self):
        client = GatedClient()
        loader = PromptLoader(client)

        task = asyncio.create_task(loader.load("a"))
        await settle()
        loader.cancel()

        assert await task is None
        assert loader.generation == 2
