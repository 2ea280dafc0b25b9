"""Streaming recommendation client with async support."""

from __future__ import annotations

import asyncio
import hashlib
import json
import random
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from font_evaluator.core.config import DEFAULT_MARKER, DEFAULT_MAX_RECOMMENDATIONS, EvaluatorConfig
from font_evaluator.models import RecommendationCandidate

from .errors import (
    MalformedResultError,
    RecommendationTimeoutError,
    RecommendationTransportError,
)
from .stream import COMPLETE_STATUS, ProgressCallback, consume_stream

logger = structlog.get_logger()

_FAKE_FONTS: tuple[tuple[str, str], ...] = (
    ("Helvetica Now", "Monotype"),
    ("Neue Haas Grotesk", "Linotype"),
    ("Proxima Nova", "Mark Simonson Studio"),
    ("Gotham Narrow", "Hoefler&Co."),
    ("Brown", "Lineto"),
    ("Aperçu", "Colophon Foundry"),
    ("Basis Grotesque", "Colophon Foundry"),
    ("Recoleta", "Latinotype"),
    ("Cooper", "Linotype"),
    ("Freight Text", "GarageFonts"),
    ("Sabon Next", "Linotype"),
    ("Avenir Next", "Linotype"),
    ("Museo Sans Rounded", "exljbris"),
    ("Druk Condensed", "Commercial Type"),
)
_FAKE_STYLES = ("Regular", "Medium", "Bold", "Light", "Black Condensed")


def build_request_body(prompt: str, query: str | None = None) -> dict[str, Any]:
    """Build the JSON body expected by the recommendation endpoint."""
    return {
        "query": query if query is not None else prompt,
        "intermediate_query_enabled": True,
        "prompt": prompt,
        "with_conversion_ranking": "true",
        "faiss_optimized": True,
    }


@dataclass(frozen=True)
class RecommendationResult:
    """Completion payload and the ranked, truncated candidate list."""

    payload: dict[str, Any]
    candidates: list[RecommendationCandidate] = field(default_factory=list)

    @classmethod
    def from_payload(
        cls, payload: dict[str, Any], max_results: int = DEFAULT_MAX_RECOMMENDATIONS
    ) -> RecommendationResult:
        """Parse a completion frame and keep the first ``max_results`` fonts.

        Raises:
            MalformedResultError: If ``results.recommendations`` is not a list.
        """
        results = payload.get("results")
        entries = results.get("recommendations") if isinstance(results, dict) else None
        if not isinstance(entries, list):
            raise MalformedResultError()
        candidates = [
            RecommendationCandidate.from_payload(entry, rank)
            for rank, entry in enumerate(entries[:max_results])
            if isinstance(entry, dict)
        ]
        return cls(payload=payload, candidates=candidates)


class RecommendationClient(ABC):
    """Abstract base class for async recommendation clients."""

    max_results: int = DEFAULT_MAX_RECOMMENDATIONS

    @abstractmethod
    async def recommend(
        self,
        prompt: str,
        on_progress: ProgressCallback | None = None,
    ) -> RecommendationResult:
        """Fetch recommendations for a prompt.

        Args:
            prompt: Natural-language prompt, also sent as the query.
            on_progress: Called with each progress value while streaming.

        Returns:
            RecommendationResult with at most ``max_results`` candidates.
        """

    async def close(self) -> None:  # noqa: B027
        """Close any resources. Override if needed."""


class FakeRecommendationClient(RecommendationClient):
    """Fake async client for dry runs and tests.

    Renders a deterministic stream body and feeds it through the same frame
    decoder as the real client, split into small chunks.
    """

    def __init__(
        self,
        seed: int = 42,
        max_results: int = DEFAULT_MAX_RECOMMENDATIONS,
        marker: str = DEFAULT_MARKER,
        total: int = 12,
        chunk_size: int = 23,
    ) -> None:
        """Initialize fake client.

        Args:
            seed: Random seed for deterministic candidates.
            max_results: Candidates kept after parsing.
            marker: Frame marker used in the rendered body.
            total: Number of candidates in the fake payload.
            chunk_size: Byte size of the simulated transport chunks.
        """
        self.seed = seed
        self.max_results = max_results
        self.marker = marker
        self.total = total
        self.chunk_size = chunk_size
        self.call_count = 0

    async def recommend(
        self,
        prompt: str,
        on_progress: ProgressCallback | None = None,
    ) -> RecommendationResult:
        self.call_count += 1
        body = self._render_body(prompt)

        async def _chunks() -> AsyncIterator[bytes]:
            for start in range(0, len(body), self.chunk_size):
                await asyncio.sleep(0)
                yield body[start : start + self.chunk_size]

        payload = await consume_stream(_chunks(), on_progress, self.marker)
        return RecommendationResult.from_payload(payload, self.max_results)

    def _fake_recommendations(self, prompt: str) -> list[dict[str, Any]]:
        rng = random.Random(f"{self.seed}:{prompt}")  # noqa: S311
        fonts = rng.sample(_FAKE_FONTS, k=min(self.total, len(_FAKE_FONTS)))
        recommendations = []
        for family, foundry in fonts:
            style = rng.choice(_FAKE_STYLES)
            digest = hashlib.md5(f"{family}/{style}".encode(), usedforsecurity=False).hexdigest()
            recommendations.append(
                {
                    "family_name": family,
                    "style_name": style,
                    "foundry_name": foundry,
                    "md5": digest,
                }
            )
        return recommendations

    def _render_body(self, prompt: str) -> bytes:
        lines = []
        for progress in (10, 40, 75, 100):
            lines.append(self.marker + json.dumps({"status": "progress", "progress": progress}))
            lines.append("")
        final = {
            "status": COMPLETE_STATUS,
            "results": {"recommendations": self._fake_recommendations(prompt)},
        }
        lines.append(self.marker + json.dumps(final))
        return ("\n".join(lines) + "\n").encode()


class StreamingRecommendationClient(RecommendationClient):
    """Async client for the streaming recommendation endpoint."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        max_results: int = DEFAULT_MAX_RECOMMENDATIONS,
        marker: str = DEFAULT_MARKER,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize streaming client.

        Args:
            endpoint: Recommendation endpoint URL.
            timeout: Upper bound in seconds for the whole request.
            max_results: Candidates kept after the completion frame.
            marker: Frame marker expected on meaningful lines.
            client: Optional preconfigured httpx client.
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.max_results = max_results
        self.marker = marker
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def recommend(
        self,
        prompt: str,
        on_progress: ProgressCallback | None = None,
    ) -> RecommendationResult:
        """Request recommendations and consume the progress stream.

        Raises:
            RecommendationTransportError: On non-2xx status or network failure.
            RecommendationTimeoutError: When no completion arrives in time.
            IncompleteStreamError: When the stream ends without completion.
            MalformedResultError: When the completion frame has no list.
        """
        logger.info("recommendation_request", prompt=prompt, endpoint=self.endpoint)
        try:
            payload = await asyncio.wait_for(
                self._stream(prompt, on_progress), timeout=self.timeout
            )
        except TimeoutError as exc:
            logger.warning("recommendation_timeout", prompt=prompt, timeout=self.timeout)
            raise RecommendationTimeoutError(self.timeout) from exc

        result = RecommendationResult.from_payload(payload, self.max_results)
        logger.info(
            "recommendation_complete",
            prompt=prompt,
            candidates=len(result.candidates),
        )
        return result

    async def _stream(
        self, prompt: str, on_progress: ProgressCallback | None
    ) -> dict[str, Any]:
        try:
            async with self.client.stream(
                "POST",
                self.endpoint,
                json=build_request_body(prompt),
                headers={"Content-Type": "application/json"},
            ) as response:
                if not response.is_success:
                    body = await response.aread()
                    detail = body[:200].decode("utf-8", errors="replace") or response.reason_phrase
                    logger.warning(
                        "recommendation_http_error",
                        status=response.status_code,
                        detail=detail,
                    )
                    raise RecommendationTransportError(detail, status_code=response.status_code)
                return await consume_stream(response.aiter_bytes(), on_progress, self.marker)
        except httpx.TimeoutException as exc:
            raise RecommendationTimeoutError(self.timeout) from exc
        except httpx.TransportError as exc:
            logger.warning("recommendation_network_error", error=str(exc))
            raise RecommendationTransportError(str(exc) or type(exc).__name__) from exc

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()


def create_client(
    config: EvaluatorConfig,
    dry_run: bool = False,
    http_client: httpx.AsyncClient | None = None,
) -> RecommendationClient:
    """Create appropriate recommendation client based on settings.

    Args:
        config: Evaluator configuration.
        dry_run: Use fake client instead of the real endpoint.
        http_client: Optional httpx client for the real endpoint.

    Returns:
        RecommendationClient instance.
    """
    settings = config.recommendation
    if dry_run:
        logger.info("using_fake_client", seed=settings.seed)
        return FakeRecommendationClient(
            seed=settings.seed,
            max_results=settings.max_recommendations,
            marker=settings.marker,
        )

    return StreamingRecommendationClient(
        config.get_endpoint(),
        timeout=settings.timeout,
        max_results=settings.max_recommendations,
        marker=settings.marker,
        client=http_client,
    )
