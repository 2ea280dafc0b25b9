"""Feedback store client for the feedback API."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from font_evaluator.core.errors import FeedbackStoreError
from font_evaluator.models import RatingRecord

from .base import EventMetadata, FeedbackStore

logger = structlog.get_logger()


class HttpFeedbackStore(FeedbackStore):
    """Talk to the ``/api/feedback`` routes of a running feedback API."""

    def __init__(
        self,
        base_url: str,
        max_retries: int = 3,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP store.

        Args:
            base_url: Root URL of the feedback API.
            max_retries: Attempts per call on network errors.
            timeout: Per-request timeout in seconds.
            client: Optional preconfigured httpx client.
        """
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request, retrying transport errors, and return the JSON body."""
        url = f"{self.base_url}{path}"
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.request(method, url, **kwargs)
                    response.raise_for_status()
                    return response.json()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:200]
            logger.warning(
                "feedback_api_error",
                operation=operation,
                status=exc.response.status_code,
                detail=detail,
            )
            raise FeedbackStoreError(operation, f"status {exc.response.status_code}: {detail}") from exc
        except httpx.TransportError as exc:
            logger.warning("feedback_api_unreachable", operation=operation, error=str(exc))
            raise FeedbackStoreError(operation, str(exc) or type(exc).__name__) from exc

    async def get_ratings(self, username: str) -> dict[str, list[RatingRecord]]:
        data = await self._request("read", "GET", "/api/feedback", params={"username": username})
        grouped: dict[str, list[RatingRecord]] = {}
        for prompt_name, items in data.items():
            grouped[prompt_name] = [
                RatingRecord.model_validate({**item, "promptName": prompt_name})
                for item in items
            ]
        return grouped

    async def upsert(self, record: RatingRecord, metadata: EventMetadata | None = None) -> bool:
        data = await self._request(
            "upsert",
            "POST",
            "/api/feedback",
            json={"promptName": record.prompt_name, "feedbackData": record.to_wire()},
        )
        return bool(data.get("isNew"))

    async def delete_prompt(self, username: str, prompt_name: str) -> bool:
        data = await self._request(
            "delete",
            "DELETE",
            f"/api/feedback/{quote(prompt_name, safe='')}",
            params={"username": username},
        )
        return bool(data.get("removed", data.get("success")))

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()
