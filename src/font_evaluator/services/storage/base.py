"""Abstract feedback store shared by every persistence backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from font_evaluator.models import RatingRecord


@dataclass(frozen=True)
class EventMetadata:
    """Browser and font details captured alongside a rating event.

    Only the document backend persists these; other backends ignore them.
    """

    style_name: str = ""
    foundry_name: str = ""
    font_data: dict[str, Any] = field(default_factory=dict)
    user_session: str = ""
    ip_address: str | None = None
    user_agent: str | None = None
    screen_resolution: str | None = None
    timezone: str | None = None


class FeedbackStore(ABC):
    """Durable ratings, partitioned by username then by prompt."""

    @abstractmethod
    async def get_ratings(self, username: str) -> dict[str, list[RatingRecord]]:
        """Return the user's ratings grouped by prompt name."""

    @abstractmethod
    async def upsert(self, record: RatingRecord, metadata: EventMetadata | None = None) -> bool:
        """Insert or replace the rating for ``record.key``.

        Returns:
            True if a new record was created, False if one was replaced.
        """

    @abstractmethod
    async def delete_prompt(self, username: str, prompt_name: str) -> bool:
        """Delete every rating of ``username`` for ``prompt_name``.

        Returns:
            True if anything was removed.
        """

    async def get_history(self, username: str) -> list[RatingRecord]:
        """Return the user's ratings across all prompts as a flat list."""
        grouped = await self.get_ratings(username)
        return [record for records in grouped.values() for record in records]

    async def close(self) -> None:  # noqa: B027
        """Release resources. Override if needed."""
