"""Font candidates returned by the recommendation service."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

TOP_RANKS = 3


class RecommendationCandidate(BaseModel):
    """One recommended font; ``rank`` is its 0-based position in the result."""

    family_name: str = ""
    style_name: str = ""
    foundry_name: str = ""
    md5: str = ""
    rank: int = 0
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @property
    def font_key(self) -> str:
        """Stable font identifier: the content hash, else the family name.

        Two distinct fonts sharing a family name and lacking a hash collide
        under this key.
        """
        return self.md5 or self.family_name

    @property
    def is_top(self) -> bool:
        return self.rank < TOP_RANKS

    @classmethod
    def from_payload(cls, entry: dict[str, Any], rank: int) -> RecommendationCandidate:
        """Build a candidate from one ``results.recommendations`` entry."""
        return cls(
            family_name=str(entry.get("family_name") or ""),
            style_name=str(entry.get("style_name") or ""),
            foundry_name=str(entry.get("foundry_name") or ""),
            md5=str(entry.get("md5") or ""),
            rank=rank,
            raw=entry,
        )
