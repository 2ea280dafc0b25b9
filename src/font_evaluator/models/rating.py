"""Rating records and score labels."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Score(str, Enum):
    """Rating category. Values are the display labels used on the wire."""

    GOOD = "Good Match"
    AVERAGE = "Average Match"
    BAD = "Bad Match"

    @property
    def short(self) -> str:
        """Short label ('good', 'average', 'bad')."""
        return self.name.lower()

    @property
    def requires_reason(self) -> bool:
        return self is not Score.GOOD

    @classmethod
    def normalize(cls, value: Any) -> Score:
        """Map any accepted label to its canonical member.

        Accepts members, short labels and display labels, ignoring case and
        surrounding whitespace.

        Raises:
            ValueError: If the label is not recognised.
        """
        if isinstance(value, Score):
            return value
        if isinstance(value, str):
            score = _LABELS.get(value.strip().lower())
            if score is not None:
                return score
        msg = f"Unknown score label: {value!r}"
        raise ValueError(msg)


_LABELS: dict[str, Score] = {}
for _score in Score:
    _LABELS[_score.short] = _score
    _LABELS[_score.value.lower()] = _score


def normalize_score(value: Any) -> Score:
    """Shortcut for :meth:`Score.normalize`."""
    return Score.normalize(value)


class ConfirmationState(str, Enum):
    """Whether a session rating has reached the durable store."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class RatingRecord(BaseModel):
    """One evaluator's judgment of one font for one prompt.

    Field aliases match the keys of the JSON feedback file and the feedback
    API payloads (``promptID``, ``promptName``, ``md5``, ...).
    """

    model_config = ConfigDict(populate_by_name=True)

    prompt_id: int | None = Field(default=None, alias="promptID")
    prompt_name: str = Field(alias="promptName", min_length=1)
    font_key: str = Field(alias="md5", min_length=1)
    family_name: str = Field(default="", alias="familyName")
    score: Score
    reason: str = ""
    username: str = Field(min_length=1)
    email: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("score", mode="before")
    @classmethod
    def validate_score(cls, v: Any) -> Score:
        return Score.normalize(v)

    @field_validator("reason", "email", "family_name", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @model_validator(mode="after")
    def clear_reason_for_good(self) -> RatingRecord:
        # Good ratings never carry a reason
        if self.score is Score.GOOD and self.reason:
            self.reason = ""
        return self

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity triple: (username, prompt_name, font_key)."""
        return (self.username, self.prompt_name, self.font_key)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the JSON feedback file keys."""
        return self.model_dump(mode="json", by_alias=True)
