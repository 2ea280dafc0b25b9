"""Request bodies accepted by the feedback API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from font_evaluator.models import Score


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class FeedbackRequest(BaseModel):
    """Body of ``POST /api/feedback``."""

    model_config = ConfigDict(populate_by_name=True)

    prompt_name: str = Field(alias="promptName", min_length=1)
    feedback_data: dict[str, Any] = Field(alias="feedbackData")


class FontScoreRequest(BaseModel):
    """Body of ``POST /api/font-scores``: one rating event with browser metadata."""

    prompt: str = Field(min_length=1)
    font_family: str = Field(min_length=1)
    font_style: str = ""
    font_md5: str = Field(min_length=1)
    foundry: str = ""
    score: str
    reason: str = ""
    username: str = Field(min_length=1)
    font_data: dict[str, Any] = Field(default_factory=dict)
    user_session: str = ""
    ip_address: str | None = None
    user_agent: str | None = None
    screen_resolution: str | None = None
    timezone: str | None = None

    @field_validator("score")
    @classmethod
    def validate_score(cls, v: str) -> str:
        return Score.normalize(v).short
