"""Per-event font score document stored by the database backend."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Column
from sqlmodel import JSON, Field, SQLModel


class FontScoreEvent(SQLModel, table=True):
    """A rating event with the session metadata captured by the browser."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    prompt: str = Field(index=True)
    font_family: str
    font_style: str = ""
    font_md5: str = Field(index=True)
    foundry: str = ""
    score: str  # "good", "average" or "bad"
    reason: str = ""
    username: str = Field(index=True)
    prompt_id: int | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    font_data: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    user_session: str = ""
    ip_address: str | None = None
    user_agent: str | None = None
    screen_resolution: str | None = None
    timezone: str | None = None
