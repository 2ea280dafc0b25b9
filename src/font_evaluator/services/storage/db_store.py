"""Database storage for font score events using SQLModel."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from sqlmodel import Session, SQLModel, col, create_engine, select

from font_evaluator.core.errors import FeedbackStoreError
from font_evaluator.models import FontScoreEvent, RatingRecord, Score

from .base import EventMetadata, FeedbackStore

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

T = TypeVar("T")

RECENT_LIMIT = 10
_FILE_SCHEMES = ("duckdb:///", "sqlite:///")
_KEY_FIELDS = frozenset({"id", "username", "prompt", "font_md5"})


def create_db_engine(database_url: str) -> Engine:
    """Create an engine and the event table.

    File-backed DuckDB/SQLite URLs get their parent directory created.
    """
    for scheme in _FILE_SCHEMES:
        if database_url.startswith(scheme):
            path = database_url[len(scheme) :]
            if path and path != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
    # NullPool avoids holding file locks between sessions
    engine = create_engine(database_url, poolclass=NullPool)
    SQLModel.metadata.create_all(engine)
    logger.info("db_store_init", url=database_url)
    return engine


def event_to_record(event: FontScoreEvent) -> RatingRecord:
    """Project a stored event onto the common rating record."""
    return RatingRecord(
        prompt_id=event.prompt_id,
        prompt_name=event.prompt,
        font_key=event.font_md5,
        family_name=event.font_family,
        score=Score.normalize(event.score),
        reason=event.reason,
        username=event.username,
        timestamp=event.timestamp,
    )


class FontScoreRepository:
    """Persist and query font score events."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def run_session(self, operation: str, fn: Callable[[Session], T]) -> T:
        """Run a sync function inside a Session on a worker thread."""

        def _run() -> T:
            with Session(self._engine) as session:
                return fn(session)

        try:
            return await asyncio.to_thread(_run)
        except SQLAlchemyError as exc:
            logger.error("db_store_failed", operation=operation, error=str(exc))
            raise FeedbackStoreError(operation, str(exc)) from exc

    async def add_event(self, event: FontScoreEvent) -> str:
        """Insert a new event and return its id."""

        def _add(session: Session) -> str:
            session.add(event)
            session.commit()
            return event.id

        return await self.run_session("insert", _add)

    async def save_event(self, event: FontScoreEvent) -> tuple[str, bool]:
        """Insert an event, or overwrite the one with the same user, prompt and font.

        Returns:
            The id of the stored event and whether it was newly created.
        """

        def _save(session: Session) -> tuple[str, bool]:
            statement = select(FontScoreEvent).where(
                FontScoreEvent.username == event.username,
                FontScoreEvent.prompt == event.prompt,
                FontScoreEvent.font_md5 == event.font_md5,
            )
            existing = session.exec(statement).first()
            if existing is None:
                session.add(event)
                session.commit()
                return event.id, True
            for name in FontScoreEvent.model_fields:
                if name not in _KEY_FIELDS:
                    setattr(existing, name, getattr(event, name))
            session.add(existing)
            session.commit()
            return existing.id, False

        return await self.run_session("upsert", _save)

    async def list_events(self, username: str, prompt: str | None = None) -> list[FontScoreEvent]:
        """Events of one user, newest first, optionally for one prompt."""

        def _list(session: Session) -> list[FontScoreEvent]:
            statement = select(FontScoreEvent).where(FontScoreEvent.username == username)
            if prompt is not None:
                statement = statement.where(FontScoreEvent.prompt == prompt)
            statement = statement.order_by(col(FontScoreEvent.timestamp).desc())
            return list(session.exec(statement).all())

        return await self.run_session("read", _list)

    async def get_stats(self, username: str) -> dict[str, Any]:
        """Score distribution and recent activity for one user."""
        events = await self.list_events(username)

        distribution: dict[str, dict[str, Any]] = defaultdict(lambda: {"count": 0, "fonts": []})
        for event in events:
            bucket = distribution[Score.normalize(event.score).short]
            bucket["count"] += 1
            bucket["fonts"].append(event.font_family)

        return {
            "total_scores": len(events),
            "unique_prompts": len({e.prompt for e in events}),
            "unique_fonts": len({e.font_family for e in events}),
            "score_distribution": [
                {"score": score, **bucket} for score, bucket in sorted(distribution.items())
            ],
            "recent_scores": [e.model_dump(mode="json") for e in events[:RECENT_LIMIT]],
        }

    async def delete_event(self, event_id: str) -> bool:
        """Delete one event by id. Returns False when it does not exist."""

        def _delete(session: Session) -> bool:
            event = session.get(FontScoreEvent, event_id)
            if event is None:
                return False
            session.delete(event)
            session.commit()
            return True

        return await self.run_session("delete", _delete)


class DocumentFeedbackStore(FeedbackStore):
    """Feedback store backed by the font score event table.

    Holds at most one event per (username, prompt, font key); re-rating
    updates that event in place.
    """

    def __init__(self, database_url: str | None = None, engine: Engine | None = None) -> None:
        if engine is None:
            if database_url is None:
                msg = "Either database_url or engine is required"
                raise ValueError(msg)
            engine = create_db_engine(database_url)
        self._engine = engine
        self.events = FontScoreRepository(engine)

    async def get_ratings(self, username: str) -> dict[str, list[RatingRecord]]:
        events = await self.events.list_events(username)
        # Newest event wins per font
        latest: dict[tuple[str, str], FontScoreEvent] = {}
        for event in events:
            latest.setdefault((event.prompt, event.font_md5), event)
        grouped: dict[str, list[RatingRecord]] = defaultdict(list)
        for event in reversed(list(latest.values())):
            grouped[event.prompt].append(event_to_record(event))
        return dict(grouped)

    async def upsert(self, record: RatingRecord, metadata: EventMetadata | None = None) -> bool:
        metadata = metadata or EventMetadata()

        def _upsert(session: Session) -> bool:
            statement = select(FontScoreEvent).where(
                FontScoreEvent.username == record.username,
                FontScoreEvent.prompt == record.prompt_name,
                FontScoreEvent.font_md5 == record.font_key,
            )
            event = session.exec(statement).first()
            is_new = event is None
            if event is None:
                event = FontScoreEvent(
                    prompt=record.prompt_name,
                    font_family=record.family_name,
                    font_md5=record.font_key,
                    score=record.score.short,
                    username=record.username,
                )
            event.prompt_id = record.prompt_id
            event.font_family = record.family_name
            event.score = record.score.short
            event.reason = record.reason
            event.timestamp = record.timestamp
            event.font_style = metadata.style_name or event.font_style
            event.foundry = metadata.foundry_name or event.foundry
            event.font_data = metadata.font_data or event.font_data
            event.user_session = metadata.user_session or event.user_session
            event.ip_address = metadata.ip_address or event.ip_address
            event.user_agent = metadata.user_agent or event.user_agent
            event.screen_resolution = metadata.screen_resolution or event.screen_resolution
            event.timezone = metadata.timezone or event.timezone
            session.add(event)
            session.commit()
            return is_new

        is_new = await self.events.run_session("upsert", _upsert)
        logger.info(
            "feedback_saved",
            username=record.username,
            prompt=record.prompt_name,
            font=record.font_key,
            is_new=is_new,
        )
        return is_new

    async def delete_prompt(self, username: str, prompt_name: str) -> bool:
        def _delete(session: Session) -> bool:
            statement = select(FontScoreEvent).where(
                FontScoreEvent.username == username,
                FontScoreEvent.prompt == prompt_name,
            )
            events = session.exec(statement).all()
            for event in events:
                session.delete(event)
            session.commit()
            return bool(events)

        removed = await self.events.run_session("delete", _delete)
        logger.info("feedback_cleared", username=username, prompt=prompt_name, removed=removed)
        return removed

    async def close(self) -> None:
        self._engine.dispose()
