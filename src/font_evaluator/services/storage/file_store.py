"""JSON-file feedback storage.

The file holds one document shaped ``{username: {promptName: [record, ...]}}``
using the wire keys of :class:`RatingRecord`.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any

import pydantic
import structlog

from font_evaluator.core.errors import FeedbackStoreError
from font_evaluator.models import RatingRecord

from .base import EventMetadata, FeedbackStore

logger = structlog.get_logger()

Document = dict[str, dict[str, list[dict[str, Any]]]]


class JsonFeedbackStore(FeedbackStore):
    """Persist ratings in a single JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()
        self._init_file()

    def _init_file(self) -> None:
        """Create the file, or reset it when it is blank or not valid JSON."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self._write({})
            logger.info("feedback_file_created", path=str(self.path))
            return

        content = self.path.read_text(encoding="utf-8")
        if not content.strip():
            self._write({})
            logger.info("feedback_file_reset", path=str(self.path), reason="empty")
            return
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, dict):
            self._write({})
            logger.warning("feedback_file_reset", path=str(self.path), reason="invalid")
            return
        logger.debug("feedback_file_loaded", path=str(self.path), users=len(data))

    def _read(self) -> Document:
        content = self.path.read_text(encoding="utf-8")
        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            logger.warning("feedback_file_corrupt", path=str(self.path))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Document) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, self.path)

    @staticmethod
    def _parse_record(username: str, prompt_name: str, item: Any) -> RatingRecord | None:
        if not isinstance(item, dict):
            return None
        data = {**item, "promptName": prompt_name, "username": username}
        try:
            return RatingRecord.model_validate(data)
        except pydantic.ValidationError as exc:
            logger.warning(
                "feedback_record_skipped",
                username=username,
                prompt=prompt_name,
                errors=exc.error_count(),
            )
            return None

    async def get_ratings(self, username: str) -> dict[str, list[RatingRecord]]:
        try:
            data = await asyncio.to_thread(self._read)
        except OSError as exc:
            raise FeedbackStoreError("read", str(exc)) from exc

        user_feedback = data.get(username) or {}
        grouped: dict[str, list[RatingRecord]] = {}
        for prompt_name, items in user_feedback.items():
            if not isinstance(items, list):
                continue
            records = [self._parse_record(username, prompt_name, item) for item in items]
            grouped[prompt_name] = [r for r in records if r is not None]
        return grouped

    async def upsert(self, record: RatingRecord, metadata: EventMetadata | None = None) -> bool:
        def _upsert() -> bool:
            data = self._read()
            prompts = data.setdefault(record.username, {})
            items = prompts.setdefault(record.prompt_name, [])
            payload = record.to_wire()
            for index, item in enumerate(items):
                if isinstance(item, dict) and item.get("md5") == record.font_key:
                    items[index] = payload
                    self._write(data)
                    return False
            items.append(payload)
            self._write(data)
            return True

        async with self._lock:
            try:
                is_new = await asyncio.to_thread(_upsert)
            except OSError as exc:
                raise FeedbackStoreError("upsert", str(exc)) from exc

        logger.info(
            "feedback_saved",
            username=record.username,
            prompt=record.prompt_name,
            font=record.font_key,
            is_new=is_new,
        )
        return is_new

    async def delete_prompt(self, username: str, prompt_name: str) -> bool:
        def _delete() -> bool:
            data = self._read()
            user_feedback = data.get(username)
            removed = bool(user_feedback) and prompt_name in user_feedback
            if removed:
                del user_feedback[prompt_name]
            self._write(data)
            return removed

        async with self._lock:
            try:
                removed = await asyncio.to_thread(_delete)
            except OSError as exc:
                raise FeedbackStoreError("delete", str(exc)) from exc

        logger.info("feedback_cleared", username=username, prompt=prompt_name, removed=removed)
        return removed
