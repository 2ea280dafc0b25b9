"""Incremental decoding of marker-prefixed JSON stream frames.

The recommendation service answers with newline-delimited text. Meaningful
lines look like ``data: {...}``; everything else is padding. Chunks may split
anywhere, including inside a UTF-8 sequence, the marker or the JSON payload.
"""

from __future__ import annotations

import codecs
import json
import math
from collections.abc import AsyncIterable, Callable, Iterator
from typing import Any

import structlog

from font_evaluator.core.config import DEFAULT_MARKER

from .errors import IncompleteStreamError

logger = structlog.get_logger()

ProgressCallback = Callable[[float], None]

COMPLETE_STATUS = "complete"


def parse_progress(value: Any) -> float | None:
    """Read a numeric or percentage-like progress value.

    Returns:
        The value as float, or None when it is not numeric.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().removesuffix("%").strip()
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def is_complete(frame: dict[str, Any]) -> bool:
    return frame.get("status") == COMPLETE_STATUS


class FrameDecoder:
    """Turn raw byte chunks into parsed JSON frames.

    The trailing, possibly incomplete, line of each chunk stays buffered
    until a newline arrives or :meth:`flush` is called.
    """

    def __init__(self, marker: str = DEFAULT_MARKER) -> None:
        self.marker = marker
        self.frames_seen = 0
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._buffer

    def feed(self, chunk: bytes) -> Iterator[dict[str, Any]]:
        """Add a chunk and return the frames of every line it completed."""
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._frames(lines)

    def flush(self) -> Iterator[dict[str, Any]]:
        """Parse whatever is left once the transport has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        return self._frames(remainder.split("\n"))

    def _frames(self, lines: list[str]) -> Iterator[dict[str, Any]]:
        for line in lines:
            frame = self._parse_line(line)
            if frame is not None:
                self.frames_seen += 1
                yield frame

    def _parse_line(self, line: str) -> dict[str, Any] | None:
        line = line.rstrip("\r")
        if not line.strip() or not line.startswith(self.marker):
            return None
        payload = line[len(self.marker) :]
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("stream_frame_skipped", reason="invalid_json", line=line[:200])
            return None
        if not isinstance(data, dict):
            logger.warning("stream_frame_skipped", reason="not_an_object", line=line[:200])
            return None
        return data


def _notify(on_progress: ProgressCallback | None, frame: dict[str, Any]) -> None:
    if on_progress is None or "progress" not in frame:
        return
    value = parse_progress(frame["progress"])
    if value is None:
        return
    try:
        on_progress(value)
    except Exception:
        logger.warning("progress_callback_failed", progress=value, exc_info=True)


async def consume_stream(
    chunks: AsyncIterable[bytes],
    on_progress: ProgressCallback | None = None,
    marker: str = DEFAULT_MARKER,
) -> dict[str, Any]:
    """Read frames until the completion frame and return it.

    Args:
        chunks: Raw response body chunks.
        on_progress: Called with each progress value, in frame order.
        marker: Line prefix of meaningful frames.

    Returns:
        The parsed completion frame. Data after it is never read.

    Raises:
        IncompleteStreamError: If the chunks run out before completion.
    """
    decoder = FrameDecoder(marker)
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            _notify(on_progress, frame)
            if is_complete(frame):
                logger.debug("stream_complete", frames=decoder.frames_seen)
                return frame

    for frame in decoder.flush():
        _notify(on_progress, frame)
        if is_complete(frame):
            logger.debug("stream_complete_at_eof", frames=decoder.frames_seen)
            return frame

    logger.warning("stream_incomplete", frames=decoder.frames_seen)
    raise IncompleteStreamError(decoder.frames_seen)
