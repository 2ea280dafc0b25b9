"""Errors raised while requesting and consuming recommendation streams."""

from __future__ import annotations


class RecommendationError(Exception):
    """Base class for recommendation request failures."""


class RecommendationTransportError(RecommendationError):
    """Non-2xx status or network failure before the stream completed."""

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        self.detail = detail
        self.status_code = status_code
        if status_code is not None:
            message = f"HTTP error! status: {status_code} ({detail})"
        else:
            message = f"Network error: {detail}"
        super().__init__(message)


class RecommendationTimeoutError(RecommendationTransportError):
    """The request did not complete within the configured time bound."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"no completion within {timeout:g}s")


class IncompleteStreamError(RecommendationError):
    """The stream ended without a completion frame."""

    def __init__(self, frames_seen: int = 0) -> None:
        self.frames_seen = frames_seen
        super().__init__(f"Stream ended without completion after {frames_seen} frame(s)")


class MalformedResultError(RecommendationError):
    """The completion frame carries no recommendation list."""

    def __init__(self) -> None:
        super().__init__("No recommendations found")
