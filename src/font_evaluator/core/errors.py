"""Custom exceptions for configuration, authentication and rating errors."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Base exception for configuration errors with optional suggestions."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[Configuration Error] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class EndpointError(ConfigurationError):
    """Error when the recommendation endpoint is not configured."""

    def __init__(self) -> None:
        super().__init__(
            "Recommendation endpoint required for real API calls",
            "Set FONT_EVAL_RECOMMENDATION_URL or recommendation.endpoint in config.yaml.",
        )


class ValidationError(ConfigurationError):
    """Error when configuration validation fails."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(
            f"Invalid value for '{field}'",
            f"{reason}",
        )


class AuthenticationError(Exception):
    """Raised when a username/password pair does not match the user directory."""


class ReasonRequiredError(ValueError):
    """Raised when an average or bad rating is submitted without a reason."""

    def __init__(self, score: str) -> None:
        self.score = score
        super().__init__(f"A reason is required for '{score}' ratings")


class FeedbackStoreError(Exception):
    """Raised when a feedback backend fails to read or write ratings."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Feedback store {operation} failed: {detail}")
