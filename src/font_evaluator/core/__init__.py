"""Core configuration and utilities for the font evaluator."""

from font_evaluator.core.catalog import DEFAULT_PROMPTS, PromptCatalog
from font_evaluator.core.config import (
    DEFAULT_MARKER,
    DEFAULT_MAX_RECOMMENDATIONS,
    EvaluatorConfig,
    PreviewConfig,
    RecommendationConfig,
    ServerConfig,
    StoreConfig,
    load_config,
)
from font_evaluator.core.errors import (
    AuthenticationError,
    ConfigurationError,
    EndpointError,
    FeedbackStoreError,
    ReasonRequiredError,
    ValidationError,
)
from font_evaluator.core.progress import StreamProgress

__all__ = [
    "DEFAULT_MARKER",
    "DEFAULT_MAX_RECOMMENDATIONS",
    "DEFAULT_PROMPTS",
    "EvaluatorConfig",
    "PreviewConfig",
    "PromptCatalog",
    "RecommendationConfig",
    "ServerConfig",
    "StoreConfig",
    "StreamProgress",
    "load_config",
    "AuthenticationError",
    "ConfigurationError",
    "EndpointError",
    "FeedbackStoreError",
    "ReasonRequiredError",
    "ValidationError",
]
