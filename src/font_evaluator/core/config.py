"""Configuration schemas and loading for the font evaluator."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import pydantic
import yaml
from pydantic import BaseModel, Field, field_validator

from font_evaluator.core.errors import ValidationError

DEFAULT_MARKER = "data: "
DEFAULT_MAX_RECOMMENDATIONS = 10
DEFAULT_PREVIEW_URL = "https://render.myfonts.net/fonts/font_rend.php"
DEFAULT_SAMPLE_TEXT = "The quick brown fox jumps over the lazy dog"

StoreBackend = Literal["file", "db", "http"]


class RecommendationConfig(BaseModel):
    """Settings for the external recommendation stream.

    Attributes:
        endpoint: URL of the streaming recommendation endpoint.
        timeout: Upper bound in seconds for one request, stream included.
        max_recommendations: Candidates kept after the completion frame.
        marker: Literal prefix of meaningful stream lines.
        seed: Seed for the fake client used in dry runs.
    """

    endpoint: str | None = None
    timeout: float = Field(default=30.0, gt=0)
    max_recommendations: int = Field(default=DEFAULT_MAX_RECOMMENDATIONS, ge=1)
    marker: str = DEFAULT_MARKER
    seed: int = 42

    @field_validator("marker")
    @classmethod
    def validate_marker(cls, v: str) -> str:
        if not v.strip():
            msg = "Stream marker cannot be blank"
            raise ValueError(msg)
        return v


class StoreConfig(BaseModel):
    """Feedback persistence settings."""

    backend: StoreBackend = "file"
    feedback_path: str = "./data/feedback.json"
    database_url: str = "duckdb:///./data/font_scores.duckdb"
    api_base_url: str = "http://localhost:3001"
    max_retries: int = Field(default=3, ge=1)
    timeout: float = 30.0


class PreviewConfig(BaseModel):
    """Font preview renderer settings."""

    base_url: str = DEFAULT_PREVIEW_URL
    sample_text: str = DEFAULT_SAMPLE_TEXT
    size: int = 30
    timeout: float = 3.0


class ServerConfig(BaseModel):
    """Feedback API bind address."""

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3001


class EvaluatorConfig(BaseModel):
    """Complete evaluator configuration."""

    recommendation: RecommendationConfig = Field(default_factory=RecommendationConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    preview: PreviewConfig = Field(default_factory=PreviewConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    users_path: str = "./data/user.json"
    prompts: list[str] | None = None

    @field_validator("prompts")
    @classmethod
    def validate_prompts(cls, v: list[str] | None) -> list[str] | None:
        """Ensure a custom catalog has no blank or duplicate prompts."""
        if v is None:
            return v
        if not v:
            msg = "At least one prompt must be defined in 'prompts'"
            raise ValueError(msg)
        for prompt in v:
            if not prompt or not prompt.strip():
                msg = "Prompts cannot be empty"
                raise ValueError(msg)
        if len(set(v)) != len(v):
            msg = "Prompts must be unique"
            raise ValueError(msg)
        return v

    def apply_env(self) -> EvaluatorConfig:
        """Apply environment overrides in place and return self."""
        endpoint = os.environ.get("FONT_EVAL_RECOMMENDATION_URL")
        if endpoint:
            self.recommendation.endpoint = endpoint
        backend = os.environ.get("FONT_EVAL_STORE_BACKEND")
        if backend:
            self.store = StoreConfig.model_validate(
                {**self.store.model_dump(), "backend": backend}
            )
        database_url = os.environ.get("FONT_EVAL_DATABASE_URL")
        if database_url:
            self.store.database_url = database_url
        return self

    def get_endpoint(self) -> str:
        """Get the recommendation endpoint from config or environment."""
        endpoint = self.recommendation.endpoint or os.environ.get("FONT_EVAL_RECOMMENDATION_URL")
        if not endpoint:
            msg = (
                "Recommendation endpoint required. Set FONT_EVAL_RECOMMENDATION_URL env var "
                "or recommendation.endpoint in config."
            )
            raise ValueError(msg)
        return endpoint


def load_config(path: str | Path) -> EvaluatorConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to YAML configuration file.

    Returns:
        Validated EvaluatorConfig instance with environment overrides applied.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid; names the first offending field.
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open() as f:
        data = yaml.safe_load(f) or {}

    try:
        config = EvaluatorConfig.model_validate(data)
    except pydantic.ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "config"
        raise ValidationError(field, error["msg"]) from exc
    return config.apply_env()
