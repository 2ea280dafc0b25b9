from font_evaluator.core.config import EvaluatorConfig

from .base import EventMetadata, FeedbackStore
from .db_store import DocumentFeedbackStore, FontScoreRepository, create_db_engine
from .file_store import JsonFeedbackStore
from .http_store import HttpFeedbackStore


def create_store(config: EvaluatorConfig) -> FeedbackStore:
    """Build the feedback store selected by ``store.backend``."""
    settings = config.store
    if settings.backend == "db":
        return DocumentFeedbackStore(settings.database_url)
    if settings.backend == "http":
        return HttpFeedbackStore(
            settings.api_base_url,
            max_retries=settings.max_retries,
            timeout=settings.timeout,
        )
    return JsonFeedbackStore(settings.feedback_path)


__all__ = [
    "DocumentFeedbackStore",
    "EventMetadata",
    "FeedbackStore",
    "FontScoreRepository",
    "HttpFeedbackStore",
    "JsonFeedbackStore",
    "create_db_engine",
    "create_store",
]
