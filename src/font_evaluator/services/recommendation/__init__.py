from .client import (
    FakeRecommendationClient,
    RecommendationClient,
    RecommendationResult,
    StreamingRecommendationClient,
    build_request_body,
    create_client,
)
from .errors import (
    IncompleteStreamError,
    MalformedResultError,
    RecommendationError,
    RecommendationTimeoutError,
    RecommendationTransportError,
)
from .loader import PromptLoader
from .stream import FrameDecoder, ProgressCallback, consume_stream, parse_progress

__all__ = [
    "FakeRecommendationClient",
    "FrameDecoder",
    "IncompleteStreamError",
    "MalformedResultError",
    "ProgressCallback",
    "PromptLoader",
    "RecommendationClient",
    "RecommendationError",
    "RecommendationResult",
    "RecommendationTimeoutError",
    "RecommendationTransportError",
    "StreamingRecommendationClient",
    "build_request_body",
    "consume_stream",
    "create_client",
    "parse_progress",
]
