from .candidate import RecommendationCandidate
from .font_score import FontScoreEvent
from .rating import ConfirmationState, RatingRecord, Score, normalize_score

__all__ = [
    "ConfirmationState",
    "FontScoreEvent",
    "RatingRecord",
    "RecommendationCandidate",
    "Score",
    "normalize_score",
]
