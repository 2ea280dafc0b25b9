"""Shared fixtures."""

import pytest

from font_evaluator.models import RatingRecord

HELVETICA = "fonts from helvetica"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "FONT_EVAL_RECOMMENDATION_URL",
        "FONT_EVAL_STORE_BACKEND",
        "FONT_EVAL_DATABASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_record():
    """Build a RatingRecord with sensible defaults."""

    def _make(
        font_key: str = "md5-a",
        score: str = "good",
        reason: str = "",
        prompt: str = HELVETICA,
        username: str = "alice",
        **kwargs,
    ) -> RatingRecord:
        return RatingRecord(
            prompt_name=prompt,
            font_key=font_key,
            family_name=kwargs.pop("family_name", f"Family {font_key}"),
            score=score,
            reason=reason,
            username=username,
            **kwargs,
        )

    return _make
