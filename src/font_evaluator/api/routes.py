"""Feedback and font score routes."""

from __future__ import annotations

from typing import Any

import pydantic
import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from font_evaluator.core.errors import AuthenticationError
from font_evaluator.models import FontScoreEvent, RatingRecord, Score
from font_evaluator.services.auth import UserDirectory
from font_evaluator.services.storage import DocumentFeedbackStore, FeedbackStore

from .schemas import FeedbackRequest, FontScoreRequest, LoginRequest

logger = structlog.get_logger()

router = APIRouter(prefix="/api")
font_scores_router = APIRouter(prefix="/api/font-scores", tags=["font-scores"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _store(request: Request) -> FeedbackStore:
    return request.app.state.store


def _document_store(request: Request) -> DocumentFeedbackStore:
    return request.app.state.store


@router.post("/login")
async def login(body: LoginRequest, request: Request) -> Any:
    """Check credentials against the users file."""
    if not body.username or not body.password:
        return _error(400, "Username and password are required")

    users: UserDirectory = request.app.state.users
    try:
        user = users.authenticate(body.username, body.password)
    except AuthenticationError:
        return _error(401, "Invalid username or password")
    except (OSError, ValueError) as exc:
        logger.error("login_error", error=str(exc))
        return _error(500, "Login failed")
    return {"success": True, "user": user, "message": "Login successful"}


@router.get("/feedback")
async def get_feedback(request: Request, username: str | None = None) -> Any:
    """Return the user's ratings grouped by prompt."""
    if not username:
        return _error(400, "Username is required")
    grouped = await _store(request).get_ratings(username)
    return {
        prompt: [record.to_wire() for record in records] for prompt, records in grouped.items()
    }


@router.post("/feedback")
async def save_feedback(body: FeedbackRequest, request: Request) -> Any:
    """Insert or replace one rating, matched by font key."""
    username = body.feedback_data.get("username")
    if not username:
        return _error(400, "Username is required")
    try:
        record = RatingRecord.model_validate(
            {**body.feedback_data, "promptName": body.prompt_name}
        )
    except pydantic.ValidationError as exc:
        return _error(400, f"Invalid feedback data: {exc.error_count()} error(s)")

    if record.score.requires_reason and not record.reason.strip():
        return _error(400, f"A reason is required for '{record.score.value}' ratings")

    is_new = await _store(request).upsert(record)
    return {
        "success": True,
        "promptName": record.prompt_name,
        "username": record.username,
        "isNew": is_new,
    }


@router.delete("/feedback/{prompt_name:path}")
async def clear_feedback(prompt_name: str, request: Request, username: str | None = None) -> Any:
    """Delete all of a user's ratings for one prompt."""
    if not username:
        return _error(400, "Username is required")
    removed = await _store(request).delete_prompt(username, prompt_name)
    return {
        "success": True,
        "removed": removed,
        "message": f"Feedback data cleared for prompt: {prompt_name} for user: {username}",
    }


@font_scores_router.post("", status_code=201)
async def save_font_score(body: FontScoreRequest, request: Request) -> Any:
    """Store one rating event with its browser metadata."""
    if Score.normalize(body.score).requires_reason and not body.reason.strip():
        return _error(400, f"A reason is required for '{body.score}' ratings")

    event = FontScoreEvent(**body.model_dump())
    event_id, is_new = await _document_store(request).events.save_event(event)
    logger.info(
        "font_score_saved", id=event_id, prompt=body.prompt, username=body.username, is_new=is_new
    )
    return {
        "success": True,
        "id": event_id,
        "isNew": is_new,
        "message": "Font score saved successfully",
    }


@font_scores_router.get("")
async def list_font_scores(request: Request, username: str | None = None) -> Any:
    if not username:
        return _error(400, "Username is required")
    events = await _document_store(request).events.list_events(username)
    return [event.model_dump(mode="json") for event in events]


@font_scores_router.get("/stats")
async def font_score_stats(request: Request, username: str | None = None) -> Any:
    if not username:
        return _error(400, "Username is required")
    return await _document_store(request).events.get_stats(username)


@font_scores_router.get("/prompt/{prompt:path}")
async def font_scores_for_prompt(prompt: str, request: Request, username: str | None = None) -> Any:
    if not username:
        return _error(400, "Username is required")
    events = await _document_store(request).events.list_events(username, prompt=prompt)
    return [event.model_dump(mode="json") for event in events]


@font_scores_router.delete("/{event_id}")
async def delete_font_score(event_id: str, request: Request) -> Any:
    deleted = await _document_store(request).events.delete_event(event_id)
    if not deleted:
        return JSONResponse(
            status_code=404, content={"success": False, "message": "Score not found"}
        )
    return {"success": True, "message": "Score deleted successfully"}
