"""FastAPI application factory for the feedback API."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from font_evaluator import __version__
from font_evaluator.core.config import EvaluatorConfig
from font_evaluator.core.errors import FeedbackStoreError
from font_evaluator.services.auth import UserDirectory
from font_evaluator.services.storage import (
    DocumentFeedbackStore,
    FeedbackStore,
    HttpFeedbackStore,
    create_store,
)

from .routes import font_scores_router, router

logger = structlog.get_logger()


def create_app(
    config: EvaluatorConfig | None = None,
    *,
    store: FeedbackStore | None = None,
    users: UserDirectory | None = None,
) -> FastAPI:
    """Build the feedback API.

    Args:
        config: Evaluator configuration; defaults are used when omitted.
        store: Feedback store; built from ``config.store`` when omitted.
        users: User directory; built from ``config.users_path`` when omitted.
    """
    config = config or EvaluatorConfig()
    store = store or create_store(config)
    if isinstance(store, HttpFeedbackStore):
        msg = "The feedback API cannot serve from the http backend; use 'file' or 'db'"
        raise ValueError(msg)
    users = users or UserDirectory(config.users_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("feedback_api_start", backend=type(store).__name__)
        yield
        await store.close()
        logger.info("feedback_api_stop")

    application = FastAPI(
        title="Font Evaluator Feedback API",
        version=__version__,
        lifespan=lifespan,
    )
    application.state.store = store
    application.state.users = users

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.exception_handler(FeedbackStoreError)
    async def store_error_handler(request: Request, exc: FeedbackStoreError) -> JSONResponse:
        logger.error("feedback_store_error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"error": f"Failed to {exc.operation} feedback"})

    application.include_router(router)
    if isinstance(store, DocumentFeedbackStore):
        application.include_router(font_scores_router)

    @application.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "OK", "timestamp": datetime.now(UTC).isoformat()}

    return application
