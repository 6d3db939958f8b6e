"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import PlainTextResponse

from conceptsuggest.api.routes import router
from conceptsuggest.clients.annotations import AnnotationsClient
from conceptsuggest.clients.concordances import ConcordancesClient
from conceptsuggest.clients.http import build_http_client
from conceptsuggest.clients.rekognition import RekognitionTextExtractor
from conceptsuggest.config import Settings, get_settings
from conceptsuggest.errors import (
    ConceptSuggestError,
    ModelNotReady,
    NoSuggestions,
    WorkerPoolSaturated,
)
from conceptsuggest.lifecycle import ModelLifecycle
from conceptsuggest.ml.store import ModelStore
from conceptsuggest.ml.training import TrainingSetBuilder, load_training_ids
from conceptsuggest.ratelimit import TokenBucket
from conceptsuggest.suggest import Suggester
from conceptsuggest.workers import WorkerPool

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: build the classifier before serving, clean up on shutdown."""
    settings = get_settings()
    app.state.settings = settings

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting ConceptSuggest (model=%s, min_class_size=%s, threshold=%s, max_concurrent=%s)",
        settings.model_path,
        settings.min_class_size,
        settings.suggestion_threshold,
        settings.max_concurrent,
    )

    lifecycle = ModelLifecycle()
    app.state.lifecycle = lifecycle

    http = build_http_client(settings)
    try:
        extractor = RekognitionTextExtractor.from_settings(settings)
        builder = TrainingSetBuilder(
            extractor,
            AnnotationsClient(http, settings.annotations_url),
            TokenBucket(settings.throttle_rate, settings.throttle_burst),
        )
        try:
            model = await lifecycle.initialize(
                ModelStore(settings.model_path),
                lambda: builder.build(load_training_ids(settings.training_ids_path)),
                min_class_size=settings.min_class_size,
                smoothing=settings.smoothing,
            )
        except Exception:
            logger.exception("Classifier setup failed, refusing to serve")
            raise

        worker_pool = WorkerPool.from_settings(settings)
        app.state.worker_pool = worker_pool
        app.state.suggester = Suggester(
            model,
            extractor,
            ConcordancesClient(http, settings.concordances_url),
            worker_pool,
            threshold=settings.suggestion_threshold,
        )

        logger.info("ConceptSuggest ready (labels=%d)", len(model.per_label_doc_count))
        try:
            yield
        finally:
            logger.info("Shutting down ConceptSuggest")
            worker_pool.shutdown()
    finally:
        await http.aclose()
        logger.info("ConceptSuggest shutdown complete")


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------


def _settings_of(request: Request) -> Settings | None:
    return getattr(request.app.state, "settings", None)


async def _no_suggestions(request: Request, exc: Exception) -> PlainTextResponse:
    return PlainTextResponse("no concepts", status_code=status.HTTP_404_NOT_FOUND)


async def _unavailable(request: Request, exc: Exception) -> PlainTextResponse:
    logger.warning("Request to %s rejected: %s", request.url.path, exc)
    return PlainTextResponse(str(exc), status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


async def _internal_error(request: Request, exc: Exception) -> PlainTextResponse:
    logger.error("Request to %s failed: %s", request.url.path, exc, exc_info=exc)
    settings = _settings_of(request)
    message = str(exc) if settings is not None and settings.expose_error_details else "internal error"
    return PlainTextResponse(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="ConceptSuggest",
        description="Suggests concept annotations for images from the text they contain",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_exception_handler(NoSuggestions, _no_suggestions)
    application.add_exception_handler(ModelNotReady, _unavailable)
    application.add_exception_handler(WorkerPoolSaturated, _unavailable)
    application.add_exception_handler(ConceptSuggestError, _internal_error)

    application.include_router(router)
    return application


app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
