"""API route definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, status

from conceptsuggest.api.schemas import HealthResponse, SuggestionsResponse
from conceptsuggest.errors import ModelNotReady

if TYPE_CHECKING:
    from conceptsuggest.lifecycle import ModelLifecycle
    from conceptsuggest.suggest import Suggester
    from conceptsuggest.workers import WorkerPool

router = APIRouter()

_PLAIN_TEXT: dict[str, object] = {"content": {"text/plain": {}}}


def _get_lifecycle(request: Request) -> ModelLifecycle:
    lifecycle: ModelLifecycle = request.app.state.lifecycle
    return lifecycle


def _get_suggester(request: Request) -> Suggester:
    if not _get_lifecycle(request).ready:
        raise ModelNotReady("Classifier is not ready")
    suggester: Suggester = request.app.state.suggester
    return suggester


@router.get(
    "/content/{uuid}/suggest",
    response_model=SuggestionsResponse,
    response_model_exclude_none=True,
    responses={
        status.HTTP_404_NOT_FOUND: _PLAIN_TEXT,
        status.HTTP_500_INTERNAL_SERVER_ERROR: _PLAIN_TEXT,
        status.HTTP_503_SERVICE_UNAVAILABLE: _PLAIN_TEXT,
    },
    summary="Suggest concepts for an image",
)
async def suggest(uuid: str, request: Request) -> SuggestionsResponse:
    """Extract the image's text, classify it, and resolve the predicted concepts."""
    suggester = _get_suggester(request)
    concepts = await suggester.suggest(uuid)
    return SuggestionsResponse(suggestions=concepts)


@router.get(
    "/__health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return classifier state and worker pool load."""
    lifecycle = _get_lifecycle(request)
    model = lifecycle.model
    pool: WorkerPool | None = getattr(request.app.state, "worker_pool", None)
    return HealthResponse(
        status="ok" if lifecycle.ready else "unavailable",
        model_state=lifecycle.state.value,
        labels=len(model.per_label_doc_count) if model is not None else 0,
        training_documents=model.total_doc_count if model is not None else 0,
        concurrent_requests=pool.active_count if pool is not None else 0,
        queue_depth=pool.queue_depth if pool is not None else 0,
    )

