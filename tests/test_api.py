"""Tests for the ConceptSuggest HTTP API."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING
from unittest.mock import patch

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI, status

from conceptsuggest.clients.concordances import ConcordancesClient
from conceptsuggest.clients.http import build_http_client
from conceptsuggest.config import get_settings
from conceptsuggest.lifecycle import ModelLifecycle
from conceptsuggest.main import create_app
from conceptsuggest.ml.classifier import TrainingExample
from conceptsuggest.ml.store import ModelStore
from conceptsuggest.models import MENTIONS
from conceptsuggest.suggest import Suggester
from conceptsuggest.workers import WorkerPool
from tests.fakes import FakeExtractor

TRAINING_SET = [
    TrainingExample("cat sat on mat", frozenset({"animal"})),
    TrainingExample("stock market rally", frozenset({"finance"})),
]

TEXTS = {
    "img-cat": "cat on a mat",
    "img-blank": "",
}

CONCORDANCES = {
    "concepts": {
        "animal": {
            "id": "http://www.ft.com/thing/animal",
            "apiUrl": "http://api.ft.com/things/animal",
            "type": "http://www.ft.com/ontology/Topic",
            "prefLabel": "Animals",
        },
        "finance": {
            "id": "http://www.ft.com/thing/finance",
            "prefLabel": "Finance",
            "isFTAuthor": False,
        },
    }
}


def _concordances_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=CONCORDANCES)


def _concordances_down(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503, text="unavailable")


async def _init_app_state(
    app: FastAPI,
    tmp_path: Path,
    *,
    extractor: FakeExtractor | None = None,
    concordances: Callable[[httpx.Request], httpx.Response] = _concordances_ok,
    **env_overrides: str,
) -> None:
    """Manually initialize app state (ASGITransport does not trigger lifespan)."""
    with patch.dict(os.environ, env_overrides):
        settings = get_settings()
    app.state.settings = settings

    lifecycle = ModelLifecycle()
    model = await lifecycle.initialize(
        ModelStore(tmp_path / "classifier.json"),
        _training_set,
        min_class_size=settings.min_class_size,
        smoothing=settings.smoothing,
    )
    app.state.lifecycle = lifecycle

    pool = WorkerPool.from_settings(settings)
    http = build_http_client(settings, transport=httpx.MockTransport(concordances))
    app.state.worker_pool = pool
    app.state.http = http
    app.state.suggester = Suggester(
        model,
        extractor or FakeExtractor(TEXTS),
        ConcordancesClient(http, settings.concordances_url),
        pool,
        threshold=settings.suggestion_threshold,
    )


async def _training_set() -> list[TrainingExample]:
    return TRAINING_SET


async def _make_client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://testserver",
    ) as ac:
        yield ac
    pool: WorkerPool | None = getattr(app.state, "worker_pool", None)
    if pool is not None:
        pool.shutdown()
    http: httpx.AsyncClient | None = getattr(app.state, "http", None)
    if http is not None:
        await http.aclose()


@pytest.fixture()
async def app(tmp_path: Path) -> FastAPI:
    """Create a fresh app instance with a trained classifier."""
    application = create_app()
    await _init_app_state(application, tmp_path)
    return application


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client for testing the app."""
    async for ac in _make_client(app):
        yield ac


class TestSuggestEndpoint:
    async def test_returns_suggestions(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/content/img-cat/suggest")

        assert response.status_code == status.HTTP_200_OK
        suggestions = response.json()["suggestions"]
        assert [s["prefLabel"] for s in suggestions] == ["Animals", "Finance"]
        assert all(s["predicate"] == MENTIONS for s in suggestions)

    async def test_uses_wire_field_names_and_omits_unset_fields(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/content/img-cat/suggest")

        animal, finance = response.json()["suggestions"]
        assert animal == {
            "id": "http://www.ft.com/thing/animal",
            "apiUrl": "http://api.ft.com/things/animal",
            "type": "http://www.ft.com/ontology/Topic",
            "prefLabel": "Animals",
            "predicate": MENTIONS,
        }
        assert finance["isFTAuthor"] is False
        assert "apiUrl" not in finance

    async def test_no_concepts_returns_404(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/content/img-blank/suggest")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "no concepts"

    async def test_extraction_failure_returns_generic_500(self, tmp_path: Path) -> None:
        app = create_app()
        await _init_app_state(app, tmp_path, extractor=FakeExtractor(TEXTS, failing={"img-cat"}))
        async for ac in _make_client(app):
            response = await ac.get("/content/img-cat/suggest")
            assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
            assert response.headers["content-type"].startswith("text/plain")
            assert response.text == "internal error"

    async def test_error_details_exposed_when_enabled(self, tmp_path: Path) -> None:
        app = create_app()
        await _init_app_state(
            app,
            tmp_path,
            extractor=FakeExtractor(TEXTS, failing={"img-cat"}),
            CONCEPTSUGGEST_EXPOSE_ERROR_DETAILS="true",
        )
        async for ac in _make_client(app):
            response = await ac.get("/content/img-cat/suggest")
            assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
            assert "img-cat" in response.text

    async def test_concordance_failure_returns_500(self, tmp_path: Path) -> None:
        app = create_app()
        await _init_app_state(
            app,
            tmp_path,
            concordances=_concordances_down,
            CONCEPTSUGGEST_EXPOSE_ERROR_DETAILS="true",
        )
        async for ac in _make_client(app):
            response = await ac.get("/content/img-cat/suggest")
            assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
            assert "503" in response.text
            assert "suggestions" not in response.text

    async def test_threshold_from_settings(self, tmp_path: Path) -> None:
        app = create_app()
        await _init_app_state(app, tmp_path, CONCEPTSUGGEST_SUGGESTION_THRESHOLD="0.99")
        async for ac in _make_client(app):
            response = await ac.get("/content/img-cat/suggest")
            assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_not_ready_returns_503(self) -> None:
        app = create_app()
        app.state.settings = get_settings()
        app.state.lifecycle = ModelLifecycle()
        async for ac in _make_client(app):
            response = await ac.get("/content/img-cat/suggest")
            assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
            assert "not ready" in response.text


class TestHealthEndpoint:
    async def test_health_reports_ready_model(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/__health")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ok"
        assert data["model_state"] == "ready"
        assert data["labels"] == 2
        assert data["training_documents"] == 2
        assert isinstance(data["concurrent_requests"], int)
        assert isinstance(data["queue_depth"], int)

    async def test_health_before_model_is_ready(self) -> None:
        app = create_app()
        app.state.lifecycle = ModelLifecycle()
        async for ac in _make_client(app):
            response = await ac.get("/__health")
            data = response.json()
            assert data["status"] == "unavailable"
            assert data["model_state"] == "uninitialized"
            assert data["labels"] == 0
            assert data["concurrent_requests"] == 0
