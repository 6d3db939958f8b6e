"""Shared HTTP client for the content and concept APIs."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from conceptsuggest.config import Settings


def build_http_client(settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Create an async client carrying the API key header and request timeout."""
    return httpx.AsyncClient(
        headers={"x-api-key": settings.api_key},
        timeout=httpx.Timeout(settings.request_timeout),
        transport=transport,
    )
