"""Concordance resolution: concept ids to full concept records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import httpx
from pydantic import ValidationError

from conceptsuggest.errors import ResolutionError
from conceptsuggest.models import Concept, InternalConcordancesResponse

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


class ConceptResolver(Protocol):
    """Protocol for the concordance resolution collaborator."""

    async def resolve(self, concept_ids: Iterable[str]) -> list[Concept]:
        """Resolve concept ids in a single batched call.

        Raises:
            ResolutionError: On transport failure, non-success status, or malformed body.
        """
        ...


class ConcordancesClient:
    """Reads ``/internalconcordances?ids=...`` from the concept API."""

    def __init__(self, http: httpx.AsyncClient, base_url: str) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")

    async def resolve(self, concept_ids: Iterable[str]) -> list[Concept]:
        # Sorted so the same candidate set always produces the same query.
        ids = sorted(set(concept_ids))
        if not ids:
            return []

        params = [("ids", concept_id) for concept_id in ids]
        try:
            response = await self._http.get(f"{self._base_url}/internalconcordances", params=params)
        except httpx.HTTPError as exc:
            raise ResolutionError(f"Concordance lookup failed: {exc}") from exc

        if not response.is_success:
            raise ResolutionError(f"Unexpected status from internal concordances: {response.status_code}")

        try:
            body = InternalConcordancesResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise ResolutionError(f"Malformed internal concordances response: {exc}") from exc

        logger.debug("Resolved %d of %d concept ids", len(body.concepts), len(ids))
        return list(body.concepts.values())
