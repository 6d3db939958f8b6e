"""Annotation lookup: concept labels already attached to a content item."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from pydantic import TypeAdapter, ValidationError

from conceptsuggest.errors import AnnotationError
from conceptsuggest.models import LABEL_PREDICATES, Annotation

logger = logging.getLogger(__name__)

_ANNOTATIONS = TypeAdapter(list[Annotation])


class AnnotationSource(Protocol):
    """Protocol for the annotation lookup collaborator."""

    async def get_concept_ids(self, content_id: str) -> list[str]:
        """Return the "about" and "mentions" concept ids of a content item.

        Raises:
            AnnotationError: If the lookup fails.
        """
        ...


class AnnotationsClient:
    """Reads ``/content/{uuid}/annotations`` from the content API."""

    def __init__(self, http: httpx.AsyncClient, base_url: str) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")

    async def get_concept_ids(self, content_id: str) -> list[str]:
        url = f"{self._base_url}/content/{content_id}/annotations"
        try:
            response = await self._http.get(url)
            response.raise_for_status()
            annotations = _ANNOTATIONS.validate_json(response.content)
        except httpx.HTTPError as exc:
            raise AnnotationError(f"Annotation lookup failed for {content_id}: {exc}") from exc
        except ValidationError as exc:
            raise AnnotationError(f"Malformed annotations for {content_id}: {exc}") from exc

        concept_ids = [a.concept_id for a in annotations if a.predicate in LABEL_PREDICATES]
        logger.debug("Content %s has %d labelled annotations", content_id, len(concept_ids))
        return concept_ids
