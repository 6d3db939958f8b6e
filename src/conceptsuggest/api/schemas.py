"""Pydantic response schemas for the ConceptSuggest API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from conceptsuggest.models import Concept


class SuggestionsResponse(BaseModel):
    """Concepts suggested for a content item."""

    suggestions: list[Concept]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    model_state: str = Field(description="'uninitialized', 'training', 'loading', 'ready' or 'failed'")
    labels: int = Field(description="Number of concept labels known to the classifier")
    training_documents: int
    concurrent_requests: int
    queue_depth: int
