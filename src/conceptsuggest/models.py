"""Domain records shared by the collaborator clients and the API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

ABOUT = "http://www.ft.com/ontology/annotation/about"
MENTIONS = "http://www.ft.com/ontology/annotation/mentions"

LABEL_PREDICATES: frozenset[str] = frozenset({ABOUT, MENTIONS})


class Annotation(BaseModel):
    """A single content annotation as returned by the annotations API."""

    model_config = ConfigDict(extra="ignore")

    predicate: str
    id: str

    @property
    def concept_id(self) -> str:
        """Last path segment of the concept URI."""
        return self.id.rsplit("/", 1)[-1]


class Concept(BaseModel):
    """A resolved concept record."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    api_url: str | None = Field(default=None, alias="apiUrl")
    type: str | None = None
    pref_label: str | None = Field(default=None, alias="prefLabel")
    is_ft_author: bool | None = Field(default=None, alias="isFTAuthor")
    predicate: str | None = None


class InternalConcordancesResponse(BaseModel):
    """Body of the internal concordances endpoint."""

    model_config = ConfigDict(extra="ignore")

    concepts: dict[str, Concept] = Field(default_factory=dict)
