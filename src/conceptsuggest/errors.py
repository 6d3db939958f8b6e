"""Exception hierarchy for ConceptSuggest.

Serving errors are translated into HTTP responses by the handlers registered
in ``conceptsuggest.main``. Startup errors propagate out of the lifespan hook
and stop the server from accepting connections.
"""

from __future__ import annotations


class ConceptSuggestError(Exception):
    """Base class for all ConceptSuggest errors."""


# ---------------------------------------------------------------------------
# Collaborator failures
# ---------------------------------------------------------------------------


class ExtractionError(ConceptSuggestError):
    """Optical text extraction failed or returned a malformed response."""


class AnnotationError(ConceptSuggestError):
    """Annotation lookup failed. Only raised while building the training set."""


class ResolutionError(ConceptSuggestError):
    """Concordance lookup failed or answered with a non-success status."""


# ---------------------------------------------------------------------------
# Serving outcomes
# ---------------------------------------------------------------------------


class NoSuggestions(ConceptSuggestError):  # noqa: N818
    """No label cleared the suggestion threshold."""


class ModelNotReady(ConceptSuggestError):  # noqa: N818
    """The classifier has not finished training or loading."""


# ---------------------------------------------------------------------------
# Startup failures
# ---------------------------------------------------------------------------


class CorruptModel(ConceptSuggestError):  # noqa: N818
    """Persisted classifier state failed validation."""


class PersistenceError(ConceptSuggestError):
    """A freshly trained classifier could not be written to disk."""


class TrainingCorpusError(ConceptSuggestError):
    """The list of content identifiers to train on could not be read."""


class WorkerPoolSaturated(ConceptSuggestError):  # noqa: N818
    """No worker slot became free within the queueing timeout."""
