"""Suggestion pipeline: extract text, score labels, resolve concepts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from conceptsuggest.errors import NoSuggestions
from conceptsuggest.models import MENTIONS

if TYPE_CHECKING:
    from collections.abc import Mapping

    from conceptsuggest.clients.concordances import ConceptResolver
    from conceptsuggest.clients.rekognition import TextExtractor
    from conceptsuggest.ml.classifier import MultiLabelNaiveBayes
    from conceptsuggest.models import Concept
    from conceptsuggest.workers import WorkerPool

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD: float = 1e-8


def select_candidates(posterior: Mapping[str, float], threshold: float) -> list[str]:
    """Labels with probability >= threshold, most probable first."""
    ranked = sorted(posterior.items(), key=lambda item: (-item[1], item[0]))
    return [label for label, probability in ranked if probability >= threshold]


class Suggester:
    """Turns a content identifier into resolved concept suggestions.

    Holds a frozen classifier shared by every request.
    """

    def __init__(
        self,
        model: MultiLabelNaiveBayes,
        extractor: TextExtractor,
        resolver: ConceptResolver,
        pool: WorkerPool,
        *,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        if not model.frozen:
            raise ValueError("Suggester requires a frozen classifier")
        self._model = model
        self._extractor = extractor
        self._resolver = resolver
        self._pool = pool
        self._threshold = threshold

    @property
    def model(self) -> MultiLabelNaiveBayes:
        return self._model

    async def suggest(self, content_id: str) -> list[Concept]:
        """Return concepts suggested for the image stored under ``content_id``.

        Raises:
            ExtractionError: If optical text extraction fails.
            NoSuggestions: If no label clears the threshold.
            ResolutionError: If the concordance lookup fails.
            WorkerPoolSaturated: If no worker slot is available.
        """
        posterior = await self._pool.run(self._score, content_id)
        candidates = select_candidates(posterior, self._threshold)
        if not candidates:
            raise NoSuggestions(f"No concepts for {content_id}")

        logger.info("Resolving %d candidate concepts for %s", len(candidates), content_id)
        concepts = await self._resolver.resolve(candidates)
        return [concept.model_copy(update={"predicate": MENTIONS}) for concept in concepts]

    def _score(self, content_id: str) -> dict[str, float]:
        text = self._extractor.extract_text(content_id)
        return self._model.posterior(text)
