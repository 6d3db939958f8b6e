"""Training-set construction from the content corpus."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import TypeAdapter, ValidationError

from conceptsuggest.errors import AnnotationError, ExtractionError, TrainingCorpusError
from conceptsuggest.ml.classifier import TrainingExample

if TYPE_CHECKING:
    from collections.abc import Iterable

    from conceptsuggest.clients.annotations import AnnotationSource
    from conceptsuggest.clients.rekognition import TextExtractor
    from conceptsuggest.ratelimit import TokenBucket

logger = logging.getLogger(__name__)

_CONTENT_IDS = TypeAdapter(list[str])


def load_training_ids(path: Path | str) -> list[str]:
    """Read the JSON array of content identifiers to train on.

    Raises:
        TrainingCorpusError: If the file is missing or not a list of strings.
    """
    try:
        raw = Path(path).read_bytes()
        return _CONTENT_IDS.validate_json(raw)
    except (OSError, ValidationError) as exc:
        raise TrainingCorpusError(f"Cannot read training content ids from {path}: {exc}") from exc


class TrainingSetBuilder:
    """Pairs each content item's extracted text with its known concept labels.

    A failure for one item is logged and the item skipped; it never aborts
    the run. Every collaborator call first takes a token from ``limiter``.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        annotations: AnnotationSource,
        limiter: TokenBucket,
    ) -> None:
        self._extractor = extractor
        self._annotations = annotations
        self._limiter = limiter

    async def build(self, content_ids: Iterable[str]) -> list[TrainingExample]:
        examples: list[TrainingExample] = []
        skipped = 0
        for content_id in content_ids:
            try:
                example = await self._build_one(content_id)
            except ExtractionError as exc:
                logger.error("Skipping %s, text extraction failed: %s", content_id, exc)
                skipped += 1
                continue
            except AnnotationError as exc:
                logger.error("Skipping %s, annotation lookup failed: %s", content_id, exc)
                skipped += 1
                continue
            examples.append(example)

        logger.info("Built training set (examples=%d, skipped=%d)", len(examples), skipped)
        return examples

    async def _build_one(self, content_id: str) -> TrainingExample:
        await self._limiter.acquire()
        text = await asyncio.to_thread(self._extractor.extract_text, content_id)

        await self._limiter.acquire()
        labels = await self._annotations.get_concept_ids(content_id)

        return TrainingExample(text=text, labels=frozenset(labels))
