"""Model store: persist and restore classifier state as a JSON document.

The document holds every learned count plus the configured minimum class
size and smoothing, so loading needs no recomputation beyond derived totals.
Writes go to a temporary file in the target directory and are moved into
place with ``os.replace``; a crash mid-write leaves the previous file (or
none) rather than a truncated one.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from conceptsuggest.errors import CorruptModel, PersistenceError
from conceptsuggest.ml.classifier import MultiLabelNaiveBayes

logger = logging.getLogger(__name__)

Count = Annotated[int, Field(ge=0, strict=True)]


class ClassifierState(BaseModel):
    """On-disk layout of a trained classifier."""

    model_config = ConfigDict(extra="forbid")

    vocabulary: dict[str, Count]
    per_label_term_counts: dict[str, dict[str, Count]]
    per_label_doc_count: dict[str, Count]
    total_doc_count: Count
    min_class_size: Count
    smoothing: float = Field(default=1.0, gt=0)

    @model_validator(mode="after")
    def _check_consistency(self) -> ClassifierState:
        unknown = set(self.per_label_term_counts) - set(self.per_label_doc_count)
        if unknown:
            raise ValueError(f"term counts for labels without document counts: {sorted(unknown)}")
        for label, docs in self.per_label_doc_count.items():
            if docs > self.total_doc_count:
                raise ValueError(f"label {label!r} has {docs} documents but only {self.total_doc_count} were seen")
        for label, terms in self.per_label_term_counts.items():
            for term, count in terms.items():
                seen = self.vocabulary.get(term)
                if seen is None:
                    raise ValueError(f"label {label!r} counts term {term!r} missing from the vocabulary")
                if count > seen:
                    raise ValueError(
                        f"label {label!r} counts term {term!r} {count} times but the vocabulary has {seen}"
                    )
        return self

    @classmethod
    def from_model(cls, model: MultiLabelNaiveBayes) -> ClassifierState:
        return cls(
            vocabulary=dict(model.vocabulary),
            per_label_term_counts={label: dict(terms) for label, terms in model.per_label_term_counts.items()},
            per_label_doc_count=dict(model.per_label_doc_count),
            total_doc_count=model.total_doc_count,
            min_class_size=model.min_class_size,
            smoothing=model.smoothing,
        )

    def to_model(self) -> MultiLabelNaiveBayes:
        return MultiLabelNaiveBayes.from_counts(
            vocabulary=self.vocabulary,
            per_label_term_counts=self.per_label_term_counts,
            per_label_doc_count=self.per_label_doc_count,
            total_doc_count=self.total_doc_count,
            min_class_size=self.min_class_size,
            smoothing=self.smoothing,
        )


class ModelStore:
    """Reads and writes a single classifier document at ``path``."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        """Return True if persisted classifier state is present."""
        return self._path.is_file()

    def load(self) -> MultiLabelNaiveBayes:
        """Deserialize and validate the persisted classifier.

        Raises:
            CorruptModel: If the file cannot be read or fails validation.
        """
        try:
            raw = self._path.read_bytes()
        except OSError as exc:
            raise CorruptModel(f"Cannot read classifier from {self._path}: {exc}") from exc

        try:
            state = ClassifierState.model_validate_json(raw)
        except ValidationError as exc:
            raise CorruptModel(f"Invalid classifier state in {self._path}: {exc}") from exc

        model = state.to_model()
        logger.info(
            "Loaded classifier from %s (%d labels, %d documents)",
            self._path,
            len(model.per_label_doc_count),
            model.total_doc_count,
        )
        return model

    def save(self, model: MultiLabelNaiveBayes) -> None:
        """Atomically write the full classifier state.

        Raises:
            PersistenceError: If the document cannot be written.
        """
        payload = ClassifierState.from_model(model).model_dump_json()
        directory = self._path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)
            raise PersistenceError(f"Cannot write classifier to {self._path}: {exc}") from exc

        logger.info("Saved classifier to %s", self._path)
