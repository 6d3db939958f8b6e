"""Classifier lifecycle: train fresh or load persisted state, exactly once.

    UNINITIALIZED -> TRAINING | LOADING -> READY
                                        -> FAILED

Setup runs inside the application lifespan, before the server accepts
connections. A failure leaves the lifecycle in FAILED and re-raises so the
caller decides how to exit.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from conceptsuggest.ml.classifier import MultiLabelNaiveBayes

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from conceptsuggest.ml.classifier import TrainingExample
    from conceptsuggest.ml.store import ModelStore

logger = logging.getLogger(__name__)


class ModelState(StrEnum):
    UNINITIALIZED = "uninitialized"
    TRAINING = "training"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ModelLifecycle:
    """Holds the single classifier instance and the state of its construction."""

    def __init__(self) -> None:
        self.state = ModelState.UNINITIALIZED
        self._model: MultiLabelNaiveBayes | None = None

    @property
    def ready(self) -> bool:
        return self.state is ModelState.READY

    @property
    def model(self) -> MultiLabelNaiveBayes | None:
        return self._model

    async def initialize(
        self,
        store: ModelStore,
        build_training_set: Callable[[], Awaitable[list[TrainingExample]]],
        *,
        min_class_size: int,
        smoothing: float,
    ) -> MultiLabelNaiveBayes:
        """Load the persisted classifier, or train and persist a new one.

        Raises:
            CorruptModel: If persisted state fails validation.
            PersistenceError: If a freshly trained model cannot be saved.
            TrainingCorpusError: If the training content ids cannot be read.
        """
        if self.state is not ModelState.UNINITIALIZED:
            raise RuntimeError(f"Classifier already initialized (state={self.state})")

        try:
            if store.exists():
                self.state = ModelState.LOADING
                model = store.load()
                if model.min_class_size != min_class_size:
                    logger.warning(
                        "Persisted min_class_size=%d differs from configured %d; using persisted value",
                        model.min_class_size,
                        min_class_size,
                    )
                if model.smoothing != smoothing:
                    logger.warning(
                        "Persisted smoothing=%s differs from configured %s; using persisted value",
                        model.smoothing,
                        smoothing,
                    )
            else:
                self.state = ModelState.TRAINING
                logger.info("Building classifier...")
                examples = await build_training_set()
                model = MultiLabelNaiveBayes(min_class_size=min_class_size, smoothing=smoothing)
                model.train_all(examples)
                model.freeze()
                store.save(model)
                logger.info("Classifier built (training_set_size=%d)", len(examples))
        except Exception:
            self.state = ModelState.FAILED
            raise

        self._model = model
        self.state = ModelState.READY
        return model
