"""Multi-label multinomial Naive-Bayes classifier.

Each label is scored independently as a binary problem: documents carrying
the label against the complement class of documents that do not. Term
likelihoods use additive (Laplace) smoothing and are accumulated in log
space so long texts do not underflow.

The model is trained once, frozen, and then shared read-only between
request workers. Nothing in ``posterior`` mutates state, so concurrent
inference needs no locking.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from conceptsuggest.ml.tokenizer import tokenize

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


@dataclass(frozen=True)
class TrainingExample:
    """Extracted text of one content item and the concept labels it carries."""

    text: str
    labels: frozenset[str]


class MultiLabelNaiveBayes:
    """Bag-of-terms classifier with cumulative counts.

    Training the same example twice doubles its contribution; there is no
    deduplication.
    """

    def __init__(self, *, min_class_size: int = 0, smoothing: float = 1.0) -> None:
        if min_class_size < 0:
            raise ValueError(f"min_class_size must be >= 0, got {min_class_size}")
        if smoothing <= 0:
            raise ValueError(f"smoothing must be > 0, got {smoothing}")

        self.min_class_size = min_class_size
        self.smoothing = smoothing

        self.vocabulary: Counter[str] = Counter()
        self.per_label_term_counts: dict[str, Counter[str]] = {}
        self.per_label_doc_count: Counter[str] = Counter()
        self.total_doc_count: int = 0

        # Derived totals, rebuilt on load rather than persisted.
        self._label_term_totals: Counter[str] = Counter()
        self._vocabulary_total: int = 0
        self._frozen = False

    @classmethod
    def from_counts(
        cls,
        *,
        vocabulary: Mapping[str, int],
        per_label_term_counts: Mapping[str, Mapping[str, int]],
        per_label_doc_count: Mapping[str, int],
        total_doc_count: int,
        min_class_size: int = 0,
        smoothing: float = 1.0,
    ) -> MultiLabelNaiveBayes:
        """Rebuild a frozen model from previously learned counts."""
        model = cls(min_class_size=min_class_size, smoothing=smoothing)
        model.vocabulary = Counter(vocabulary)
        model.per_label_term_counts = {label: Counter(terms) for label, terms in per_label_term_counts.items()}
        model.per_label_doc_count = Counter(per_label_doc_count)
        model.total_doc_count = total_doc_count
        model._label_term_totals = Counter(
            {label: sum(terms.values()) for label, terms in model.per_label_term_counts.items()}
        )
        model._vocabulary_total = sum(model.vocabulary.values())
        return model.freeze()

    # -- Training -----------------------------------------------------------

    def train(self, example: TrainingExample) -> None:
        """Add one example's term counts to every label it carries."""
        if self._frozen:
            raise RuntimeError("Classifier is frozen and cannot be trained further")

        terms = Counter(tokenize(example.text))
        term_total = sum(terms.values())

        for label in example.labels:
            self.per_label_doc_count[label] += 1
            self.per_label_term_counts.setdefault(label, Counter()).update(terms)
            self._label_term_totals[label] += term_total

        self.vocabulary.update(terms)
        self._vocabulary_total += term_total
        self.total_doc_count += 1

    def train_all(self, examples: Iterable[TrainingExample]) -> int:
        """Train on every example and return how many were consumed."""
        count = 0
        for example in examples:
            self.train(example)
            count += 1
        return count

    def freeze(self) -> MultiLabelNaiveBayes:
        """Mark the model read-only and return it."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def labels(self) -> list[str]:
        """All labels seen in training, sorted."""
        return sorted(self.per_label_doc_count)

    # -- Inference ----------------------------------------------------------

    def eligible_labels(self) -> list[str]:
        """Labels with at least ``min_class_size`` training documents."""
        return [label for label in self.labels if self.per_label_doc_count[label] >= self.min_class_size]

    def posterior(self, text: str) -> dict[str, float]:
        """Return the probability of each eligible label given ``text``.

        An untrained model, or text without any terms, yields an empty
        mapping. A label missing from the result is not predicted.
        """
        if self.total_doc_count == 0:
            return {}

        terms = Counter(tokenize(text))
        if not terms:
            return {}

        query = list(terms)
        weights = np.array([terms[t] for t in query], dtype=np.float64)
        global_counts = np.array([self.vocabulary.get(t, 0) for t in query], dtype=np.float64)

        alpha = self.smoothing
        smoothed_vocab = alpha * max(len(self.vocabulary), 1)
        total = self.total_doc_count

        predictions: dict[str, float] = {}
        for label in self.eligible_labels():
            label_docs = self.per_label_doc_count[label]
            complement_docs = total - label_docs
            if complement_docs <= 0:
                # Every training document carries this label.
                predictions[label] = 1.0
                continue

            label_term_counts = self.per_label_term_counts.get(label, Counter())
            label_counts = np.array([label_term_counts.get(t, 0) for t in query], dtype=np.float64)
            label_total = self._label_term_totals[label]
            complement_counts = global_counts - label_counts
            complement_total = self._vocabulary_total - label_total

            log_label = math.log(label_docs / total) + float(
                np.dot(weights, np.log((label_counts + alpha) / (label_total + smoothed_vocab)))
            )
            log_complement = math.log(complement_docs / total) + float(
                np.dot(weights, np.log((complement_counts + alpha) / (complement_total + smoothed_vocab)))
            )

            predictions[label] = float(np.exp(log_label - np.logaddexp(log_label, log_complement)))

        return predictions
