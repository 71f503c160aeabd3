"""Closed-form multinomial Naive Bayes training."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import numpy as np

from ..classifiers.linear import LinearClassifier
from ..types import LabeledVariable, LabelToFeatures
from .base import Diagnostic, LinearTrainer, TrainingReport, run_diagnostic, training_inputs

LOGGER = logging.getLogger(__name__)
DEFAULT_PSEUDO_COUNT = 0.1


class NaiveBayesTrainer(LinearTrainer):
    """Sets weights to smoothed log feature probabilities per category.

    Every count starts at ``pseudo_count``, so each weight stays finite. There
    is no class prior; include a feature that is always 1.0 to learn one.
    """

    def __init__(self, pseudo_count: float = DEFAULT_PSEUDO_COUNT) -> None:
        if not pseudo_count > 0:
            raise ValueError("pseudo_count must be positive")
        self.pseudo_count = pseudo_count

    def train(
        self,
        classifier: LinearClassifier,
        labels: Iterable[LabeledVariable],
        label_to_features: LabelToFeatures | None = None,
        diagnostic: Diagnostic | None = None,
    ) -> TrainingReport:
        pairs = training_inputs(classifier, labels, label_to_features)
        counts = np.full(classifier.weights.shape, self.pseudo_count, dtype=np.float64)
        for label, features in pairs:
            matrix = features.matrix
            if not matrix.nnz:
                continue
            if np.any(matrix.data < 0):
                raise ValueError(f"Naive Bayes needs non-negative feature values ({label!r})")
            counts[label.target_index, matrix.indices] += matrix.data

        totals = counts.sum(axis=1, keepdims=True)
        classifier.weights[...] = np.log(counts / totals)
        LOGGER.info(
            "Naive Bayes trained on %d instances (%d labels, %d features)",
            len(pairs),
            classifier.num_labels,
            classifier.num_features,
        )
        run_diagnostic(diagnostic, 1, classifier)
        return TrainingReport(iterations=1, converged=True)


__all__ = ["DEFAULT_PSEUDO_COUNT", "NaiveBayesTrainer"]
