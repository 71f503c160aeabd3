"""Trainer protocols and helpers shared by every training strategy."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from ..classifiers.base import BaseClassifier
from ..classifiers.linear import LinearClassifier
from ..errors import DimensionMismatchError, EmptyInputError
from ..types import FeatureVector, LabeledVariable, LabelToFeatures

Diagnostic = Callable[[int, BaseClassifier], None]


class StopTraining(Exception):
    """Raised from a diagnostic callback to end training after the current pass."""


@dataclass(frozen=True)
class TrainingReport:
    """Summary of one trainer invocation."""

    iterations: int
    converged: bool
    losses: tuple[float, ...] = ()


class ClassifierTrainer(Protocol):
    """Anything that can build a trained classifier from labeled data."""

    def fit(
        self,
        labels: Iterable[LabeledVariable],
        label_to_features: LabelToFeatures,
        diagnostic: Diagnostic | None = None,
    ) -> BaseClassifier:
        """Create, train and return a new classifier."""


class LinearTrainer(ABC):
    """Base for trainers that populate a :class:`LinearClassifier` weight matrix."""

    def fit(
        self,
        labels: Iterable[LabeledVariable],
        label_to_features: LabelToFeatures,
        diagnostic: Diagnostic | None = None,
    ) -> LinearClassifier:
        labels = list(labels)
        classifier = LinearClassifier.for_labels(labels, label_to_features)
        self.train(classifier, labels, label_to_features, diagnostic)
        return classifier

    @abstractmethod
    def train(
        self,
        classifier: LinearClassifier,
        labels: Iterable[LabeledVariable],
        label_to_features: LabelToFeatures | None = None,
        diagnostic: Diagnostic | None = None,
    ) -> TrainingReport:
        """Train ``classifier`` in place, possibly continuing earlier training."""


def training_inputs(
    classifier: LinearClassifier,
    labels: Iterable[LabeledVariable],
    label_to_features: LabelToFeatures | None,
) -> list[tuple[LabeledVariable, FeatureVector]]:
    """Resolve and validate the feature vector of every training label."""

    mapping = label_to_features or classifier.label_to_features
    if mapping is None:
        raise TypeError("A label_to_features mapping is required for training")
    pairs: list[tuple[LabeledVariable, FeatureVector]] = []
    for label in labels:
        features = mapping(label)
        check_shapes(classifier.num_labels, classifier.num_features, label, features)
        pairs.append((label, features))
    if not pairs:
        raise EmptyInputError("training requires at least one labeled instance")
    return pairs


def check_shapes(
    num_labels: int, num_features: int, label: LabeledVariable, features: FeatureVector
) -> None:
    if len(label.domain) != num_labels:
        raise DimensionMismatchError(
            f"Label {label!r} has a domain of size {len(label.domain)}, expected {num_labels}"
        )
    if features.dimension != num_features:
        raise DimensionMismatchError(
            f"Features of {label!r} have dimension {features.dimension}, expected {num_features}"
        )


def run_diagnostic(
    diagnostic: Diagnostic | None, iteration: int, classifier: BaseClassifier
) -> None:
    """Call ``diagnostic`` with the classifier's weights locked against writes.

    Diagnostics observe training; assigning into ``classifier.weights`` from
    one raises ``ValueError``.
    """

    if diagnostic is None:
        return
    weights = getattr(classifier, "weights", None)
    if not isinstance(weights, np.ndarray) or not weights.flags.writeable:
        diagnostic(iteration, classifier)
        return
    weights.setflags(write=False)
    try:
        diagnostic(iteration, classifier)
    finally:
        weights.setflags(write=True)


__all__ = [
    "ClassifierTrainer",
    "Diagnostic",
    "LinearTrainer",
    "StopTraining",
    "TrainingReport",
    "check_shapes",
    "run_diagnostic",
    "training_inputs",
]
