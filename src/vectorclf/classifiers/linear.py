"""Linear classifier: one dot product per category."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np

from ..errors import DimensionMismatchError, EmptyInputError
from ..types import Classification, FeatureVector, LabelToFeatures, LabelVariable
from .base import BaseClassifier


class LinearClassifier(BaseClassifier):
    """Scores categories with ``weights @ features``.

    ``weights`` has shape ``(num_labels, num_features)`` and is zero filled
    unless an existing matrix is passed in. A passed matrix is used as is, so
    classifiers built around the same array train and score identically.
    """

    def __init__(
        self,
        num_labels: int,
        num_features: int,
        label_to_features: LabelToFeatures | None,
        weights: np.ndarray | None = None,
    ) -> None:
        if num_labels < 1:
            raise ValueError("num_labels must be at least 1")
        if num_features < 0:
            raise ValueError("num_features must be non-negative")
        if weights is None:
            weights = np.zeros((num_labels, num_features), dtype=np.float64)
        elif not isinstance(weights, np.ndarray) or weights.dtype != np.float64:
            raise TypeError("weights must be a float64 numpy array")
        elif weights.shape != (num_labels, num_features):
            raise DimensionMismatchError(
                f"Weight matrix of shape {weights.shape} does not match "
                f"({num_labels}, {num_features})"
            )
        self.weights = weights
        self.label_to_features = label_to_features

    @classmethod
    def for_labels(
        cls, labels: Iterable[LabelVariable], label_to_features: LabelToFeatures
    ) -> LinearClassifier:
        """Create an untrained classifier sized from the first label."""

        first = next(iter(labels), None)
        if first is None:
            raise EmptyInputError("cannot size a classifier from zero labels")
        first.domain.freeze()
        features = label_to_features(first)
        return cls(len(first.domain), features.dimension, label_to_features)

    @property
    def num_labels(self) -> int:
        return int(self.weights.shape[0])

    @property
    def num_features(self) -> int:
        return int(self.weights.shape[1])

    def score(self, features: FeatureVector) -> np.ndarray:
        if features.dimension != self.num_features:
            raise DimensionMismatchError(
                f"Feature vector of dimension {features.dimension} does not match "
                f"{self.num_features} features"
            )
        return features.dot(self.weights)

    def classification(self, variable: LabelVariable) -> Classification:
        return Classification(variable, self._variable_scores(variable))

    def best_index(self, variable: LabelVariable) -> int:
        return int(np.argmax(self._variable_scores(variable)))

    def _variable_scores(self, variable: LabelVariable) -> np.ndarray:
        if len(variable.domain) != self.num_labels:
            raise DimensionMismatchError(
                f"Label domain of size {len(variable.domain)} does not match "
                f"{self.num_labels} weight rows"
            )
        return self.score(self._features_for(variable))

    def __repr__(self) -> str:
        return f"LinearClassifier(num_labels={self.num_labels}, num_features={self.num_features})"


__all__ = ["LinearClassifier"]
