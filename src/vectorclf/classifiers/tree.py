"""Classifier backed by an induced decision tree."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from ..errors import DimensionMismatchError
from ..types import Classification, LabelToFeatures, LabelVariable
from .base import BaseClassifier

if TYPE_CHECKING:
    from ..trainers.tree import TreeInducer


class DecisionTreeClassifier(BaseClassifier):
    """Walks ``tree`` to a leaf and reports the leaf's score vector."""

    def __init__(
        self,
        tree: Any,
        inducer: TreeInducer,
        label_to_features: LabelToFeatures | None,
        num_labels: int,
    ) -> None:
        self.tree = tree
        self.inducer = inducer
        self.label_to_features = label_to_features
        self.num_labels = num_labels

    def classification(self, variable: LabelVariable) -> Classification:
        if len(variable.domain) != self.num_labels:
            raise DimensionMismatchError(
                f"Label domain of size {len(variable.domain)} does not match "
                f"{self.num_labels} tree categories"
            )
        scores = np.asarray(self.inducer.score(self.tree, self._features_for(variable)))
        return Classification(variable, scores)


__all__ = ["DecisionTreeClassifier"]
