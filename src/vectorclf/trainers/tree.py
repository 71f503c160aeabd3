"""Decision tree induction."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import numpy as np
from scipy import sparse
from sklearn.tree import DecisionTreeClassifier as SklearnTree

from ..classifiers.tree import DecisionTreeClassifier
from ..errors import ConvergenceFailure, DimensionMismatchError, EmptyInputError
from ..types import FeatureVector, LabeledVariable, LabelToFeatures
from .base import Diagnostic, check_shapes, run_diagnostic

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeInstance:
    """Weighted training instance with a target distribution over categories."""

    features: FeatureVector
    target: np.ndarray
    weight: float = 1.0


class TreeInducer(Protocol):
    def fit(self, instances: Sequence[TreeInstance]) -> Any:
        """Induce a tree from weighted instances."""

    def score(self, tree: Any, features: FeatureVector) -> np.ndarray:
        """Return the score vector stored at the leaf ``features`` reaches."""


@dataclass(frozen=True)
class InducedTree:
    model: SklearnTree
    num_labels: int
    num_features: int


class ID3TreeInducer:
    """Entropy-split tree; leaves hold weighted category distributions."""

    def __init__(
        self,
        max_depth: int | None = None,
        min_samples_leaf: int = 1,
        random_state: int | None = 0,
    ) -> None:
        self.max_depth = max_depth
        self.min_samples_leaf = min_samples_leaf
        self.random_state = random_state

    def fit(self, instances: Sequence[TreeInstance]) -> InducedTree:
        if not instances:
            raise ConvergenceFailure("cannot induce a tree from zero instances")
        num_labels = int(instances[0].target.shape[0])
        num_features = instances[0].features.dimension
        features = sparse.vstack([instance.features.matrix for instance in instances], format="csr")
        classes = np.array([int(np.argmax(instance.target)) for instance in instances])
        weights = np.array([instance.weight for instance in instances], dtype=np.float64)
        if not np.any(weights > 0):
            raise ConvergenceFailure("cannot induce a tree when every instance weight is zero")
        model = SklearnTree(
            criterion="entropy",
            max_depth=self.max_depth,
            min_samples_leaf=self.min_samples_leaf,
            random_state=self.random_state,
        )
        model.fit(features, classes, sample_weight=weights)
        LOGGER.debug(
            "Induced tree with depth %d and %d leaves", model.get_depth(), model.get_n_leaves()
        )
        return InducedTree(model=model, num_labels=num_labels, num_features=num_features)

    def score(self, tree: InducedTree, features: FeatureVector) -> np.ndarray:
        if features.dimension != tree.num_features:
            raise DimensionMismatchError(
                f"Feature vector of dimension {features.dimension} does not match tree "
                f"trained on {tree.num_features} features"
            )
        distribution = tree.model.predict_proba(features.matrix)[0]
        scores = np.zeros(tree.num_labels, dtype=np.float64)
        scores[tree.model.classes_.astype(np.int64)] = distribution
        return scores


class DecisionTreeTrainer:
    """Builds a :class:`DecisionTreeClassifier` with a pluggable inducer."""

    def __init__(self, inducer: TreeInducer | None = None) -> None:
        self.inducer = inducer if inducer is not None else ID3TreeInducer()

    def fit(
        self,
        labels: Iterable[LabeledVariable],
        label_to_features: LabelToFeatures,
        diagnostic: Diagnostic | None = None,
    ) -> DecisionTreeClassifier:
        labels = list(labels)
        if not labels:
            raise EmptyInputError("training requires at least one labeled instance")
        domain = labels[0].domain.freeze()
        num_labels = len(domain)
        num_features = label_to_features(labels[0]).dimension
        instances: list[TreeInstance] = []
        for label in labels:
            features = label_to_features(label)
            check_shapes(num_labels, num_features, label, features)
            target = np.zeros(num_labels, dtype=np.float64)
            target[label.target_index] = 1.0
            instances.append(TreeInstance(features, target, 1.0))

        tree = self.inducer.fit(instances)
        classifier = DecisionTreeClassifier(tree, self.inducer, label_to_features, num_labels)
        LOGGER.info("Decision tree trained on %d instances", len(instances))
        run_diagnostic(diagnostic, 1, classifier)
        return classifier


__all__ = [
    "DecisionTreeTrainer",
    "ID3TreeInducer",
    "InducedTree",
    "TreeInducer",
    "TreeInstance",
]
