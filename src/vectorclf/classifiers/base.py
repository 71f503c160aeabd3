"""Classifier protocol and shared scoring operations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from ..errors import EmptyInputError
from ..parallel import parallel_map
from ..types import Classification, LabeledVariable, LabelToFeatures, LabelVariable

@runtime_checkable
class Classifier(Protocol):
    """Common interface shared by all classifiers."""

    def classification(self, variable: LabelVariable) -> Classification:
        """Score ``variable`` without changing its value."""

    def classifications(
        self, variables: Iterable[LabelVariable], *, workers: int | None = None
    ) -> list[Classification]:
        """Score every variable, preserving input order."""

    def classify(self, variable: LabeledVariable) -> Classification:
        """Score ``variable`` and set its value to the best category."""

    def classify_all(
        self, variables: Iterable[LabeledVariable], *, workers: int | None = None
    ) -> list[Classification]:
        """Classify every variable, preserving input order."""

    def best_index(self, variable: LabelVariable) -> int:
        """Return the index of the best scoring category."""

    def accuracy(self, labels: Iterable[LabeledVariable]) -> float:
        """Return the fraction of labels whose best category is the target."""


class BaseClassifier(ABC):
    """Implements the batch operations of :class:`Classifier` on top of ``classification``.

    Scoring is read-only, so ``classifications`` may fan out over a thread pool.
    Training and scoring the same model at once is the caller's responsibility
    to serialize.
    """

    label_to_features: LabelToFeatures | None

    @abstractmethod
    def classification(self, variable: LabelVariable) -> Classification:
        raise NotImplementedError

    def classifications(
        self, variables: Iterable[LabelVariable], *, workers: int | None = None
    ) -> list[Classification]:
        return parallel_map(self.classification, list(variables), workers)

    def classify(self, variable: LabeledVariable) -> Classification:
        setter = getattr(variable, "set_index", None)
        if setter is None:
            raise TypeError(f"{type(variable).__name__} is immutable and cannot be classified")
        result = self.classification(variable)
        setter(result.best_index)
        return result

    def classify_all(
        self, variables: Iterable[LabeledVariable], *, workers: int | None = None
    ) -> list[Classification]:
        return parallel_map(self.classify, list(variables), workers)

    def best_index(self, variable: LabelVariable) -> int:
        return self.classification(variable).best_index

    def accuracy(self, labels: Iterable[LabeledVariable]) -> float:
        labels = list(labels)
        if not labels:
            raise EmptyInputError("accuracy is undefined for zero labeled instances")
        correct = sum(1 for label in labels if self.best_index(label) == label.target_index)
        return correct / len(labels)

    def _features_for(self, variable: LabelVariable):
        if self.label_to_features is None:
            raise TypeError(f"{type(self).__name__} has no label_to_features mapping")
        return self.label_to_features(variable)


__all__ = ["BaseClassifier", "Classifier"]
