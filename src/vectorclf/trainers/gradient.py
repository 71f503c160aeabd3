"""Iterative gradient-based training of linear classifier weights."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import numpy as np

from ..classifiers.base import BaseClassifier
from ..classifiers.linear import LinearClassifier
from ..optimize.objectives import LogMulticlass, MulticlassObjective
from ..optimize.optimizers import (
    LBFGS,
    AdaGrad,
    AnyOptimizer,
    BatchOptimizer,
    ParameterAveraging,
)
from ..parallel import chunked, default_workers, parallel_map
from ..types import FeatureVector, LabeledVariable, LabelToFeatures
from .base import (
    Diagnostic,
    LinearTrainer,
    StopTraining,
    TrainingReport,
    run_diagnostic,
    training_inputs,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Example:
    """One training instance bound to its target category."""

    features: FeatureVector
    target_index: int

    def accumulate(
        self, weights: np.ndarray, objective: MulticlassObjective, gradient: np.ndarray
    ) -> float:
        """Add this example's loss gradient into ``gradient`` and return its loss."""

        scores = self.features.dot(weights)
        loss, score_gradient = objective.value_and_gradient(scores, self.target_index)
        matrix = self.features.matrix
        if matrix.nnz:
            gradient[:, matrix.indices] += np.outer(score_gradient, matrix.data)
        return loss


class GradientTrainer(LinearTrainer):
    """Fits a linear classifier by minimizing ``objective`` with ``optimizer``.

    In batch mode each pass sums the gradient of every example and takes one
    optimizer step, or, for a :class:`BatchOptimizer` such as L-BFGS, the
    summed objective is handed to the optimizer which runs its own
    iterations. In online mode examples are visited in a shuffled order and
    a step is taken per example, or per mini-batch when ``mini_batch > 0``.
    With ``parallel`` the gradient of a multi-example step is accumulated over
    ``workers`` threads and the partial sums are reduced in chunk order.
    """

    def __init__(
        self,
        optimizer: AnyOptimizer,
        objective: MulticlassObjective,
        *,
        online: bool,
        parallel: bool,
        max_iterations: int,
        mini_batch: int = -1,
        workers: int | None = None,
        random_state: int | None = None,
    ) -> None:
        if optimizer is None or objective is None:
            raise TypeError("GradientTrainer requires both an optimizer and an objective")
        if online and isinstance(optimizer, BatchOptimizer):
            raise ValueError(f"{type(optimizer).__name__} only supports batch training")
        if max_iterations < 0:
            raise ValueError("max_iterations must be non-negative")
        if workers is not None and workers < 1:
            raise ValueError("workers must be at least 1")
        self.optimizer = optimizer
        self.objective = objective
        self.online = online
        self.parallel = parallel
        self.max_iterations = max_iterations
        self.mini_batch = mini_batch
        self.workers = workers if workers is not None else default_workers()
        self._random = np.random.default_rng(random_state)

    def examples(
        self,
        classifier: LinearClassifier,
        labels: Iterable[LabeledVariable],
        label_to_features: LabelToFeatures | None = None,
    ) -> list[Example]:
        return [
            Example(features, label.target_index)
            for label, features in training_inputs(classifier, labels, label_to_features)
        ]

    def train(
        self,
        classifier: LinearClassifier,
        labels: Iterable[LabeledVariable],
        label_to_features: LabelToFeatures | None = None,
        diagnostic: Diagnostic | None = None,
    ) -> TrainingReport:
        examples = self.examples(classifier, labels, label_to_features)
        LOGGER.info(
            "Training %s on %d examples (%d labels, %d features, online=%s, parallel=%s)",
            type(self).__name__,
            len(examples),
            classifier.num_labels,
            classifier.num_features,
            self.online,
            self.parallel,
        )
        if isinstance(self.optimizer, BatchOptimizer):
            return self._minimize(classifier, examples, diagnostic)

        weights = classifier.weights
        losses: list[float] = []
        converged = False
        try:
            for iteration in range(1, self.max_iterations + 1):
                if self.online:
                    loss = self._online_pass(weights, examples)
                else:
                    loss = self._batch_pass(weights, examples)
                losses.append(loss)
                LOGGER.debug("Iteration %d: loss %.6f", iteration, loss)
                run_diagnostic(diagnostic, iteration, classifier)
                if self.optimizer.is_converged:
                    converged = True
                    LOGGER.info("Optimizer converged after %d iteration(s)", iteration)
                    break
        except StopTraining:
            LOGGER.info("Training stopped by diagnostic after %d iteration(s)", len(losses))

        if losses:
            self.optimizer.finalize(weights)
        return TrainingReport(iterations=len(losses), converged=converged, losses=tuple(losses))

    def _minimize(
        self,
        classifier: LinearClassifier,
        examples: Sequence[Example],
        diagnostic: Diagnostic | None,
    ) -> TrainingReport:
        losses: list[float] = []

        def after_iteration(iteration: int, value: float) -> None:
            losses.append(value)
            LOGGER.debug("Iteration %d: objective %.6f", iteration, value)
            run_diagnostic(diagnostic, iteration, classifier)

        try:
            self.optimizer.minimize(
                classifier.weights,
                lambda weights: self._gradient(weights, examples),
                self.max_iterations,
                after_iteration,
            )
        except StopTraining:
            LOGGER.info("Training stopped by diagnostic after %d iteration(s)", len(losses))
            return TrainingReport(iterations=len(losses), converged=False, losses=tuple(losses))

        converged = self.optimizer.is_converged
        if converged:
            LOGGER.info("Optimizer converged after %d iteration(s)", len(losses))
        return TrainingReport(iterations=len(losses), converged=converged, losses=tuple(losses))

    def _batch_pass(self, weights: np.ndarray, examples: Sequence[Example]) -> float:
        loss, gradient = self._gradient(weights, examples)
        self.optimizer.step(weights, gradient, loss)
        return loss

    def _online_pass(self, weights: np.ndarray, examples: Sequence[Example]) -> float:
        order = self._random.permutation(len(examples))
        size = self.mini_batch if self.mini_batch > 0 else 1
        total = 0.0
        for start in range(0, len(order), size):
            batch = [examples[index] for index in order[start : start + size]]
            loss, gradient = self._gradient(weights, batch)
            self.optimizer.step(weights, gradient, loss)
            total += loss
        return total

    def _gradient(
        self, weights: np.ndarray, examples: Sequence[Example]
    ) -> tuple[float, np.ndarray]:
        if not self.parallel or self.workers == 1 or len(examples) < 2:
            return _chunk_gradient(weights, examples, self.objective)

        partials = parallel_map(
            lambda chunk: _chunk_gradient(weights, chunk, self.objective),
            chunked(examples, self.workers),
            self.workers,
        )
        loss = 0.0
        gradient = np.zeros_like(weights)
        for chunk_loss, chunk_gradient in partials:
            loss += chunk_loss
            gradient += chunk_gradient
        return loss, gradient


def _chunk_gradient(
    weights: np.ndarray, examples: Sequence[Example], objective: MulticlassObjective
) -> tuple[float, np.ndarray]:
    gradient = np.zeros_like(weights)
    loss = 0.0
    for example in examples:
        loss += example.accumulate(weights, objective, gradient)
    return loss, gradient


class OnlineGradientTrainer(GradientTrainer):
    """Online training defaults: averaged AdaGrad, log loss, three passes."""

    def __init__(
        self,
        *,
        parallel: bool = False,
        optimizer: AnyOptimizer | None = None,
        objective: MulticlassObjective | None = None,
        max_iterations: int = 3,
        mini_batch: int = -1,
        workers: int | None = None,
        random_state: int | None = None,
    ) -> None:
        super().__init__(
            optimizer if optimizer is not None else ParameterAveraging(AdaGrad()),
            objective if objective is not None else LogMulticlass(),
            online=True,
            parallel=parallel,
            max_iterations=max_iterations,
            mini_batch=mini_batch,
            workers=workers,
            random_state=random_state,
        )


class BatchGradientTrainer(GradientTrainer):
    """Batch training defaults: L2-regularized L-BFGS, log loss, 200 iterations."""

    def __init__(
        self,
        *,
        parallel: bool = True,
        optimizer: AnyOptimizer | None = None,
        objective: MulticlassObjective | None = None,
        max_iterations: int = 200,
        workers: int | None = None,
    ) -> None:
        super().__init__(
            optimizer if optimizer is not None else LBFGS(l2=0.1),
            objective if objective is not None else LogMulticlass(),
            online=False,
            parallel=parallel,
            max_iterations=max_iterations,
            mini_batch=-1,
            workers=workers,
        )


@dataclass
class AccuracyDiagnostic:
    """Logs train and test accuracy after every pass and keeps the history."""

    train_labels: Sequence[LabeledVariable] = ()
    test_labels: Sequence[LabeledVariable] = ()
    history: list[tuple[int, float | None, float | None]] = field(default_factory=list)

    def __call__(self, iteration: int, classifier: BaseClassifier) -> None:
        train = classifier.accuracy(self.train_labels) if self.train_labels else None
        test = classifier.accuracy(self.test_labels) if self.test_labels else None
        self.history.append((iteration, train, test))
        if train is not None:
            LOGGER.info("Iteration %d train accuracy: %.4f", iteration, train)
        if test is not None:
            LOGGER.info("Iteration %d test accuracy: %.4f", iteration, test)


__all__ = [
    "AccuracyDiagnostic",
    "BatchGradientTrainer",
    "Example",
    "GradientTrainer",
    "OnlineGradientTrainer",
]
