"""One-vs-rest linear SVM training."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

import numpy as np
from scipy import sparse
from sklearn.svm import LinearSVC

from ..classifiers.linear import LinearClassifier
from ..errors import ConvergenceFailure, DimensionMismatchError, TrainingError
from ..parallel import parallel_map
from ..types import LabeledVariable, LabelToFeatures
from .base import Diagnostic, LinearTrainer, TrainingReport, run_diagnostic, training_inputs

LOGGER = logging.getLogger(__name__)


class BinarySVMSolver(Protocol):
    def train(
        self, features: sparse.csr_matrix, targets: np.ndarray, label_index: int
    ) -> np.ndarray:
        """Fit "is ``label_index``" against the rest; return one weight per feature.

        Raises :class:`ConvergenceFailure` when no valid solution is found.
        """


class LinearL2SVM:
    """Binary L2-loss linear SVM solved by liblinear."""

    def __init__(
        self,
        C: float = 1.0,
        tolerance: float = 1e-4,
        max_iterations: int = 1000,
        random_state: int | None = 0,
    ) -> None:
        if C <= 0:
            raise ValueError("C must be positive")
        self.C = C
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.random_state = random_state

    def train(
        self, features: sparse.csr_matrix, targets: np.ndarray, label_index: int
    ) -> np.ndarray:
        binary = (np.asarray(targets) == label_index).astype(np.int64)
        positives = int(binary.sum())
        if positives == 0 or positives == binary.shape[0]:
            raise ConvergenceFailure(
                f"needs positive and negative instances, got {positives} of {binary.shape[0]}",
                label_index=label_index,
            )
        model = LinearSVC(
            C=self.C,
            loss="squared_hinge",
            penalty="l2",
            dual=True,
            tol=self.tolerance,
            max_iter=self.max_iterations,
            fit_intercept=False,
            random_state=self.random_state,
        )
        model.fit(features, binary)
        if int(np.max(model.n_iter_)) >= self.max_iterations:
            raise ConvergenceFailure(
                f"liblinear did not converge within {self.max_iterations} iterations",
                label_index=label_index,
            )
        return np.asarray(model.coef_, dtype=np.float64).ravel()


class SVMTrainer(LinearTrainer):
    """Trains one binary SVM per category and stacks them as weight rows.

    Every label is solved independently and writes only its own row, so
    ``parallel`` runs the solvers on a thread pool without locking. Failures
    are collected and raised together as a :class:`TrainingError` once every
    label has been attempted.
    """

    def __init__(
        self,
        solver: BinarySVMSolver | None = None,
        *,
        parallel: bool = False,
        workers: int | None = None,
    ) -> None:
        self.solver = solver if solver is not None else LinearL2SVM()
        self.parallel = parallel
        self.workers = workers

    def train(
        self,
        classifier: LinearClassifier,
        labels: Iterable[LabeledVariable],
        label_to_features: LabelToFeatures | None = None,
        diagnostic: Diagnostic | None = None,
    ) -> TrainingReport:
        pairs = training_inputs(classifier, labels, label_to_features)
        targets = np.fromiter(
            (label.target_index for label, _features in pairs), dtype=np.int64, count=len(pairs)
        )
        features = sparse.vstack([vector.matrix for _label, vector in pairs], format="csr")
        num_features = classifier.num_features

        def fit_label(label_index: int) -> tuple[int, np.ndarray | None, ConvergenceFailure | None]:
            try:
                vector = self.solver.train(features, targets, label_index)
            except ConvergenceFailure as failure:
                if failure.label_index is None:
                    failure = ConvergenceFailure(failure.reason, label_index=label_index)
                LOGGER.warning("SVM training failed for %s", failure)
                return label_index, None, failure
            return label_index, np.asarray(vector, dtype=np.float64), None

        workers = self.workers if self.parallel else 1
        results = parallel_map(fit_label, range(classifier.num_labels), workers)

        failures: list[ConvergenceFailure] = []
        for label_index, vector, failure in results:
            if failure is not None:
                failures.append(failure)
                continue
            if vector.shape != (num_features,):
                raise DimensionMismatchError(
                    f"SVM solver returned {vector.shape} weights for label {label_index}, "
                    f"expected ({num_features},)"
                )
            classifier.weights[label_index, :] = vector

        if failures:
            raise TrainingError(failures)
        LOGGER.info(
            "SVM trained %d one-vs-rest models on %d instances",
            classifier.num_labels,
            len(pairs),
        )
        run_diagnostic(diagnostic, 1, classifier)
        return TrainingReport(iterations=1, converged=True)


__all__ = ["BinarySVMSolver", "LinearL2SVM", "SVMTrainer"]
