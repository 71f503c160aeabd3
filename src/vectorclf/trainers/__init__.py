"""Training strategies for vector classifiers."""

from __future__ import annotations

from ..config import Config
from ..optimize.objectives import get_objective
from ..optimize.optimizers import build_optimizer
from .base import (
    ClassifierTrainer,
    Diagnostic,
    LinearTrainer,
    StopTraining,
    TrainingReport,
)
from .gradient import (
    AccuracyDiagnostic,
    BatchGradientTrainer,
    Example,
    GradientTrainer,
    OnlineGradientTrainer,
)
from .naive_bayes import NaiveBayesTrainer
from .svm import BinarySVMSolver, LinearL2SVM, SVMTrainer
from .tree import DecisionTreeTrainer, ID3TreeInducer, TreeInducer, TreeInstance


def build_trainer(config: Config, name: str | None = None) -> ClassifierTrainer:
    """Create the trainer selected by ``name`` (or ``config.trainer``)."""

    selected = (name or config.trainer).strip().lower()
    if selected == "online":
        online = config.gradient
        return OnlineGradientTrainer(
            optimizer=build_optimizer(
                online.optimizer,
                learning_rate=online.learning_rate,
                l2=online.l2,
                averaging=online.averaging,
                tolerance=online.tolerance,
            ),
            objective=get_objective(online.objective),
            parallel=online.parallel,
            max_iterations=online.max_iterations,
            mini_batch=online.mini_batch,
            workers=config.workers,
            random_state=online.random_state,
        )
    if selected == "batch":
        batch = config.batch
        return BatchGradientTrainer(
            optimizer=build_optimizer(
                batch.optimizer,
                learning_rate=batch.learning_rate,
                l2=batch.l2,
                tolerance=batch.tolerance,
            ),
            objective=get_objective(batch.objective),
            parallel=batch.parallel,
            max_iterations=batch.max_iterations,
            workers=config.workers,
        )
    if selected == "naive_bayes":
        return NaiveBayesTrainer(pseudo_count=config.naive_bayes.pseudo_count)
    if selected == "svm":
        svm = config.svm
        return SVMTrainer(
            LinearL2SVM(C=svm.C, tolerance=svm.tolerance, max_iterations=svm.max_iterations),
            parallel=svm.parallel,
            workers=config.workers,
        )
    if selected == "tree":
        return DecisionTreeTrainer(
            ID3TreeInducer(
                max_depth=config.tree.max_depth,
                min_samples_leaf=config.tree.min_samples_leaf,
            )
        )
    raise ValueError(f"Unknown trainer '{selected}'")


__all__ = [
    "AccuracyDiagnostic",
    "BatchGradientTrainer",
    "BinarySVMSolver",
    "ClassifierTrainer",
    "DecisionTreeTrainer",
    "Diagnostic",
    "Example",
    "GradientTrainer",
    "ID3TreeInducer",
    "LinearL2SVM",
    "LinearTrainer",
    "NaiveBayesTrainer",
    "OnlineGradientTrainer",
    "SVMTrainer",
    "StopTraining",
    "TrainingReport",
    "TreeInducer",
    "TreeInstance",
    "build_trainer",
]
