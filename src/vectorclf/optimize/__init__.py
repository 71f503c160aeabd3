"""Optimizers and loss objectives used by the gradient trainer."""

from .objectives import (
    OBJECTIVES,
    HingeMulticlass,
    LogMulticlass,
    MulticlassObjective,
    SquaredMulticlass,
    get_objective,
)
from .optimizers import (
    LBFGS,
    OPTIMIZERS,
    SGD,
    STEP_OPTIMIZERS,
    AdaGrad,
    AnyOptimizer,
    BatchOptimizer,
    GradientDescent,
    GradientOptimizer,
    L2Regularized,
    ParameterAveraging,
    build_optimizer,
)

__all__ = [
    "AdaGrad",
    "AnyOptimizer",
    "BatchOptimizer",
    "GradientDescent",
    "GradientOptimizer",
    "HingeMulticlass",
    "L2Regularized",
    "LBFGS",
    "LogMulticlass",
    "MulticlassObjective",
    "OBJECTIVES",
    "OPTIMIZERS",
    "ParameterAveraging",
    "SGD",
    "STEP_OPTIMIZERS",
    "SquaredMulticlass",
    "build_optimizer",
    "get_objective",
]
