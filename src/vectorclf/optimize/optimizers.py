"""Optimizers that update a weight matrix in place.

Step optimizers are handed one gradient at a time by the trainer; gradients
are gradients of a loss, so every optimizer moves the weights against them.
Batch optimizers are handed the whole objective and run their own iterations.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Protocol, Union, runtime_checkable

import numpy as np
from scipy.optimize import OptimizeResult, minimize


@runtime_checkable
class GradientOptimizer(Protocol):
    """Stateful update rule applied once per training step."""

    @property
    def is_converged(self) -> bool:
        """True once the optimizer considers training finished."""

    def step(self, weights: np.ndarray, gradient: np.ndarray, value: float) -> None:
        """Update ``weights`` in place given the loss ``value`` and its gradient."""

    def finalize(self, weights: np.ndarray) -> None:
        """Write any final parameters into ``weights`` after the last pass."""

    def reset(self) -> None:
        """Forget accumulated state."""


class SGD:
    """Constant learning rate gradient descent."""

    def __init__(self, learning_rate: float = 0.1) -> None:
        if learning_rate <= 0:
            raise ValueError("learning_rate must be positive")
        self.learning_rate = learning_rate

    @property
    def is_converged(self) -> bool:
        return False

    def step(self, weights: np.ndarray, gradient: np.ndarray, value: float) -> None:
        weights -= self.learning_rate * gradient

    def finalize(self, weights: np.ndarray) -> None:
        return None

    def reset(self) -> None:
        return None


class AdaGrad:
    """Per-weight learning rates scaled by the accumulated squared gradient."""

    def __init__(self, rate: float = 1.0, delta: float = 0.1) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = rate
        self.delta = delta
        self._history: np.ndarray | None = None

    @property
    def is_converged(self) -> bool:
        return False

    def step(self, weights: np.ndarray, gradient: np.ndarray, value: float) -> None:
        if self._history is None or self._history.shape != weights.shape:
            self._history = np.zeros_like(weights)
        self._history += gradient * gradient
        weights -= self.rate * gradient / (self.delta + np.sqrt(self._history))

    def finalize(self, weights: np.ndarray) -> None:
        return None

    def reset(self) -> None:
        self._history = None


class GradientDescent:
    """Batch gradient descent that converges on a flat objective.

    Convergence is declared when the relative change between two consecutive
    loss values drops below ``tolerance``.
    """

    def __init__(self, learning_rate: float = 0.1, tolerance: float = 1e-6) -> None:
        if learning_rate <= 0:
            raise ValueError("learning_rate must be positive")
        self.learning_rate = learning_rate
        self.tolerance = tolerance
        self._previous: float | None = None
        self._converged = False

    @property
    def is_converged(self) -> bool:
        return self._converged

    def step(self, weights: np.ndarray, gradient: np.ndarray, value: float) -> None:
        if self._previous is not None and math.isfinite(value):
            scale = max(1.0, abs(self._previous))
            self._converged = abs(self._previous - value) <= self.tolerance * scale
        self._previous = value
        if not self._converged:
            weights -= self.learning_rate * gradient

    def finalize(self, weights: np.ndarray) -> None:
        return None

    def reset(self) -> None:
        self._previous = None
        self._converged = False


class L2Regularized:
    """Adds an L2 penalty ``0.5 * l2 * |w|^2`` before delegating."""

    def __init__(self, inner: GradientOptimizer, l2: float = 0.1) -> None:
        if l2 < 0:
            raise ValueError("l2 must be non-negative")
        self.inner = inner
        self.l2 = l2

    @property
    def is_converged(self) -> bool:
        return self.inner.is_converged

    def step(self, weights: np.ndarray, gradient: np.ndarray, value: float) -> None:
        penalty = 0.5 * self.l2 * float(np.sum(weights * weights))
        self.inner.step(weights, gradient + self.l2 * weights, value + penalty)

    def finalize(self, weights: np.ndarray) -> None:
        self.inner.finalize(weights)

    def reset(self) -> None:
        self.inner.reset()


class ParameterAveraging:
    """Tracks the running mean of the weights across steps.

    :meth:`finalize` replaces the weights with that mean, which smooths the
    noise of online updates.
    """

    def __init__(self, inner: GradientOptimizer) -> None:
        self.inner = inner
        self._total: np.ndarray | None = None
        self._count = 0

    @property
    def is_converged(self) -> bool:
        return self.inner.is_converged

    def step(self, weights: np.ndarray, gradient: np.ndarray, value: float) -> None:
        self.inner.step(weights, gradient, value)
        if self._total is None or self._total.shape != weights.shape:
            self._total = np.zeros_like(weights)
            self._count = 0
        self._total += weights
        self._count += 1

    def averaged_weights(self) -> np.ndarray | None:
        if self._total is None or self._count == 0:
            return None
        return self._total / self._count

    def finalize(self, weights: np.ndarray) -> None:
        self.inner.finalize(weights)
        averaged = self.averaged_weights()
        if averaged is not None and averaged.shape == weights.shape:
            weights[...] = averaged

    def reset(self) -> None:
        self.inner.reset()
        self._total = None
        self._count = 0


@runtime_checkable
class BatchOptimizer(Protocol):
    """Minimizes the full training objective itself instead of taking single steps."""

    @property
    def is_converged(self) -> bool:
        """True when the last :meth:`minimize` met its convergence criterion."""

    def minimize(
        self,
        weights: np.ndarray,
        value_and_gradient: Callable[[np.ndarray], tuple[float, np.ndarray]],
        max_iterations: int,
        callback: Callable[[int, float], None] | None = None,
    ) -> list[float]:
        """Minimize in place; return the objective value after every iteration."""

    def reset(self) -> None:
        """Forget accumulated state."""


class LBFGS:
    """Limited-memory BFGS with an L2 penalty, solved by ``scipy.optimize``.

    The line search keeps the objective from growing between iterations, so
    no learning rate has to be tuned against the size of the training set.
    ``callback(iteration, value)`` runs after each iteration with ``weights``
    already holding the current iterate; an exception raised there ends the
    minimization and leaves that iterate in place.
    """

    def __init__(self, l2: float = 0.1, tolerance: float = 1e-6, memory: int = 10) -> None:
        if l2 < 0:
            raise ValueError("l2 must be non-negative")
        if memory < 1:
            raise ValueError("memory must be at least 1")
        self.l2 = l2
        self.tolerance = tolerance
        self.memory = memory
        self._converged = False

    @property
    def is_converged(self) -> bool:
        return self._converged

    def minimize(
        self,
        weights: np.ndarray,
        value_and_gradient: Callable[[np.ndarray], tuple[float, np.ndarray]],
        max_iterations: int,
        callback: Callable[[int, float], None] | None = None,
    ) -> list[float]:
        self._converged = False
        if max_iterations < 1:
            return []
        shape = weights.shape
        values: list[float] = []

        def objective(flat: np.ndarray) -> tuple[float, np.ndarray]:
            current = flat.reshape(shape)
            value, gradient = value_and_gradient(current)
            if self.l2:
                value += 0.5 * self.l2 * float(np.vdot(current, current))
                gradient = gradient + self.l2 * current
            return float(value), np.asarray(gradient, dtype=np.float64).ravel()

        def on_iteration(intermediate_result: OptimizeResult) -> None:
            weights[...] = intermediate_result.x.reshape(shape)
            values.append(float(intermediate_result.fun))
            if callback is not None:
                callback(len(values), values[-1])

        result = minimize(
            objective,
            weights.ravel().copy(),
            method="L-BFGS-B",
            jac=True,
            callback=on_iteration,
            options={"maxiter": max_iterations, "maxcor": self.memory, "ftol": self.tolerance},
        )
        weights[...] = result.x.reshape(shape)
        self._converged = bool(result.success)
        return values

    def reset(self) -> None:
        self._converged = False


STEP_OPTIMIZERS = ("sgd", "adagrad", "gradient_descent")
OPTIMIZERS = (*STEP_OPTIMIZERS, "lbfgs")

AnyOptimizer = Union[GradientOptimizer, BatchOptimizer]


def build_optimizer(
    name: str,
    *,
    learning_rate: float = 0.1,
    l2: float = 0.0,
    averaging: bool = False,
    tolerance: float = 1e-6,
) -> AnyOptimizer:
    """Create a named optimizer, optionally wrapped with L2 and averaging.

    ``lbfgs`` applies ``l2`` inside its own objective and cannot be averaged.
    """

    normalized = name.strip().lower()
    if normalized == "lbfgs":
        if averaging:
            raise ValueError("lbfgs does not support parameter averaging")
        return LBFGS(l2=l2, tolerance=tolerance)
    optimizer: GradientOptimizer
    if normalized == "sgd":
        optimizer = SGD(learning_rate)
    elif normalized == "adagrad":
        optimizer = AdaGrad(rate=learning_rate)
    elif normalized == "gradient_descent":
        optimizer = GradientDescent(learning_rate, tolerance=tolerance)
    else:
        known = ", ".join(OPTIMIZERS)
        raise ValueError(f"Unknown optimizer '{name}' (expected one of: {known})")
    if l2 > 0:
        optimizer = L2Regularized(optimizer, l2)
    if averaging:
        optimizer = ParameterAveraging(optimizer)
    return optimizer


__all__ = [
    "AdaGrad",
    "AnyOptimizer",
    "BatchOptimizer",
    "GradientDescent",
    "GradientOptimizer",
    "L2Regularized",
    "LBFGS",
    "OPTIMIZERS",
    "ParameterAveraging",
    "SGD",
    "STEP_OPTIMIZERS",
    "build_optimizer",
]
