"""Multiclass loss objectives over a score vector.

Each objective returns the loss for one example together with the gradient of
that loss with respect to the scores. Trainers turn the score gradient into a
weight gradient by taking its outer product with the feature vector.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np


class MulticlassObjective(Protocol):
    name: str

    def value_and_gradient(self, scores: np.ndarray, target_index: int) -> tuple[float, np.ndarray]:
        """Return ``(loss, d loss / d scores)``."""


class LogMulticlass:
    """Softmax cross-entropy."""

    name = "log"

    def value_and_gradient(self, scores: np.ndarray, target_index: int) -> tuple[float, np.ndarray]:
        shifted = scores - scores.max()
        exp = np.exp(shifted)
        normalizer = exp.sum()
        loss = float(np.log(normalizer) - shifted[target_index])
        gradient = exp / normalizer
        gradient[target_index] -= 1.0
        return loss, gradient


class HingeMulticlass:
    """Crammer-Singer multiclass hinge loss with unit margin."""

    name = "hinge"

    def __init__(self, margin: float = 1.0) -> None:
        self.margin = margin

    def value_and_gradient(self, scores: np.ndarray, target_index: int) -> tuple[float, np.ndarray]:
        gradient = np.zeros_like(scores, dtype=np.float64)
        if scores.shape[0] < 2:
            return 0.0, gradient
        rivals = scores.astype(np.float64, copy=True)
        rivals[target_index] = -np.inf
        rival = int(np.argmax(rivals))
        loss = self.margin + scores[rival] - scores[target_index]
        if loss <= 0.0:
            return 0.0, gradient
        gradient[rival] = 1.0
        gradient[target_index] = -1.0
        return float(loss), gradient


class SquaredMulticlass:
    """Half squared error against the one-hot target."""

    name = "squared"

    def value_and_gradient(self, scores: np.ndarray, target_index: int) -> tuple[float, np.ndarray]:
        gradient = scores.astype(np.float64, copy=True)
        gradient[target_index] -= 1.0
        return float(0.5 * gradient.dot(gradient)), gradient


OBJECTIVES: dict[str, type] = {
    LogMulticlass.name: LogMulticlass,
    HingeMulticlass.name: HingeMulticlass,
    SquaredMulticlass.name: SquaredMulticlass,
}


def get_objective(name: str) -> MulticlassObjective:
    try:
        factory = OBJECTIVES[name.strip().lower()]
    except KeyError as exc:
        known = ", ".join(sorted(OBJECTIVES))
        raise ValueError(f"Unknown objective '{name}' (expected one of: {known})") from exc
    return factory()


__all__ = [
    "HingeMulticlass",
    "LogMulticlass",
    "MulticlassObjective",
    "OBJECTIVES",
    "SquaredMulticlass",
    "get_objective",
]
