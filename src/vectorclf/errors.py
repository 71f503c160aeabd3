"""Exception hierarchy shared by classifiers and trainers."""

from __future__ import annotations

from collections.abc import Iterable


class ClassifyError(Exception):
    """Base class for vectorclf errors."""


class DimensionMismatchError(ClassifyError, ValueError):
    """Raised when a feature vector or label domain disagrees with a model shape."""


class DomainFrozenError(ClassifyError, ValueError):
    """Raised when a new entry is added to a domain whose size is fixed."""


class EmptyInputError(ClassifyError, ValueError):
    """Raised when an operation needs at least one labeled instance."""


class ConvergenceFailure(ClassifyError, RuntimeError):
    """A sub-solver could not produce a result for one unit of work."""

    def __init__(self, reason: str, *, label_index: int | None = None) -> None:
        self.reason = reason
        self.label_index = label_index
        if label_index is None:
            super().__init__(reason)
        else:
            super().__init__(f"label {label_index}: {reason}")


class TrainingError(ClassifyError, RuntimeError):
    """Collects every per-label failure of a training pass."""

    def __init__(self, failures: Iterable[ConvergenceFailure]) -> None:
        self.failures = sorted(
            failures,
            key=lambda failure: -1 if failure.label_index is None else failure.label_index,
        )
        details = "; ".join(str(failure) for failure in self.failures)
        super().__init__(f"{len(self.failures)} unit(s) failed to train: {details}")

    @property
    def label_indices(self) -> list[int | None]:
        return [failure.label_index for failure in self.failures]


__all__ = [
    "ClassifyError",
    "ConvergenceFailure",
    "DimensionMismatchError",
    "DomainFrozenError",
    "EmptyInputError",
    "TrainingError",
]
