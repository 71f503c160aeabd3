"""Core data structures shared by classifiers and trainers."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Union

import numpy as np
from scipy import sparse

from .errors import DimensionMismatchError, DomainFrozenError


class CategoricalDomain:
    """Ordered, indexed set of category values."""

    def __init__(self, categories: Iterable[Hashable] | None = None, *, frozen: bool = False) -> None:
        self._categories: list[Hashable] = []
        self._indices: dict[Hashable, int] = {}
        self._frozen = False
        for category in categories or ():
            self.index(category)
        self._frozen = frozen

    def index(self, category: Hashable, *, add: bool = True) -> int:
        """Return the index of ``category``, appending it when allowed."""

        existing = self._indices.get(category)
        if existing is not None:
            return existing
        if not add:
            raise KeyError(f"Unknown category: {category!r}")
        if self._frozen:
            raise DomainFrozenError(
                f"Cannot add category {category!r}: domain is frozen at size {len(self)}"
            )
        position = len(self._categories)
        self._categories.append(category)
        self._indices[category] = position
        return position

    def category(self, index: int) -> Hashable:
        if not 0 <= index < len(self._categories):
            raise IndexError(f"Category index {index} out of range for domain of size {len(self)}")
        return self._categories[index]

    def freeze(self) -> CategoricalDomain:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def categories(self) -> tuple[Hashable, ...]:
        return tuple(self._categories)

    def __len__(self) -> int:
        return len(self._categories)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(tuple(self._categories))

    def __contains__(self, category: object) -> bool:
        return category in self._indices

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"CategoricalDomain(size={len(self)}, {state})"


class FeatureDomain(CategoricalDomain):
    """Feature index space, optionally backed by a vocabulary of feature names.

    A domain built with an explicit ``dimension`` has no vocabulary and is
    frozen from the start; otherwise the dimension grows with the vocabulary
    until :meth:`freeze` is called.
    """

    def __init__(self, dimension: int | None = None, names: Iterable[Hashable] | None = None) -> None:
        super().__init__(names)
        self._fixed_dimension = dimension
        if dimension is not None:
            if dimension < 0:
                raise ValueError("dimension must be non-negative")
            if names is not None and len(self) != dimension:
                raise DimensionMismatchError(
                    f"Vocabulary of size {len(self)} does not match dimension {dimension}"
                )
            self.freeze()

    @property
    def dimension(self) -> int:
        if self._fixed_dimension is not None:
            return self._fixed_dimension
        return len(self)

    def vector(self, values: Any = None) -> FeatureVector:
        return FeatureVector(self.dimension, values)


FeatureValues = Union[Mapping[int, float], Iterable[float], np.ndarray, sparse.spmatrix, None]


class FeatureVector:
    """Sparse numeric vector of fixed dimension."""

    __slots__ = ("_dimension", "_matrix")

    def __init__(self, dimension: int, values: FeatureValues = None) -> None:
        if dimension < 0:
            raise ValueError("dimension must be non-negative")
        self._dimension = int(dimension)
        self._matrix = _as_row_matrix(self._dimension, values)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def matrix(self) -> sparse.csr_matrix:
        """The vector as a ``1 x dimension`` CSR matrix."""

        return self._matrix

    @property
    def nnz(self) -> int:
        return int(self._matrix.nnz)

    def active_elements(self) -> Iterator[tuple[int, float]]:
        for index, value in zip(self._matrix.indices, self._matrix.data):
            yield int(index), float(value)

    def to_dense(self) -> np.ndarray:
        return np.asarray(self._matrix.toarray()).ravel()

    def dot(self, weights: np.ndarray) -> np.ndarray:
        """Return ``weights @ self`` for a ``(rows, dimension)`` matrix."""

        if weights.ndim != 2 or weights.shape[1] != self._dimension:
            raise DimensionMismatchError(
                f"Weight matrix of shape {weights.shape} cannot score a vector of dimension "
                f"{self._dimension}"
            )
        return np.asarray(self._matrix @ weights.T, dtype=np.float64).ravel()

    def __len__(self) -> int:
        return self._dimension

    def __repr__(self) -> str:
        return f"FeatureVector(dimension={self._dimension}, nnz={self.nnz})"


def _as_row_matrix(dimension: int, values: FeatureValues) -> sparse.csr_matrix:
    if values is None:
        return sparse.csr_matrix((1, dimension), dtype=np.float64)
    if sparse.issparse(values):
        matrix = sparse.csr_matrix(values, dtype=np.float64, copy=True)
        if matrix.shape == (dimension, 1):
            matrix = matrix.T.tocsr()
        if matrix.shape != (1, dimension):
            raise DimensionMismatchError(
                f"Sparse vector of shape {matrix.shape} does not match dimension {dimension}"
            )
    elif isinstance(values, Mapping):
        indices = np.fromiter((int(key) for key in values.keys()), dtype=np.int64, count=len(values))
        data = np.fromiter((float(v) for v in values.values()), dtype=np.float64, count=len(values))
        if indices.size and (indices.min() < 0 or indices.max() >= dimension):
            raise DimensionMismatchError(
                f"Feature index out of range for dimension {dimension}: "
                f"{int(indices.min())}..{int(indices.max())}"
            )
        rows = np.zeros(indices.size, dtype=np.int64)
        matrix = sparse.csr_matrix((data, (rows, indices)), shape=(1, dimension))
    else:
        dense = np.asarray(values, dtype=np.float64)
        if dense.ndim != 1 or dense.shape[0] != dimension:
            raise DimensionMismatchError(
                f"Dense vector of shape {dense.shape} does not match dimension {dimension}"
            )
        matrix = sparse.csr_matrix(dense.reshape(1, -1))
    matrix.sum_duplicates()
    matrix.sort_indices()
    matrix.eliminate_zeros()
    return matrix


class LabelVariable:
    """A categorical variable whose current value is read-only."""

    __slots__ = ("_domain", "_index")

    def __init__(self, domain: CategoricalDomain, index: int) -> None:
        self._domain = domain
        self._index = self._check_index(index)

    @property
    def domain(self) -> CategoricalDomain:
        return self._domain

    @property
    def index(self) -> int:
        return self._index

    @property
    def value(self) -> Hashable:
        return self._domain.category(self._index)

    def _check_index(self, index: int) -> int:
        index = int(index)
        if not 0 <= index < len(self._domain):
            raise IndexError(f"Index {index} out of range for domain of size {len(self._domain)}")
        return index

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class LabeledVariable(LabelVariable):
    """A mutable label variable that also carries its gold target."""

    __slots__ = ("_target_index",)

    def __init__(self, domain: CategoricalDomain, index: int, target_index: int | None = None) -> None:
        super().__init__(domain, index)
        self._target_index = self._check_index(index if target_index is None else target_index)

    @classmethod
    def from_category(cls, domain: CategoricalDomain, category: Hashable) -> LabeledVariable:
        index = domain.index(category)
        return cls(domain, index, index)

    @property
    def target_index(self) -> int:
        return self._target_index

    @property
    def target_value(self) -> Hashable:
        return self._domain.category(self._target_index)

    @property
    def is_correct(self) -> bool:
        return self._index == self._target_index

    def set_index(self, index: int) -> None:
        self._index = self._check_index(index)


LabelToFeatures = Callable[[Any], FeatureVector]


@dataclass(frozen=True, eq=False)
class Classification:
    """Result of scoring one label variable: a score per category."""

    variable: LabelVariable
    scores: np.ndarray

    def __post_init__(self) -> None:
        scores = np.array(self.scores, dtype=np.float64, copy=True)
        if scores.ndim != 1 or scores.shape[0] != len(self.variable.domain):
            raise DimensionMismatchError(
                f"Score vector of shape {scores.shape} does not match domain size "
                f"{len(self.variable.domain)}"
            )
        scores.setflags(write=False)
        object.__setattr__(self, "scores", scores)

    @property
    def best_index(self) -> int:
        # np.argmax returns the first maximal entry, so ties go to the lowest index.
        return int(np.argmax(self.scores))

    @property
    def best_score(self) -> float:
        return float(self.scores[self.best_index])

    @property
    def best_value(self) -> Hashable:
        return self.variable.domain.category(self.best_index)

    @property
    def best_value_string(self) -> str:
        return str(self.best_value)

    @property
    def proportions(self) -> np.ndarray:
        """Softmax of the scores."""

        shifted = self.scores - self.scores.max()
        exp = np.exp(shifted)
        return exp / exp.sum()


__all__ = [
    "CategoricalDomain",
    "Classification",
    "FeatureDomain",
    "FeatureValues",
    "FeatureVector",
    "LabelToFeatures",
    "LabelVariable",
    "LabeledVariable",
]
