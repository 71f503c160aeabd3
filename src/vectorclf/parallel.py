"""Thread-pool helpers for order-preserving parallel work."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


def default_workers() -> int:
    return os.cpu_count() or 1


def parallel_map(
    func: Callable[[T], R],
    items: Iterable[T],
    workers: int | None = None,
) -> list[R]:
    """Apply ``func`` to every item, returning results in input order.

    ``workers=1`` (or a single item) runs inline on the calling thread.
    Exceptions raised by ``func`` propagate to the caller.
    """

    sequence: Sequence[T] = items if isinstance(items, Sequence) else list(items)
    count = default_workers() if workers is None else workers
    if count < 1:
        raise ValueError("workers must be at least 1")
    if count == 1 or len(sequence) <= 1:
        return [func(item) for item in sequence]
    with ThreadPoolExecutor(max_workers=min(count, len(sequence))) as executor:
        return list(executor.map(func, sequence))


def chunked(items: Sequence[T], parts: int) -> list[Sequence[T]]:
    """Split ``items`` into at most ``parts`` contiguous, non-empty chunks."""

    if parts < 1:
        raise ValueError("parts must be at least 1")
    if not items:
        return []
    parts = min(parts, len(items))
    size, remainder = divmod(len(items), parts)
    chunks: list[Sequence[T]] = []
    start = 0
    for position in range(parts):
        stop = start + size + (1 if position < remainder else 0)
        chunks.append(items[start:stop])
        start = stop
    return chunks


__all__ = ["chunked", "default_workers", "parallel_map"]
