"""Helpers for splitting work into store-sized batches."""

from typing import Iterable, Iterator, List, Sequence, TypeVar

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of ``items`` no longer than ``size``."""
    if size < 1:
        raise ValueError(f"Batch size must be positive (got {size})")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def unique(items: Iterable[T]) -> List[T]:
    """Drop duplicates while keeping first-seen order."""
    return list(dict.fromkeys(items))
