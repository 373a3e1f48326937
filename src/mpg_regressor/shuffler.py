"""Uniform random reordering of samples."""

from __future__ import annotations

from typing import TypeVar

import numpy as np

T = TypeVar("T")


def shuffle_in_place(items: list[T], rng: np.random.Generator) -> None:
    """Fisher-Yates shuffle of a caller-owned list."""
    for idx in range(len(items) - 1, 0, -1):
        swap = int(rng.integers(0, idx + 1))
        items[idx], items[swap] = items[swap], items[idx]


def shuffled(items: list[T], rng: np.random.Generator) -> list[T]:
    """Return a shuffled copy, leaving the input ordering untouched."""
    copy = list(items)
    shuffle_in_place(copy, rng)
    return copy
