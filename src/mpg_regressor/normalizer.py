"""Min/max scaling of horsepower and mpg into [0, 1] and back."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from mpg_regressor.exceptions import DegenerateBoundsError, EmptyDatasetError
from mpg_regressor.models import NormalizationBounds, Sample


@dataclass(frozen=True)
class NormalizedTensorPair:
    """Column tensors of shape (N, 1) ready for training."""

    inputs: np.ndarray
    labels: np.ndarray

    def __len__(self) -> int:
        return int(self.inputs.shape[0])


def compute_bounds(samples: Sequence[Sample]) -> NormalizationBounds:
    """Scan the full dataset once for per-feature extrema."""
    if not samples:
        raise EmptyDatasetError("Cannot compute normalization bounds of an empty dataset.")
    horsepower = np.asarray([sample.horsepower for sample in samples], dtype=np.float64)
    mpg = np.asarray([sample.mpg for sample in samples], dtype=np.float64)
    return NormalizationBounds(
        input_min=float(horsepower.min()),
        input_max=float(horsepower.max()),
        label_min=float(mpg.min()),
        label_max=float(mpg.max()),
    )


def normalize(samples: Sequence[Sample], bounds: NormalizationBounds) -> NormalizedTensorPair:
    """Scale every sample into [0, 1] using precomputed bounds."""
    if not samples:
        raise EmptyDatasetError("Cannot normalize an empty dataset.")
    horsepower = np.asarray([sample.horsepower for sample in samples], dtype=np.float64)
    mpg = np.asarray([sample.mpg for sample in samples], dtype=np.float64)
    inputs = normalize_values(horsepower, bounds.input_min, bounds.input_max, name="horsepower")
    labels = normalize_values(mpg, bounds.label_min, bounds.label_max, name="mpg")
    return NormalizedTensorPair(inputs=inputs.reshape(-1, 1), labels=labels.reshape(-1, 1))


def normalize_values(
    values: np.ndarray | float,
    low: float,
    high: float,
    name: str = "value",
) -> np.ndarray:
    """Map values to (v - low) / (high - low); refuses a zero-width range."""
    span = high - low
    if span == 0:
        raise DegenerateBoundsError(
            f"Cannot normalize {name}: min and max are both {low}, range is zero."
        )
    return (np.asarray(values, dtype=np.float64) - low) / span


def denormalize(values: np.ndarray | float, low: float, high: float) -> np.ndarray:
    """Inverse of normalize_values: v * (high - low) + low."""
    return np.asarray(values, dtype=np.float64) * (high - low) + low
