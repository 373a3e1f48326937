"""Prediction curve over the normalized input range, in natural units."""

from __future__ import annotations

import numpy as np

from mpg_regressor.model import AffineRegressor
from mpg_regressor.models import NormalizationBounds, PredictionPoint
from mpg_regressor.normalizer import denormalize
from mpg_regressor.scope import TensorScope

DEFAULT_POINTS = 100


def predict(
    model: AffineRegressor,
    bounds: NormalizationBounds,
    points: int = DEFAULT_POINTS,
) -> list[PredictionPoint]:
    """Evaluate ``model`` on linspace(0, 1, points) and map both axes back."""
    if points < 2:
        raise ValueError(f"points must be at least 2, got {points}.")
    with TensorScope() as scope:
        grid = scope.track(np.linspace(0.0, 1.0, points).reshape(points, 1))
        predictions = scope.track(model.forward(grid))
        xs = denormalize(grid, bounds.input_min, bounds.input_max).reshape(-1)
        ys = denormalize(predictions, bounds.label_min, bounds.label_max).reshape(-1)
        return [
            PredictionPoint(x=float(x), y=float(y)) for x, y in zip(xs, ys, strict=True)
        ]
