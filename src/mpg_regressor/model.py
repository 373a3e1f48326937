"""Two stacked 1-in/1-out affine layers with no activation in between."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from mpg_regressor.models import LayerParameters, ModelParameters

PARAMETER_NAMES: tuple[str, ...] = ("weight_1", "bias_1", "weight_2", "bias_2")


@dataclass(frozen=True)
class LayerSummary:
    """One row of the model summary table."""

    name: str
    output_shape: tuple[int | None, int]
    param_count: int


@dataclass(frozen=True)
class BatchGradients:
    """MSE loss of a batch and its gradient, ordered like PARAMETER_NAMES."""

    loss: float
    values: np.ndarray


class AffineRegressor:
    """y = w2 * (w1 * x + b1) + b2.

    Algebraically a single affine map, kept as two layers so the parameter
    count and initialization match the trained architecture.
    """

    def __init__(self, weight_1: float, bias_1: float, weight_2: float, bias_2: float) -> None:
        self._params = np.asarray([weight_1, bias_1, weight_2, bias_2], dtype=np.float64)

    @classmethod
    def initialize(cls, rng: np.random.Generator, init_limit: float = 0.1) -> AffineRegressor:
        """Draw every weight and bias independently from U(-init_limit, init_limit)."""
        if init_limit <= 0:
            raise ValueError("init_limit must be positive.")
        values = rng.uniform(-init_limit, init_limit, size=len(PARAMETER_NAMES))
        while not np.any(values):
            values = rng.uniform(-init_limit, init_limit, size=len(PARAMETER_NAMES))
        return cls(*(float(value) for value in values))

    @classmethod
    def from_parameters(cls, parameters: ModelParameters) -> AffineRegressor:
        first, second = parameters.layers
        return cls(first.weight, first.bias, second.weight, second.bias)

    @property
    def parameter_vector(self) -> np.ndarray:
        """Copy of the four parameters in PARAMETER_NAMES order."""
        return self._params.copy()

    @property
    def parameter_count(self) -> int:
        return int(self._params.size)

    def parameters(self) -> ModelParameters:
        weight_1, bias_1, weight_2, bias_2 = (float(value) for value in self._params)
        return ModelParameters(
            layers=[
                LayerParameters(weight=weight_1, bias=bias_1),
                LayerParameters(weight=weight_2, bias=bias_2),
            ]
        )

    def forward(self, x: np.ndarray | float) -> np.ndarray:
        """Evaluate both layers elementwise over a batch of any shape."""
        weight_1, bias_1, weight_2, bias_2 = self._params
        hidden = weight_1 * np.asarray(x, dtype=np.float64) + bias_1
        return weight_2 * hidden + bias_2

    def gradients(self, x: np.ndarray, y: np.ndarray) -> BatchGradients:
        """Mean squared error of the batch and its gradient via the chain rule."""
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        weight_1, bias_1, weight_2, bias_2 = self._params
        hidden = weight_1 * x + bias_1
        error = weight_2 * hidden + bias_2 - y
        loss = float(np.mean(error**2))

        d_output = 2.0 * error / error.size
        d_hidden = d_output * weight_2
        values = np.asarray(
            [
                np.sum(d_hidden * x),
                np.sum(d_hidden),
                np.sum(d_output * hidden),
                np.sum(d_output),
            ],
            dtype=np.float64,
        )
        return BatchGradients(loss=loss, values=values)

    def apply_gradient_step(self, gradients: np.ndarray, learning_rate: float) -> None:
        """Move all four parameters against ``gradients`` in place."""
        step = np.asarray(gradients, dtype=np.float64)
        if step.shape != self._params.shape:
            raise ValueError(
                f"Expected {self._params.size} gradient values, got shape {step.shape}."
            )
        self._params -= learning_rate * step

    def summary(self) -> list[LayerSummary]:
        return [
            LayerSummary(name="dense_1", output_shape=(None, 1), param_count=2),
            LayerSummary(name="dense_2", output_shape=(None, 1), param_count=2),
        ]
