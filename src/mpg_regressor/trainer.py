"""Mini-batch training of the affine regressor with an Adam-style optimizer."""

from __future__ import annotations

from collections.abc import Callable
from time import perf_counter

import numpy as np

from mpg_regressor.exceptions import EmptyDatasetError, NonFiniteValueError, ShapeMismatchError
from mpg_regressor.history import TrainingHistory
from mpg_regressor.model import PARAMETER_NAMES, AffineRegressor
from mpg_regressor.scope import TensorScope

DEFAULT_EPOCHS = 70
DEFAULT_BATCH_SIZE = 32


class AdamOptimizer:
    """Per-parameter first/second moment averages with bias correction."""

    def __init__(
        self,
        learning_rate: float = 0.1,
        beta1: float = 0.9,
        beta2: float = 0.999,
        epsilon: float = 1e-7,
    ) -> None:
        if learning_rate <= 0:
            raise ValueError("learning_rate must be positive.")
        self.learning_rate = learning_rate
        self.beta1 = beta1
        self.beta2 = beta2
        self.epsilon = epsilon
        self._first_moment = np.zeros(len(PARAMETER_NAMES), dtype=np.float64)
        self._second_moment = np.zeros(len(PARAMETER_NAMES), dtype=np.float64)
        self._steps = 0

    @property
    def steps(self) -> int:
        return self._steps

    def step(self, model: AffineRegressor, gradients: np.ndarray) -> np.ndarray:
        """Update moments, then move the model by the bias-corrected ratio."""
        self._steps += 1
        self._first_moment = self.beta1 * self._first_moment + (1.0 - self.beta1) * gradients
        self._second_moment = self.beta2 * self._second_moment + (1.0 - self.beta2) * (
            gradients**2
        )
        first_hat = self._first_moment / (1.0 - self.beta1**self._steps)
        second_hat = self._second_moment / (1.0 - self.beta2**self._steps)
        direction = first_hat / (np.sqrt(second_hat) + self.epsilon)
        model.apply_gradient_step(direction, self.learning_rate)
        return direction


def train(
    model: AffineRegressor,
    inputs: np.ndarray,
    labels: np.ndarray,
    *,
    epochs: int = DEFAULT_EPOCHS,
    batch_size: int = DEFAULT_BATCH_SIZE,
    optimizer: AdamOptimizer | None = None,
    history: TrainingHistory | None = None,
    progress_callback: Callable[[str], None] | None = None,
) -> TrainingHistory:
    """Fit ``model`` over contiguous batches for a fixed number of epochs.

    The data is used in the order given; shuffling happens once, before this
    call, never between epochs. Inputs are validated up front so malformed data
    fails before the first epoch.
    """
    progress = progress_callback or (lambda _message: None)
    inputs, labels = _validate_training_data(inputs, labels)
    if epochs < 1:
        raise ValueError(f"epochs must be at least 1, got {epochs}.")
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}.")

    if history is not None and len(history):
        raise ValueError(f"history must be empty, it already holds {len(history)} epochs.")

    optimizer = optimizer or AdamOptimizer()
    history = history if history is not None else TrainingHistory()
    sample_count = inputs.shape[0]
    batch_count = -(-sample_count // batch_size)
    progress(
        f"Training on {sample_count} samples for {epochs} epochs "
        f"({batch_count} batches of up to {batch_size})."
    )
    started_at = perf_counter()

    for epoch in range(1, epochs + 1):
        batch_losses: list[float] = []
        squared_error_total = 0.0
        for batch, start in enumerate(range(0, sample_count, batch_size), start=1):
            with TensorScope() as scope:
                batch_inputs = scope.track(inputs[start : start + batch_size])
                batch_labels = scope.track(labels[start : start + batch_size])
                result = model.gradients(batch_inputs, batch_labels)
                if not np.isfinite(result.loss) or not np.all(np.isfinite(result.values)):
                    raise NonFiniteValueError(
                        f"Non-finite loss or gradient at epoch {epoch}, batch {batch}.",
                        epoch=epoch,
                        batch=batch,
                    )
                optimizer.step(model, result.values)
                if not np.all(np.isfinite(model.parameter_vector)):
                    raise NonFiniteValueError(
                        f"Non-finite parameters after update at epoch {epoch}, batch {batch}.",
                        epoch=epoch,
                        batch=batch,
                    )
                batch_losses.append(result.loss)
                squared_error_total += result.loss * batch_inputs.shape[0]

        history.record(
            epoch=epoch,
            loss=float(np.mean(batch_losses)),
            metric=squared_error_total / sample_count,
        )

    elapsed = perf_counter() - started_at
    final = history.entries()[-1]
    progress(f"Training finished in {elapsed:.2f}s (final loss={final.loss:.6f}).")
    return history


def _validate_training_data(
    inputs: np.ndarray, labels: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    inputs = np.asarray(inputs, dtype=np.float64)
    labels = np.asarray(labels, dtype=np.float64)
    if inputs.ndim == 0 or inputs.shape != labels.shape:
        raise ShapeMismatchError(
            f"Inputs shape {inputs.shape} does not match labels shape {labels.shape}."
        )
    if inputs.size == 0:
        raise EmptyDatasetError("Cannot train on an empty dataset.")
    if not np.all(np.isfinite(inputs)) or not np.all(np.isfinite(labels)):
        raise NonFiniteValueError("Training data contains NaN or infinite values.")
    return inputs, labels
