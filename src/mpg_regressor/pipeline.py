"""End-to-end run: clean, shuffle, normalize, train, predict."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

import numpy as np

from mpg_regressor.cleaner import clean_records
from mpg_regressor.exceptions import (
    DegenerateBoundsError,
    EmptyDatasetError,
    InvalidConfigError,
    MPGRegressorError,
    NonFiniteValueError,
    ShapeMismatchError,
)
from mpg_regressor.history import TrainingHistory
from mpg_regressor.model import AffineRegressor
from mpg_regressor.models import (
    AppConfig,
    ErrorKind,
    HistoryEntry,
    NormalizationBounds,
    PipelineFailure,
    PipelineResult,
    Sample,
)
from mpg_regressor.normalizer import compute_bounds, normalize
from mpg_regressor.predictor import predict
from mpg_regressor.scope import TensorScope
from mpg_regressor.shuffler import shuffled
from mpg_regressor.trainer import AdamOptimizer, train

_ERROR_KINDS: dict[type[MPGRegressorError], ErrorKind] = {
    EmptyDatasetError: ErrorKind.EMPTY_DATASET,
    DegenerateBoundsError: ErrorKind.DEGENERATE_BOUNDS,
    ShapeMismatchError: ErrorKind.SHAPE_MISMATCH,
    NonFiniteValueError: ErrorKind.NON_FINITE_VALUE,
    InvalidConfigError: ErrorKind.INVALID_CONFIG,
}


def fit_pipeline(
    records: Iterable[Mapping[str, Any]],
    config: AppConfig | None = None,
    *,
    rng: np.random.Generator | None = None,
    on_epoch_end: Callable[[HistoryEntry], None] | None = None,
    progress_callback: Callable[[str], None] | None = None,
) -> PipelineResult:
    """Run every stage and raise the first project error encountered."""
    config = config or AppConfig()
    progress = progress_callback or (lambda _message: None)
    rng = rng if rng is not None else np.random.default_rng(config.seed)

    samples = clean_records(records)
    progress(f"Cleaned dataset has {len(samples)} samples.")
    if not samples:
        raise EmptyDatasetError("No records contain both Horsepower and Miles_per_Gallon.")

    training_order = shuffled(samples, rng)
    bounds = compute_bounds(training_order)
    progress(
        f"Bounds: horsepower [{bounds.input_min:g}, {bounds.input_max:g}], "
        f"mpg [{bounds.label_min:g}, {bounds.label_max:g}]."
    )
    model = AffineRegressor.initialize(rng, init_limit=config.init_limit)
    optimizer = AdamOptimizer(
        learning_rate=config.learning_rate,
        beta1=config.beta1,
        beta2=config.beta2,
        epsilon=config.epsilon,
    )
    history = TrainingHistory()
    history.set_live_sink(on_epoch_end)
    _train_normalized(
        model,
        training_order,
        bounds,
        config,
        optimizer=optimizer,
        history=history,
        progress_callback=progress,
    )

    curve = predict(model, bounds, points=config.prediction_points)
    progress(f"Generated {len(curve)} prediction points.")
    return PipelineResult(
        parameters=model.parameters(),
        bounds=bounds,
        history=history.entries(),
        curve=curve,
        samples=samples,
    )


def _train_normalized(
    model: AffineRegressor,
    samples: list[Sample],
    bounds: NormalizationBounds,
    config: AppConfig,
    *,
    optimizer: AdamOptimizer,
    history: TrainingHistory,
    progress_callback: Callable[[str], None],
) -> None:
    # The normalized tensors exist only inside this call and its scope.
    with TensorScope() as scope:
        tensors = normalize(samples, bounds)
        inputs = scope.track(tensors.inputs)
        labels = scope.track(tensors.labels)
        del tensors
        train(
            model,
            inputs,
            labels,
            epochs=config.epochs,
            batch_size=config.batch_size,
            optimizer=optimizer,
            history=history,
            progress_callback=progress_callback,
        )


def run_pipeline(
    records: Iterable[Mapping[str, Any]],
    config: AppConfig | None = None,
    *,
    rng: np.random.Generator | None = None,
    on_epoch_end: Callable[[HistoryEntry], None] | None = None,
    progress_callback: Callable[[str], None] | None = None,
) -> PipelineResult | PipelineFailure:
    """Run the pipeline, turning project errors into a typed failure result."""
    try:
        return fit_pipeline(
            records,
            config,
            rng=rng,
            on_epoch_end=on_epoch_end,
            progress_callback=progress_callback,
        )
    except MPGRegressorError as exc:
        return failure_from_error(exc)


def failure_from_error(exc: MPGRegressorError) -> PipelineFailure:
    """Map a project exception onto its failure kind."""
    kind = next(
        (value for error_type, value in _ERROR_KINDS.items() if isinstance(exc, error_type)),
        None,
    )
    if kind is None:
        raise exc
    epoch = getattr(exc, "epoch", None)
    batch = getattr(exc, "batch", None)
    return PipelineFailure(kind=kind, message=str(exc), epoch=epoch, batch=batch)
