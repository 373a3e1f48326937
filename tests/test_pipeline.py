from __future__ import annotations

import json
import weakref
from typing import Any

import numpy as np
import pytest

from mpg_regressor import normalizer, pipeline
from mpg_regressor.exceptions import EmptyDatasetError, NonFiniteValueError
from mpg_regressor.models import (
    AppConfig,
    ErrorKind,
    HistoryEntry,
    NormalizationBounds,
    PipelineFailure,
    PipelineResult,
    Sample,
)
from mpg_regressor.normalizer import NormalizedTensorPair
from mpg_regressor.pipeline import failure_from_error, fit_pipeline, run_pipeline


def test_three_record_scenario_learns_decreasing_curve(
    scenario_records: list[dict[str, Any]],
) -> None:
    outcome = run_pipeline(scenario_records, AppConfig(seed=7))

    assert isinstance(outcome, PipelineResult)
    assert outcome.samples == [
        Sample(horsepower=100.0, mpg=20.0),
        Sample(horsepower=200.0, mpg=10.0),
    ]
    assert outcome.bounds == NormalizationBounds(
        input_min=100.0, input_max=200.0, label_min=10.0, label_max=20.0
    )
    assert len(outcome.history) == 70

    curve = outcome.curve
    assert len(curve) == 100
    assert curve[0].x == pytest.approx(100.0)
    assert curve[-1].x == pytest.approx(200.0)
    ys = [point.y for point in curve]
    assert all(later < earlier for earlier, later in zip(ys, ys[1:], strict=False))
    assert ys[0] == pytest.approx(20.0, abs=3.0)
    assert ys[-1] == pytest.approx(10.0, abs=3.0)


def test_pipeline_converges_on_linear_records(
    linear_training_records: list[dict[str, Any]],
) -> None:
    outcome = run_pipeline(linear_training_records, AppConfig(seed=3))

    assert isinstance(outcome, PipelineResult)
    losses = [entry.loss for entry in outcome.history]
    assert np.mean(losses[-10:]) < np.mean(losses[:10])
    for point in outcome.curve[::11]:
        assert point.y == pytest.approx(45.0 - 0.15 * point.x, abs=3.0)


def test_pipeline_is_repeatable_with_same_seed(
    linear_training_records: list[dict[str, Any]],
) -> None:
    config = AppConfig(seed=21, epochs=5)
    first = run_pipeline(linear_training_records, config)
    second = run_pipeline(linear_training_records, config)
    assert isinstance(first, PipelineResult)
    assert first == second


def test_pipeline_streams_epochs_and_progress(scenario_records: list[dict[str, Any]]) -> None:
    seen: list[HistoryEntry] = []
    messages: list[str] = []

    run_pipeline(
        scenario_records,
        AppConfig(seed=1, epochs=4),
        on_epoch_end=seen.append,
        progress_callback=messages.append,
    )

    assert [entry.epoch for entry in seen] == [1, 2, 3, 4]
    assert messages[0] == "Cleaned dataset has 2 samples."
    assert any(message.startswith("Bounds:") for message in messages)


def test_pipeline_honours_prediction_points(scenario_records: list[dict[str, Any]]) -> None:
    outcome = run_pipeline(scenario_records, AppConfig(seed=1, epochs=1, prediction_points=7))
    assert isinstance(outcome, PipelineResult)
    assert len(outcome.curve) == 7


def test_pipeline_reports_empty_dataset_as_typed_failure() -> None:
    outcome = run_pipeline([{"Horsepower": None, "Miles_per_Gallon": 18}, {}])

    assert isinstance(outcome, PipelineFailure)
    assert outcome.kind == ErrorKind.EMPTY_DATASET
    assert "Horsepower" in outcome.message


def test_pipeline_reports_degenerate_bounds() -> None:
    records = [
        {"Horsepower": 120, "Miles_per_Gallon": 20},
        {"Horsepower": 120, "Miles_per_Gallon": 25},
    ]
    outcome = run_pipeline(records, AppConfig(seed=0))

    assert isinstance(outcome, PipelineFailure)
    assert outcome.kind == ErrorKind.DEGENERATE_BOUNDS


def test_pipeline_reports_single_sample_as_degenerate() -> None:
    outcome = run_pipeline([{"Horsepower": 120, "Miles_per_Gallon": 20}], AppConfig(seed=0))
    assert isinstance(outcome, PipelineFailure)
    assert outcome.kind == ErrorKind.DEGENERATE_BOUNDS


def test_fit_pipeline_raises_instead_of_returning_failure() -> None:
    with pytest.raises(EmptyDatasetError):
        fit_pipeline([])


def test_failure_from_error_keeps_epoch_and_batch() -> None:
    failure = failure_from_error(NonFiniteValueError("overflow", epoch=3, batch=2))
    assert failure.kind == ErrorKind.NON_FINITE_VALUE
    assert failure.epoch == 3
    assert failure.batch == 2


def test_pipeline_drops_integers_beyond_float_range() -> None:
    huge = "1" + "0" * 400
    records = json.loads(
        f'[{{"Horsepower": {huge}, "Miles_per_Gallon": 20}},'
        ' {"Horsepower": 100, "Miles_per_Gallon": 20},'
        ' {"Horsepower": 200, "Miles_per_Gallon": 10}]'
    )

    outcome = run_pipeline(records, AppConfig(seed=7, epochs=2))

    assert isinstance(outcome, PipelineResult)
    assert len(outcome.samples) == 2


def test_normalized_tensors_are_released_before_prediction(
    scenario_records: list[dict[str, Any]], monkeypatch: pytest.MonkeyPatch
) -> None:
    refs: list[weakref.ref[np.ndarray]] = []

    def _normalize(samples: list[Sample], bounds: NormalizationBounds) -> NormalizedTensorPair:
        tensors = normalizer.normalize(samples, bounds)
        refs.extend([weakref.ref(tensors.inputs), weakref.ref(tensors.labels)])
        return tensors

    alive_after_training: list[bool] = []

    def _progress(message: str) -> None:
        if message.startswith("Generated"):
            alive_after_training.extend(ref() is not None for ref in refs)

    monkeypatch.setattr(pipeline, "normalize", _normalize)
    outcome = run_pipeline(
        scenario_records, AppConfig(seed=1, epochs=2), progress_callback=_progress
    )

    assert isinstance(outcome, PipelineResult)
    assert alive_after_training == [False, False]
