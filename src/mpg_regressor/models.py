"""Core typed models."""

from __future__ import annotations

import math
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ErrorKind(StrEnum):
    """Failure classifications surfaced by the pipeline."""

    EMPTY_DATASET = "empty_dataset"
    DEGENERATE_BOUNDS = "degenerate_bounds"
    SHAPE_MISMATCH = "shape_mismatch"
    NON_FINITE_VALUE = "non_finite_value"
    INVALID_CONFIG = "invalid_config"


class Sample(BaseModel):
    """One cleaned observation."""

    model_config = ConfigDict(frozen=True)

    horsepower: float
    mpg: float

    @field_validator("horsepower", "mpg")
    @classmethod
    def ensure_finite(cls, value: float) -> float:
        """Reject NaN and infinities."""
        if not math.isfinite(value):
            raise ValueError("Sample fields must be finite.")
        return value


class NormalizationBounds(BaseModel):
    """Min/max extrema of both features, computed once per run."""

    model_config = ConfigDict(frozen=True)

    input_min: float
    input_max: float
    label_min: float
    label_max: float

    @model_validator(mode="after")
    def ensure_ordered(self) -> NormalizationBounds:
        """Enforce min <= max for both features."""
        if self.input_min > self.input_max:
            raise ValueError(
                f"input_min {self.input_min} is greater than input_max {self.input_max}."
            )
        if self.label_min > self.label_max:
            raise ValueError(
                f"label_min {self.label_min} is greater than label_max {self.label_max}."
            )
        return self


class LayerParameters(BaseModel):
    """Scalar weight and bias of a 1-in/1-out affine layer."""

    weight: float
    bias: float


class ModelParameters(BaseModel):
    """Serializable snapshot of both affine layers."""

    layers: list[LayerParameters] = Field(min_length=2, max_length=2)


class HistoryEntry(BaseModel):
    """Loss and metric for one completed epoch."""

    epoch: int
    loss: float
    metric: float


class PredictionPoint(BaseModel):
    """Point on the prediction curve in natural units."""

    x: float
    y: float


class AppConfig(BaseModel):
    """Runtime configuration."""

    epochs: int = Field(default=70, ge=1)
    batch_size: int = Field(default=32, ge=1)
    learning_rate: float = Field(default=0.1, gt=0)
    beta1: float = Field(default=0.9, ge=0, lt=1)
    beta2: float = Field(default=0.999, ge=0, lt=1)
    epsilon: float = Field(default=1e-7, gt=0)
    init_limit: float = Field(default=0.1, gt=0)
    prediction_points: int = Field(default=100, ge=2)
    seed: int | None = None
    output_root: str = "outputs"


class PipelineResult(BaseModel):
    """Everything a successful run hands to reporting collaborators."""

    parameters: ModelParameters
    bounds: NormalizationBounds
    history: list[HistoryEntry] = Field(default_factory=list)
    curve: list[PredictionPoint] = Field(default_factory=list)
    samples: list[Sample] = Field(default_factory=list)


class PipelineFailure(BaseModel):
    """Typed failure result of a run."""

    kind: ErrorKind
    message: str
    epoch: int | None = None
    batch: int | None = None
