"""Project-specific exceptions."""

from __future__ import annotations


class MPGRegressorError(Exception):
    """Base exception for the project."""


class InvalidConfigError(MPGRegressorError):
    """Raised when runtime configuration is missing or invalid."""


class DataFileError(MPGRegressorError):
    """Raised when a raw record file cannot be read as a JSON array."""


class EmptyDatasetError(MPGRegressorError):
    """Raised when no samples are available to normalize or train on."""


class DegenerateBoundsError(MPGRegressorError):
    """Raised when a feature has max == min and cannot be normalized."""


class ShapeMismatchError(MPGRegressorError):
    """Raised when inputs and labels do not line up."""


class NonFiniteValueError(MPGRegressorError):
    """Raised when NaN or infinity shows up in tensors, gradients or parameters."""

    def __init__(self, message: str, epoch: int | None = None, batch: int | None = None) -> None:
        super().__init__(message)
        self.epoch = epoch
        self.batch = batch
