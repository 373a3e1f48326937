"""Reduce raw car records to horsepower/mpg samples."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from numbers import Real
from typing import Any

from mpg_regressor.models import Sample

HORSEPOWER_FIELD = "Horsepower"
MPG_FIELD = "Miles_per_Gallon"


def clean_records(records: Iterable[Mapping[str, Any]]) -> list[Sample]:
    """Project records to samples, dropping any row missing either field.

    Input order is preserved. Dropped rows are not reported; an empty result is
    valid and left for the normalizer and trainer to reject.
    """
    samples: list[Sample] = []
    for record in records:
        if not isinstance(record, Mapping):
            continue
        horsepower = _as_number(record.get(HORSEPOWER_FIELD))
        mpg = _as_number(record.get(MPG_FIELD))
        if horsepower is None or mpg is None:
            continue
        samples.append(Sample(horsepower=horsepower, mpg=mpg))
    return samples


def _as_number(value: Any) -> float | None:
    # bool is an int subclass; a true/false flag is not a measurement.
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, Real):
        return None
    try:
        number = float(value)
    except OverflowError:
        # Integers beyond float range are treated like infinities.
        return None
    if not math.isfinite(number):
        return None
    return number
