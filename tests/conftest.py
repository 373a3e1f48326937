from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np
import pytest

from mpg_regressor.models import Sample

SCENARIO_RECORDS: list[dict[str, Any]] = [
    {"Name": "alpha", "Horsepower": 100, "Miles_per_Gallon": 20},
    {"Name": "beta", "Horsepower": 200, "Miles_per_Gallon": 10},
    {"Name": "gamma", "Horsepower": None, "Miles_per_Gallon": 15},
]


def build_cars_json(path: Path, records: list[dict[str, Any]] | None = None) -> Path:
    payload = SCENARIO_RECORDS if records is None else records
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload) + "\n", encoding="utf-8")
    return path


def linear_records(count: int = 120) -> list[dict[str, Any]]:
    """Noise-free records where mpg falls linearly as horsepower rises."""
    horsepower = np.linspace(50.0, 230.0, count)
    return [
        {"Horsepower": float(hp), "Miles_per_Gallon": float(45.0 - 0.15 * hp)}
        for hp in horsepower
    ]


@pytest.fixture
def scenario_records() -> list[dict[str, Any]]:
    return [dict(record) for record in SCENARIO_RECORDS]


@pytest.fixture
def samples() -> list[Sample]:
    return [
        Sample(horsepower=130.0, mpg=18.0),
        Sample(horsepower=165.0, mpg=15.0),
        Sample(horsepower=150.0, mpg=18.0),
        Sample(horsepower=95.0, mpg=24.0),
        Sample(horsepower=46.0, mpg=26.0),
    ]


@pytest.fixture
def cars_json_path(tmp_path: Path) -> Path:
    return build_cars_json(tmp_path / "cars.json")


@pytest.fixture
def linear_cars_json_path(tmp_path: Path) -> Path:
    return build_cars_json(tmp_path / "linear.json", linear_records())


@pytest.fixture
def linear_training_records() -> list[dict[str, Any]]:
    return linear_records()
