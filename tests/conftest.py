"""Shared fixtures: a small delay export covering three routes over three days."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
import pytest

from rail_core.config import clear_settings_cache
from rail_core.data import clear_data_cache, normalize_records


def _record(
    rid: int,
    train: str,
    route: str,
    timestamp: str,
    delay: float,
    hour: int,
    day_of_week: int,
) -> Dict[str, Any]:
    origin, destination = route.split(" - ")
    return {
        "id": rid,
        "timestamp": timestamp,
        "date": timestamp[:10],
        "time": timestamp[11:19],
        "hour": hour,
        "day_of_week": day_of_week,
        "raw_train_info": f"{train} {route}",
        "train_number": train,
        "route": route,
        "origin": origin,
        "destination": destination,
        "delay_minutes": delay,
        "delay_hours": round(delay / 60, 2),
        "delay_display": f"{delay} min",
    }


SAMPLE_RECORDS: List[Dict[str, Any]] = [
    _record(1, "101", "Kyiv - Lviv", "2024-01-15T08:10:00", 10, 8, 0),
    _record(2, "101", "Kyiv - Lviv", "2024-01-15T09:30:00", 20, 9, 0),
    _record(3, "202", "Odesa - Kyiv", "2024-01-15T12:00:00", 45, 12, 0),
    _record(4, "101", "Kyiv - Lviv", "2024-01-16T08:05:00", 200, 8, 1),
    _record(5, "303", "Lviv - Odesa", "2024-02-03T23:15:00", 90, 23, 5),
    _record(6, "202", "Odesa - Kyiv", "2024-02-03T06:45:00", 5.5, 6, 5),
]


@pytest.fixture(autouse=True)
def _clear_caches():
    clear_data_cache()
    clear_settings_cache()
    yield
    clear_data_cache()
    clear_settings_cache()


@pytest.fixture
def sample_records() -> List[Dict[str, Any]]:
    return copy.deepcopy(SAMPLE_RECORDS)


@pytest.fixture
def sample_export(sample_records: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "metadata": {"generated_at": "2024-02-04T00:00:00", "source_file": "delays.csv", "total_records": 6},
        "statistics": {"date_range": {"start": "2024-01-15", "end": "2024-02-03"}},
        "records": sample_records,
    }


@pytest.fixture
def records_df(sample_records: List[Dict[str, Any]]) -> pd.DataFrame:
    df, removed = normalize_records(pd.DataFrame.from_records(sample_records))
    assert removed == 0
    return df


@pytest.fixture
def ctx(records_df: pd.DataFrame) -> Dict[str, Any]:
    return {"path": "memory", "metadata": {"total_records": 6}, "statistics": {}, "records": records_df, "dq_removed_rows": 0}


@pytest.fixture
def export_file(tmp_path: Path, sample_export: Dict[str, Any]) -> Path:
    path = tmp_path / "train_delay_data.json"
    path.write_text(json.dumps(sample_export, indent=2), encoding="utf-8")
    return path
