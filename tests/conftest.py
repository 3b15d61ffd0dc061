"""
Shared fixtures for the GA data tool tests.

Datasets are written to tmp_path so every test controls its own rows, and
settings are rebuilt per test (get_settings is lru_cached).
"""

import json
import random
from typing import Any, Dict, List

import pytest

from settings import Settings, get_settings


@pytest.fixture
def home_rows() -> List[Dict[str, Any]]:
    return [{"Views": 100, "Users": 50, "Paths": "/home"}]


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def write_dataset(tmp_path):
    def _write(rows, name: str = "ga4_pages_and_screens.json"):
        path = tmp_path / name
        path.write_text(json.dumps(rows), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def home_dataset(write_dataset, home_rows):
    return write_dataset(home_rows)


@pytest.fixture
def env_settings(monkeypatch, home_dataset):
    """
    Point GA_DATA_* env at the tmp dataset and reset the cached settings.
    """
    monkeypatch.setenv("GA_DATA_DATASET_PATH", str(home_dataset))
    monkeypatch.setenv("GA_DATA_RANDOM_SEED", "42")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def client(home_dataset):
    from fastapi.testclient import TestClient

    from app import app

    settings = Settings(dataset_path=str(home_dataset), random_seed=7)
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
