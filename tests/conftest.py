"""Shared pytest fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cthist.settings import Settings
from cthist.storage.checkpoint import CheckpointStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def settings() -> Settings:
    return Settings(quiet=True, lock_timeout=0.1)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "versions.csv"


@pytest.fixture
def store(store_path: Path) -> CheckpointStore:
    return CheckpointStore(store_path)


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def version_payload() -> dict:
    return json.loads((FIXTURES_DIR / "ctgov_version.json").read_text())


@pytest.fixture
def history_payload() -> dict:
    return json.loads((FIXTURES_DIR / "ctgov_history.json").read_text())
