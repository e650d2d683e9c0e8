"""Shared fixtures: bundled reference data and test settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from stream_classifier.classifiers.store import CombinationStore
from stream_classifier.core.config import DEFAULT_SEED_PATH, Settings


@pytest.fixture(scope="session")
def seed_path() -> Path:
    """Reference data shipped with the package."""
    return DEFAULT_SEED_PATH


@pytest.fixture(scope="session")
def bundled_store(seed_path: Path) -> CombinationStore:
    """Store built from the bundled seed (read-only; do not mutate)."""
    return CombinationStore.from_seed(seed_path)


@pytest.fixture
def test_settings() -> Settings:
    """Settings that keep tests quiet and independent of the environment."""
    return Settings(
        log_json=False,
        log_level="WARNING",
        tracing_enabled=False,
        environment="test",
    )
