"""Shared fixtures for artifact tracker tests."""

import os
from pathlib import Path

import pytest

from artifact_tracker.config import TrackerSettings, get_settings
from artifact_tracker.service import ArtifactService
from artifact_tracker.utils.logging import reset_logger


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch):
    """Drop ARTIFACT_TRACKER_* variables and cached settings/logger between tests."""
    for name in list(os.environ):
        if name.startswith("ARTIFACT_TRACKER_"):
            monkeypatch.delenv(name)
    get_settings.cache_clear()
    reset_logger()
    yield
    get_settings.cache_clear()
    reset_logger()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Project root containing a .git directory and a docs/ folder."""
    root = tmp_path / "project"
    (root / ".git").mkdir(parents=True)
    (root / "docs").mkdir()
    return root


@pytest.fixture
def settings() -> TrackerSettings:
    """Settings with short lock timeouts for fast tests."""
    return TrackerSettings(lock_timeout=1.0, max_retries=3)


@pytest.fixture
def service(project: Path, settings: TrackerSettings) -> ArtifactService:
    """Service rooted at the test project."""
    return ArtifactService(project, settings=settings)
