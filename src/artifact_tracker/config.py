"""Configuration loaded from environment variables (ARTIFACT_TRACKER_*)."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TrackerSettings(BaseSettings):
    """Settings for the artifact tracker.

    Every field can be set with an ARTIFACT_TRACKER_<NAME> environment
    variable or a .env file; CLI options take precedence.
    """

    model_config = SettingsConfigDict(
        env_prefix="ARTIFACT_TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Store location, relative to the project root unless absolute
    store_dir: Path = Path(".artifacts")

    # Concurrency
    lock_timeout: float = Field(default=5.0, gt=0, description="Seconds to wait for a lock")
    max_retries: int = Field(default=3, ge=1, description="Commit attempts before Busy")

    # Anchoring
    context_chars: int = Field(default=80, ge=0, description="Context captured per side")

    # Run used when the caller does not name one
    default_run: str = "default"


@lru_cache
def get_settings() -> TrackerSettings:
    """Cached settings instance."""
    return TrackerSettings()


def find_project_root(start_path: Path | None = None) -> Path:
    """
    Find the project root by looking for a .git directory.

    Walks up from start_path; when no repository is found, start_path
    itself is the root.

    Args:
        start_path: Starting directory (defaults to current working directory)

    Returns:
        Absolute path to project root
    """
    current = (start_path or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        if (parent / ".git").exists():
            return parent
    return current


def resolve_store_root(settings: TrackerSettings, project_root: Path) -> Path:
    """Absolute store directory for a project."""
    if settings.store_dir.is_absolute():
        return settings.store_dir
    return project_root / settings.store_dir
