"""Durable state I/O: registry, artifact state files, and content blobs.

Layout under the store root::

    runs/<run_id>/registry.json          artifact id -> current path
    runs/<run_id>/registry.lock
    runs/<run_id>/artifacts/<id>.json    versions metadata, comments, revision
    runs/<run_id>/artifacts/<id>.lock
    runs/<run_id>/blobs/<sha256>.txt     version content, content-addressed

Every JSON file is replaced by temp file + rename, so readers never see a
partial write. Blobs are written before the state that references them.
"""

import contextlib
import json
import os
import re
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, Generic, NamedTuple, TypeVar

from pydantic import ValidationError

from artifact_tracker.errors import Busy, Conflict, InvalidInput, Unavailable
from artifact_tracker.hashing import compute_content_hash, hash_hex
from artifact_tracker.locking import LockTimeout, file_lock
from artifact_tracker.models import ArtifactState, RegistryFile, utc_timestamp
from artifact_tracker.utils.logging import get_logger

_RUN_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")

R = TypeVar("R")


class StateUpdate(NamedTuple, Generic[R]):
    """Outcome of an update function: the state to commit (None = no write) and a result."""

    state: ArtifactState | None
    result: R


def validate_run_id(run_id: str) -> str:
    """
    Check that a run id is usable as a directory name.

    Raises:
        InvalidInput: If run_id is empty or contains path separators
    """
    if not run_id or not _RUN_ID_RE.match(run_id):
        raise InvalidInput(
            f"Invalid run id: {run_id!r} (letters, digits, '.', '_', '-'; max 128 chars)"
        )
    return run_id


def atomic_write_text(content: str, target_path: Path) -> None:
    """
    Write text to target_path atomically (temp file in same dir + rename).

    Content is written exactly as given; no trailing newline is added.

    Raises:
        OSError: If write or rename fails
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(
        dir=target_path.parent, prefix=".tmp_", suffix=target_path.suffix
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(temp_name, target_path)
    except BaseException:
        try:
            os.unlink(temp_name)
        except OSError:
            pass  # Temp file may already be gone
        raise


def atomic_write_json(data: Any, target_path: Path) -> None:
    """Write data as deterministic JSON (sorted keys, 2-space indent) atomically."""
    text = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"
    atomic_write_text(text, target_path)


class StateStore:
    """File-backed persistence for one store root.

    Low-level reads raise FileNotFoundError for missing files and
    Unavailable for unreadable ones; callers decide what "missing" means.
    """

    def __init__(self, root: Path, lock_timeout: float = 5.0, max_retries: int = 3) -> None:
        self.root = Path(root)
        self.lock_timeout = lock_timeout
        self.max_retries = max_retries

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def run_dir(self, run_id: str) -> Path:
        return self.root / "runs" / validate_run_id(run_id)

    def registry_path(self, run_id: str) -> Path:
        return self.run_dir(run_id) / "registry.json"

    def state_path(self, run_id: str, artifact_id: str) -> Path:
        return self.run_dir(run_id) / "artifacts" / f"{artifact_id}.json"

    def blob_path(self, run_id: str, content_hash: str) -> Path:
        return self.run_dir(run_id) / "blobs" / f"{hash_hex(content_hash)}.txt"

    # ------------------------------------------------------------------
    # Locks
    # ------------------------------------------------------------------

    def registry_lock(self, run_id: str) -> contextlib.AbstractContextManager[None]:
        return self._lock(self.run_dir(run_id) / "registry.lock", f"run {run_id}")

    def artifact_lock(
        self, run_id: str, artifact_id: str
    ) -> contextlib.AbstractContextManager[None]:
        return self._lock(
            self.run_dir(run_id) / "artifacts" / f"{artifact_id}.lock", f"artifact {artifact_id}"
        )

    @contextlib.contextmanager
    def _lock(self, path: Path, label: str) -> Iterator[None]:
        """Exclusive lock translating lock failures into Busy / Unavailable."""
        with contextlib.ExitStack() as stack:
            try:
                stack.enter_context(file_lock(path, mode="exclusive", timeout=self.lock_timeout))
            except LockTimeout as e:
                raise Busy(f"Could not lock {label}: {e}") from e
            except OSError as e:
                raise Unavailable(f"Could not open lock file {path}: {e}") from e
            yield

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def read_registry(self, run_id: str) -> RegistryFile:
        """Read a run's registry; an absent registry is an empty one."""
        path = self.registry_path(run_id)
        if not path.exists():
            return RegistryFile(run_id=run_id)
        try:
            return RegistryFile.model_validate(self._read_json(path))
        except ValidationError as e:
            raise Unavailable(f"Registry failed schema validation ({path}): {e}") from e

    def write_registry(self, registry: RegistryFile) -> None:
        """Write a run's registry. Caller must hold the registry lock."""
        self._write_json(self.registry_path(registry.run_id), registry.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # Artifact state
    # ------------------------------------------------------------------

    def read_state(self, run_id: str, artifact_id: str) -> ArtifactState:
        """
        Read an artifact's committed state.

        Raises:
            FileNotFoundError: If the artifact has no state file
            Unavailable: If the file is unreadable or fails validation
        """
        path = self.state_path(run_id, artifact_id)
        if not path.exists():
            raise FileNotFoundError(f"Artifact state not found: {path}")
        try:
            return ArtifactState.model_validate(self._read_json(path))
        except ValidationError as e:
            raise Unavailable(f"Artifact state failed schema validation ({path}): {e}") from e

    def write_state(self, state: ArtifactState) -> None:
        """Write an artifact's state. Caller must hold the artifact lock."""
        self._write_json(
            self.state_path(state.run_id, state.artifact_id), state.model_dump(mode="json")
        )

    def commit_state(self, state: ArtifactState, expected_revision: int) -> ArtifactState:
        """
        Commit a new state if nobody else committed since expected_revision.

        The committed copy gets revision expected_revision + 1 and a fresh
        updated_at.

        Raises:
            Conflict: If the stored revision moved
            Busy: If the artifact lock could not be acquired in time
        """
        with self.artifact_lock(state.run_id, state.artifact_id):
            path = self.state_path(state.run_id, state.artifact_id)
            current_revision = (
                self.read_state(state.run_id, state.artifact_id).revision if path.exists() else 0
            )
            if current_revision != expected_revision:
                raise Conflict(
                    f"Artifact {state.artifact_id} changed during update "
                    f"(expected revision {expected_revision}, found {current_revision})"
                )
            committed = state.model_copy(
                update={"revision": expected_revision + 1, "updated_at": utc_timestamp()}
            )
            self.write_state(committed)
            return committed

    def update_state_with_retry(
        self,
        run_id: str,
        artifact_id: str,
        update_fn: Callable[[ArtifactState], StateUpdate[R]],
    ) -> R:
        """
        Apply update_fn to the latest state with optimistic retry.

        1. Read committed state
        2. update_fn computes the new state (outside any lock)
        3. Commit with revision check under the artifact lock
        4. On Conflict, start over with the re-read state

        update_fn may return a StateUpdate whose state is None to skip the
        write (e.g. an unchanged sync).

        Raises:
            FileNotFoundError: If the artifact has no state file
            Busy: If retries are exhausted or the lock times out
        """
        logger = get_logger()
        for attempt in range(1, self.max_retries + 1):
            current = self.read_state(run_id, artifact_id)
            update = update_fn(current)
            if update.state is None:
                return update.result
            try:
                self.commit_state(update.state, current.revision)
                return update.result
            except Conflict:
                logger.debug(
                    "Commit conflict, retrying",
                    artifact_id=artifact_id,
                    attempt=attempt,
                )
                continue

        raise Busy(
            f"Failed to update artifact {artifact_id} after {self.max_retries} attempts due to "
            "concurrent modifications. Please try again."
        )

    # ------------------------------------------------------------------
    # Content blobs
    # ------------------------------------------------------------------

    def write_blob(self, run_id: str, content: str) -> str:
        """Store content under its hash (no-op if already stored); return the hash."""
        content_hash = compute_content_hash(content)
        path = self.blob_path(run_id, content_hash)
        if not path.exists():
            try:
                atomic_write_text(content, path)
            except OSError as e:
                raise Unavailable(f"Failed to write content blob {path}: {e}") from e
        return content_hash

    def read_blob(self, run_id: str, content_hash: str) -> str:
        """
        Read content by hash, verifying integrity.

        Raises:
            Unavailable: If the blob is missing, unreadable, or corrupt
        """
        path = self.blob_path(run_id, content_hash)
        try:
            with open(path, encoding="utf-8", newline="") as f:
                content = f.read()
        except OSError as e:
            raise Unavailable(f"Failed to read content blob {path}: {e}") from e
        if compute_content_hash(content) != content_hash:
            raise Unavailable(f"Content blob is corrupt: {path}")
        return content

    # ------------------------------------------------------------------
    # JSON helpers
    # ------------------------------------------------------------------

    def _read_json(self, path: Path) -> Any:
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise Unavailable(f"Invalid JSON in {path}: {e}") from e
        except OSError as e:
            raise Unavailable(f"Failed to read {path}: {e}") from e

    def _write_json(self, path: Path, data: Any) -> None:
        try:
            atomic_write_json(data, path)
        except OSError as e:
            raise Unavailable(f"Failed to write {path}: {e}") from e
