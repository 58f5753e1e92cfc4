"""File collaborator: existence checks, reads, and renames of artifact files.

The engine never watches the filesystem. It only asks, at request time,
whether a file exists (artifact status), reads it when a caller syncs by
path, and renames it for a non-refs-only move.
"""

import os
from pathlib import Path, PurePosixPath
from typing import Protocol

from artifact_tracker.errors import Conflict, InvalidInput, SourceFileNotFound, Unavailable


class FileSystem(Protocol):
    """Capabilities the engine needs from the filesystem."""

    def exists(self, path: str) -> bool: ...

    def read_text(self, path: str) -> str: ...

    def rename(self, old_path: str, new_path: str) -> None: ...


def normalize_artifact_path(path: str | Path, project_root: Path) -> str:
    """
    Normalize a path to the POSIX form used as an artifact key.

    Relative paths are taken relative to project_root; ".." and "."
    components are resolved; the result must stay inside project_root.

    Args:
        path: Path as given by the caller (relative or absolute)
        project_root: Root directory of the project

    Returns:
        Relative POSIX path (e.g., "docs/plan.md")

    Raises:
        InvalidInput: If path is empty or unencodable, names the root itself,
            or escapes it
    """
    if not str(path).strip():
        raise InvalidInput("Path must not be empty")
    require_utf8(str(path), "Path")

    root_abs = project_root.resolve()
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = root_abs / candidate
    normalized = Path(os.path.normpath(candidate))

    try:
        relative = normalized.relative_to(root_abs)
    except ValueError:
        raise InvalidInput(
            f"Path is outside project root:\n  Path: {normalized}\n  Root: {root_abs}"
        ) from None

    posix = PurePosixPath(*relative.parts).as_posix()
    if posix in ("", "."):
        raise InvalidInput("Path must name a file, not the project root")
    return posix


def require_utf8(text: str, field: str) -> str:
    """
    Check that text can be stored as UTF-8.

    Strings decoded from JSON may carry lone surrogates ("\\ud800"), which
    have no UTF-8 encoding.

    Raises:
        InvalidInput: If text contains a character UTF-8 cannot encode
    """
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidInput(
            f"{field} is not valid text: unencodable character at position {e.start}"
        ) from None
    return text


def is_binary(data: bytes) -> bool:
    """Null byte in the first 8 KiB means binary (same heuristic as git)."""
    return b"\x00" in data[:8192]


class LocalFileSystem:
    """FileSystem backed by the local disk, rooted at the project root."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()

    def _abs(self, path: str) -> Path:
        return self.root / normalize_artifact_path(path, self.root)

    def exists(self, path: str) -> bool:
        return self._abs(path).is_file()

    def read_text(self, path: str) -> str:
        """
        Read a text file.

        Raises:
            SourceFileNotFound: If the file does not exist
            InvalidInput: If the file is binary or not valid UTF-8
            Unavailable: If the file cannot be read
        """
        target = self._abs(path)
        if not target.is_file():
            raise SourceFileNotFound(f"File not found: {path}")
        try:
            data = target.read_bytes()
        except OSError as e:
            raise Unavailable(f"Failed to read {path}: {e}") from e

        if is_binary(data):
            raise InvalidInput(f"Binary files not supported: {path}")
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidInput(f"File is not valid UTF-8: {path}") from e

    def rename(self, old_path: str, new_path: str) -> None:
        """
        Move a file, creating parent directories of the target.

        Raises:
            SourceFileNotFound: If the source does not exist
            Conflict: If a file already exists at the target
            Unavailable: If the rename fails
        """
        source = self._abs(old_path)
        target = self._abs(new_path)
        if not source.is_file():
            raise SourceFileNotFound(f"Source file not found: {old_path}")
        if target.exists():
            raise Conflict(f"A file already exists at {new_path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            os.rename(source, target)
        except OSError as e:
            raise Unavailable(f"Failed to move {old_path} to {new_path}: {e}") from e
