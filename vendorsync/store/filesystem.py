"""Filesystem capability used by the sync services.

Relative paths are resolved against the project root. A missing file is always
reported as ``FileNotFoundError`` so callers can tell "not found" apart from
other I/O failures.
"""

from __future__ import annotations

import os
import posixpath
from abc import ABC, abstractmethod
from pathlib import Path


class FileSystem(ABC):
    """Narrow file access interface."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def is_dir(self, path: str) -> bool:
        ...

    @abstractmethod
    def stat(self, path: str) -> os.stat_result:
        ...

    @abstractmethod
    def mkdir_all(self, path: str) -> None:
        ...

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        ...

    @abstractmethod
    def write_bytes(self, path: str, data: bytes) -> None:
        ...

    @abstractmethod
    def remove(self, path: str) -> None:
        ...

    @abstractmethod
    def list_files(self, path: str) -> list[str]:
        """Return every file below ``path``, relative to it, in sorted order."""


class OSFileSystem(FileSystem):
    """Real filesystem rooted at a project directory."""

    def __init__(self, root_dir: str | Path | None = None):
        self.root_dir = Path(root_dir) if root_dir is not None else None

    def resolve(self, path: str) -> Path:
        p = Path(path)
        if self.root_dir is not None and not p.is_absolute():
            return self.root_dir / p
        return p

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def is_dir(self, path: str) -> bool:
        return self.resolve(path).is_dir()

    def stat(self, path: str) -> os.stat_result:
        return self.resolve(path).stat()

    def mkdir_all(self, path: str) -> None:
        if path in ("", "."):
            return
        self.resolve(path).mkdir(parents=True, exist_ok=True)

    def read_bytes(self, path: str) -> bytes:
        return self.resolve(path).read_bytes()

    def write_bytes(self, path: str, data: bytes) -> None:
        self.resolve(path).write_bytes(data)

    def remove(self, path: str) -> None:
        self.resolve(path).unlink()

    def list_files(self, path: str) -> list[str]:
        base = self.resolve(path)
        return sorted(
            item.relative_to(base).as_posix() for item in base.rglob("*") if item.is_file()
        )


def normalize_path(path: str) -> str:
    """Normalize separator style and redundant segments for path comparison."""
    return posixpath.normpath(path.replace("\\", "/"))


def parent_dir(path: str) -> str:
    return posixpath.dirname(path.replace("\\", "/"))


def validate_dest_path(dest_path: str) -> None:
    """Reject absolute destinations and ``..`` traversal.

    Raises:
        ValueError: If the path escapes the project.
    """
    if "\x00" in dest_path:
        raise ValueError("invalid destination path: (null bytes are not allowed)")

    if dest_path.startswith(("/", "\\")) or (
        len(dest_path) >= 2 and dest_path[1] == ":" and dest_path[0].isalpha()
    ):
        raise ValueError(f"invalid destination path: {dest_path} (absolute paths are not allowed)")

    cleaned = normalize_path(dest_path)
    if cleaned == ".." or cleaned.startswith("../"):
        raise ValueError(
            f"invalid destination path: {dest_path} (path traversal with .. is not allowed)"
        )
