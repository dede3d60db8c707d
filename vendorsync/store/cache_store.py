"""Checksum cache for incremental sync.

One JSON file per vendor@ref under ``.vendorsync/.cache/`` records the
checksums of the destination files written by the last sync, so an unchanged
vendor can be skipped without rewriting anything.
"""

from __future__ import annotations

import hashlib
import json
import re
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from vendorsync.errors import CacheError
from vendorsync.settings import DEFAULT_SETTINGS, Settings
from vendorsync.store.filesystem import FileSystem


@dataclass
class FileChecksum:
    path: str
    hash: str


@dataclass
class SyncCache:
    """Cached checksums for one vendor@ref."""

    vendor_name: str = ""
    ref: str = ""
    commit_hash: str = ""
    files: list[FileChecksum] = field(default_factory=list)
    cached_at: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.vendor_name


class CacheStore(ABC):
    @abstractmethod
    def compute_file_checksum(self, path: str) -> str:
        ...

    @abstractmethod
    def load(self, vendor_name: str, ref: str) -> SyncCache:
        ...

    @abstractmethod
    def save(self, cache: SyncCache) -> None:
        ...

    @abstractmethod
    def delete(self, vendor_name: str, ref: str) -> None:
        ...

    @abstractmethod
    def build_cache(
        self, vendor_name: str, ref: str, commit_hash: str, files: list[str]
    ) -> SyncCache:
        ...


class FileCacheStore(CacheStore):
    """JSON cache files next to the lock file."""

    def __init__(self, fs: FileSystem, root_dir: str | Path, settings: Settings = DEFAULT_SETTINGS):
        self.fs = fs
        self.cache_dir = Path(root_dir) / settings.cache_path
        self.max_files = settings.max_cache_files

    def _cache_path(self, vendor_name: str, ref: str) -> Path:
        return self.cache_dir / f"{_sanitize(vendor_name)}-{_sanitize(ref)}.json"

    def compute_file_checksum(self, path: str) -> str:
        """``sha256:`` checksum of the raw file bytes.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        return "sha256:" + hashlib.sha256(self.fs.read_bytes(path)).hexdigest()

    def load(self, vendor_name: str, ref: str) -> SyncCache:
        path = self._cache_path(vendor_name, ref)
        try:
            with open(path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return SyncCache()
        except json.JSONDecodeError as e:
            raise CacheError(str(path), str(e))

        try:
            return SyncCache(
                vendor_name=data["vendor_name"],
                ref=data["ref"],
                commit_hash=data.get("commit_hash", ""),
                files=[FileChecksum(**f) for f in data.get("files", [])],
                cached_at=data.get("cached_at", ""),
            )
        except (KeyError, TypeError) as e:
            raise CacheError(str(path), f"missing field {e}")

    def save(self, cache: SyncCache) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        with open(self._cache_path(cache.vendor_name, cache.ref), "w") as f:
            json.dump(asdict(cache), f, indent=2)

    def delete(self, vendor_name: str, ref: str) -> None:
        self._cache_path(vendor_name, ref).unlink(missing_ok=True)

    def build_cache(
        self, vendor_name: str, ref: str, commit_hash: str, files: list[str]
    ) -> SyncCache:
        """Checksum ``files`` into a new cache entry; unreadable files are left out."""
        cache = SyncCache(
            vendor_name=vendor_name,
            ref=ref,
            commit_hash=commit_hash,
            cached_at=datetime.now(timezone.utc).isoformat(),
        )
        for path in files[: self.max_files]:
            try:
                checksum = self.compute_file_checksum(path)
            except FileNotFoundError:
                continue
            cache.files.append(FileChecksum(path=path, hash=checksum))
        return cache


def _sanitize(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9.\-]", "_", value)
