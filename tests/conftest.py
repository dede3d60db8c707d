"""Shared fixtures: in-memory stores and filesystem for service tests."""

import copy
import os

import pytest

from vendorsync.models.vendor import (
    BranchSpec,
    LockDetails,
    PathMapping,
    VendorConfig,
    VendorLock,
    VendorSpec,
)
from vendorsync.settings import SOURCE_INTERNAL, Settings
from vendorsync.store.cache_store import CacheStore, FileCacheStore, SyncCache
from vendorsync.store.filesystem import FileSystem, normalize_path
from vendorsync.store.yaml_store import ConfigStore, LockStore


class MemoryFileSystem(FileSystem):
    def __init__(self, files: dict[str, bytes] | None = None):
        self.files: dict[str, bytes] = {}
        self.writes: list[str] = []
        for path, data in (files or {}).items():
            self.files[normalize_path(path)] = data

    def exists(self, path: str) -> bool:
        return self.is_file(path) or self.is_dir(path)

    def is_file(self, path: str) -> bool:
        return normalize_path(path) in self.files

    def is_dir(self, path: str) -> bool:
        prefix = normalize_path(path) + "/"
        return any(p.startswith(prefix) for p in self.files)

    def stat(self, path: str) -> os.stat_result:
        data = self.read_bytes(path)
        return os.stat_result((0o100644, 0, 0, 1, 0, 0, len(data), 0, 0, 0))

    def mkdir_all(self, path: str) -> None:
        pass

    def read_bytes(self, path: str) -> bytes:
        key = normalize_path(path)
        if key not in self.files:
            raise FileNotFoundError(path)
        return self.files[key]

    def write_bytes(self, path: str, data: bytes) -> None:
        key = normalize_path(path)
        self.files[key] = data
        self.writes.append(key)

    def remove(self, path: str) -> None:
        key = normalize_path(path)
        if key not in self.files:
            raise FileNotFoundError(path)
        del self.files[key]

    def list_files(self, path: str) -> list[str]:
        prefix = normalize_path(path) + "/"
        return sorted(p[len(prefix) :] for p in self.files if p.startswith(prefix))

    def text(self, path: str) -> str:
        return self.read_bytes(path).decode("utf-8")


class MemoryConfigStore(ConfigStore):
    def __init__(self, config: VendorConfig | None = None):
        self.config = config or VendorConfig()
        self.saves = 0

    def load(self) -> VendorConfig:
        return copy.deepcopy(self.config)

    def save(self, config: VendorConfig) -> None:
        self.config = copy.deepcopy(config)
        self.saves += 1


class MemoryLockStore(LockStore):
    def __init__(self, lock: VendorLock | None = None):
        self.lock = lock or VendorLock()
        self.saves = 0

    def load(self) -> VendorLock:
        return copy.deepcopy(self.lock)

    def save(self, lock: VendorLock) -> None:
        self.lock = copy.deepcopy(lock)
        self.saves += 1


class MemoryCacheStore(CacheStore):
    def __init__(self, fs: FileSystem):
        self.fs = fs
        self.entries: dict[tuple[str, str], SyncCache] = {}
        # Checksums come from the same code as the on-disk store.
        self._checksums = FileCacheStore(fs, "/nonexistent")

    def compute_file_checksum(self, path: str) -> str:
        return self._checksums.compute_file_checksum(path)

    def load(self, vendor_name: str, ref: str) -> SyncCache:
        return copy.deepcopy(self.entries.get((vendor_name, ref), SyncCache()))

    def save(self, cache: SyncCache) -> None:
        self.entries[(cache.vendor_name, cache.ref)] = copy.deepcopy(cache)

    def delete(self, vendor_name: str, ref: str) -> None:
        self.entries.pop((vendor_name, ref), None)

    def build_cache(self, vendor_name, ref, commit_hash, files):
        return self._checksums.build_cache(vendor_name, ref, commit_hash, files)


class Workspace:
    """An in-memory project: files, vendor.yml, vendor.lock and cache."""

    def __init__(self):
        self.fs = MemoryFileSystem()
        self.config_store = MemoryConfigStore()
        self.lock_store = MemoryLockStore()
        self.cache = MemoryCacheStore(self.fs)
        self.settings = Settings()

    def write(self, path: str, text: str) -> None:
        self.fs.files[normalize_path(path)] = text.encode("utf-8")

    def add_internal_vendor(
        self, name: str, mappings: list[tuple[str, str]], compliance: str = ""
    ) -> VendorSpec:
        vendor = VendorSpec(
            name=name,
            source=SOURCE_INTERNAL,
            compliance=compliance,
            specs=[BranchSpec(ref="local", mapping=[PathMapping(f, t) for f, t in mappings])],
        )
        self.config_store.config.vendors.append(vendor)
        return vendor

    def lock_current(self, name: str) -> LockDetails:
        """Record the current checksums of every mapped file as the last sync."""
        vendor = self.config_store.config.get(name)
        entry = LockDetails(name=name, ref="local", source=SOURCE_INTERNAL)
        for spec in vendor.specs:
            for mapping in spec.mapping:
                src = mapping.from_path.split(":L")[0]
                dest = mapping.to_path.split(":L")[0]
                entry.source_file_hashes[src] = self.cache.compute_file_checksum(src)
                entry.file_hashes[dest] = self.cache.compute_file_checksum(dest)
        self.lock_store.lock.upsert(entry)
        return entry

    def mappings(self, name: str) -> list[tuple[str, str]]:
        vendor = self.config_store.config.get(name)
        return [(m.from_path, m.to_path) for s in vendor.specs for m in s.mapping]

    def compliance(self):
        from vendorsync.sync.compliance import ComplianceService

        return ComplianceService(self.config_store, self.lock_store, self.cache, self.fs, self.settings)

    def validation(self):
        from vendorsync.sync.validation import ValidationService

        return ValidationService(self.config_store, self.fs, self.settings)

    def internal_sync(self):
        from vendorsync.sync.internal import InternalSyncService

        return InternalSyncService(self.config_store, self.lock_store, self.cache, self.fs, self.settings)


@pytest.fixture
def ws():
    return Workspace()


@pytest.fixture
def memfs():
    return MemoryFileSystem()


def lines(n: int, prefix: str = "line") -> str:
    """``n`` numbered lines, newline-terminated."""
    return "".join(f"{prefix}{i}\n" for i in range(1, n + 1))


@pytest.fixture
def make_lines():
    return lines


