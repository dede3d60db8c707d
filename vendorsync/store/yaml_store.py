"""YAML-backed configuration and lock stores.

Both files live under the vendor directory (``.vendorsync/`` by default).
Saves go through a temporary file that replaces the target in one rename, so
a failed save leaves the previous file as it was.
"""

from __future__ import annotations

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import yaml

from vendorsync.errors import StoreError
from vendorsync.models.vendor import VendorConfig, VendorLock
from vendorsync.settings import DEFAULT_SETTINGS, Settings

SUPPORTED_LOCK_MAJOR = 1


class ConfigStore(ABC):
    @abstractmethod
    def load(self) -> VendorConfig:
        ...

    @abstractmethod
    def save(self, config: VendorConfig) -> None:
        ...


class LockStore(ABC):
    @abstractmethod
    def load(self) -> VendorLock:
        ...

    @abstractmethod
    def save(self, lock: VendorLock) -> None:
        ...


class YAMLFile:
    """Reads and writes one YAML document."""

    def __init__(self, path: str | Path, allow_missing: bool = False):
        self.path = Path(path)
        self.allow_missing = allow_missing

    def read(self) -> dict | None:
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            if self.allow_missing:
                return None
            raise StoreError(str(self.path), "file not found")
        except yaml.YAMLError as e:
            raise StoreError(str(self.path), f"invalid YAML: {e}")

        if data is not None and not isinstance(data, dict):
            raise StoreError(str(self.path), "expected a mapping at the top level")
        return data

    def write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class FileConfigStore(ConfigStore):
    """``vendor.yml`` on disk."""

    def __init__(self, root_dir: str | Path, settings: Settings = DEFAULT_SETTINGS):
        self._file = YAMLFile(Path(root_dir) / settings.config_path)

    @property
    def path(self) -> Path:
        return self._file.path

    def load(self) -> VendorConfig:
        return VendorConfig.from_dict(self._file.read())

    def save(self, config: VendorConfig) -> None:
        self._file.write(config.to_dict())


class FileLockStore(LockStore):
    """``vendor.lock`` on disk. A missing lock file loads as an empty lock."""

    def __init__(self, root_dir: str | Path, settings: Settings = DEFAULT_SETTINGS):
        self._file = YAMLFile(Path(root_dir) / settings.lock_path, allow_missing=True)

    @property
    def path(self) -> Path:
        return self._file.path

    def load(self) -> VendorLock:
        lock = VendorLock.from_dict(self._file.read())
        _check_schema_version(str(self.path), lock.schema_version)
        return lock

    def save(self, lock: VendorLock) -> None:
        self._file.write(lock.to_dict())


def _check_schema_version(path: str, version: str) -> None:
    major, _, _ = version.partition(".")
    try:
        major_num = int(major)
    except ValueError:
        raise StoreError(path, f"invalid schema_version {version!r}")
    if major_num > SUPPORTED_LOCK_MAJOR:
        raise StoreError(
            path,
            f"lock schema_version {version} is newer than supported "
            f"({SUPPORTED_LOCK_MAJOR}.x); upgrade vendorsync",
        )
