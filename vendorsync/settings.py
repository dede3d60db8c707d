"""Process-wide settings, built once and passed to the services that need them."""

from __future__ import annotations

import os
from dataclasses import dataclass

SOURCE_CANONICAL = "source-canonical"
BIDIRECTIONAL = "bidirectional"

SOURCE_INTERNAL = "internal"
REF_LOCAL = "local"


@dataclass(frozen=True)
class Settings:
    """Immutable tool settings."""

    vendor_dir: str = ".vendorsync"
    config_file: str = "vendor.yml"
    lock_file: str = "vendor.lock"
    cache_dir: str = ".cache"

    binary_scan_window: int = 8000  # Bytes scanned for NUL, as git does
    max_cache_files: int = 1000

    compliance_modes: tuple[str, ...] = (SOURCE_CANONICAL, BIDIRECTIONAL)
    default_compliance: str = SOURCE_CANONICAL
    local_ref: str = REF_LOCAL

    log_level: str = "WARNING"
    log_format: str = "console"  # console | json

    @property
    def config_path(self) -> str:
        return f"{self.vendor_dir}/{self.config_file}"

    @property
    def lock_path(self) -> str:
        return f"{self.vendor_dir}/{self.lock_file}"

    @property
    def cache_path(self) -> str:
        return f"{self.vendor_dir}/{self.cache_dir}"

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Build settings from ``VENDORSYNC_*`` environment variables."""
        values = {}
        if os.environ.get("VENDORSYNC_DIR"):
            values["vendor_dir"] = os.environ["VENDORSYNC_DIR"]
        if os.environ.get("VENDORSYNC_LOG_LEVEL"):
            values["log_level"] = os.environ["VENDORSYNC_LOG_LEVEL"].upper()
        if os.environ.get("VENDORSYNC_LOG_FORMAT"):
            values["log_format"] = os.environ["VENDORSYNC_LOG_FORMAT"]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


DEFAULT_SETTINGS = Settings()
