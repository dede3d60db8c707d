"""Sync for internal vendors: copy mapped files within the project.

An internal sync is what creates the lock entries that compliance checks
compare against. Every mapping is copied (addressed regions through the
extractor and placer, whole files and directories verbatim) and the
fingerprints of both sides are recorded.
"""

from __future__ import annotations

import hashlib
import posixpath
from dataclasses import dataclass, field
from datetime import datetime, timezone

from vendorsync.errors import AddressRangeError, BinaryContentError, ValidationError
from vendorsync.models.vendor import LockDetails, VendorLock, VendorSpec
from vendorsync.position.address import PositionAddress, format_path_position, parse_path_position
from vendorsync.position.extract import extract_from_content, extract_position, place_content
from vendorsync.settings import DEFAULT_SETTINGS, SOURCE_INTERNAL, Settings
from vendorsync.store.cache_store import CacheStore
from vendorsync.store.filesystem import FileSystem, validate_dest_path
from vendorsync.store.yaml_store import ConfigStore, LockStore
from vendorsync.sync.validation import compute_auto_path
from vendorsync.utils.logging import get_logger

logger = get_logger("sync.internal")


@dataclass
class SyncReport:
    synced: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    files_written: int = 0
    warnings: list[str] = field(default_factory=list)
    dry_run: bool = False


@dataclass
class _Copy:
    """One file-level copy derived from a mapping."""

    src_file: str
    src_addr: PositionAddress | None
    dest_file: str
    dest_addr: PositionAddress | None

    @property
    def label(self) -> str:
        return (
            f"{format_path_position(self.src_file, self.src_addr)} -> "
            f"{format_path_position(self.dest_file, self.dest_addr)}"
        )


class InternalSyncService:
    """Copies internal vendor mappings and records them in the lock."""

    def __init__(
        self,
        config_store: ConfigStore,
        lock_store: LockStore,
        cache: CacheStore,
        fs: FileSystem,
        settings: Settings = DEFAULT_SETTINGS,
    ):
        self.config_store = config_store
        self.lock_store = lock_store
        self.cache = cache
        self.fs = fs
        self.settings = settings

    def sync(
        self, vendor_name: str | None = None, dry_run: bool = False, force: bool = False
    ) -> SyncReport:
        """Sync every internal vendor, or only ``vendor_name``.

        Args:
            vendor_name: Restrict the sync to one vendor.
            dry_run: Report what would be copied without writing anything.
            force: Copy even when the content hash and cache say nothing changed.

        Raises:
            ValidationError: If ``vendor_name`` is not an internal vendor or a
                destination escapes the project.
        """
        config = self.config_store.load()
        lock = self.lock_store.load()
        report = SyncReport(dry_run=dry_run)

        vendors = [
            v for v in config.vendors if v.is_internal and (not vendor_name or v.name == vendor_name)
        ]
        if vendor_name and not vendors:
            raise ValidationError(f"internal vendor {vendor_name!r} not found", vendor_name)

        for vendor in vendors:
            self._sync_vendor(vendor, lock, report, dry_run, force)

        if report.synced and not dry_run:
            self.lock_store.save(lock)

        logger.info(
            "Internal sync finished",
            synced=len(report.synced),
            skipped=len(report.skipped),
            files=report.files_written,
            dry_run=dry_run,
        )
        return report

    def _sync_vendor(
        self, vendor: VendorSpec, lock: VendorLock, report: SyncReport, dry_run: bool, force: bool
    ) -> None:
        copies = self._plan(vendor)
        content_hash = self._content_hash(copies)
        locked = lock.get(vendor.name, self.settings.local_ref)

        if not force and locked and locked.commit_hash == content_hash and self._cache_matches(
            vendor.name, content_hash
        ):
            logger.debug("Vendor unchanged", vendor=vendor.name)
            report.skipped.append(vendor.name)
            return

        entry = LockDetails(
            name=vendor.name,
            ref=self.settings.local_ref,
            source=SOURCE_INTERNAL,
            commit_hash=content_hash,
        )

        # Read everything and check for local edits before the first write, so
        # several regions placed into one file do not flag each other.
        contents = [self._read_source(copy) for copy in copies]
        warned: set[str] = set()
        for copy, content in zip(copies, contents):
            if copy.dest_file in warned or not self._locally_modified(copy, content, locked):
                continue
            warned.add(copy.dest_file)
            report.warnings.append(
                f"{vendor.name}: {copy.dest_file} has local modifications that will be overwritten"
            )
            logger.warning("Local modifications", vendor=vendor.name, dest=copy.dest_file)

        if dry_run:
            report.synced.append(vendor.name)
            return

        for copy, content in zip(copies, contents):
            place_content(
                copy.dest_file, content, copy.dest_addr, fs=self.fs, window=self.settings.binary_scan_window
            )
            report.files_written += 1

        report.synced.append(vendor.name)
        for copy in copies:
            entry.source_file_hashes[copy.src_file] = self.cache.compute_file_checksum(copy.src_file)
            entry.file_hashes[copy.dest_file] = self.cache.compute_file_checksum(copy.dest_file)

        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        entry.updated = stamp
        entry.last_synced_at = stamp
        lock.upsert(entry)

        dest_files = sorted({copy.dest_file for copy in copies})
        self.cache.save(
            self.cache.build_cache(vendor.name, self.settings.local_ref, content_hash, dest_files)
        )
        logger.info("Vendor synced", vendor=vendor.name, files=len(copies))

    # --- Planning ---

    def _plan(self, vendor: VendorSpec) -> list[_Copy]:
        copies: list[_Copy] = []
        for spec in vendor.specs:
            for mapping in spec.mapping:
                src_file, src_addr = parse_path_position(mapping.from_path)
                dest_raw = mapping.to_path or compute_auto_path(
                    src_file, spec.default_target, vendor.name
                )
                dest_file, dest_addr = parse_path_position(dest_raw)

                try:
                    validate_dest_path(dest_file)
                except ValueError as e:
                    raise ValidationError(str(e), vendor.name, ref=spec.ref, field="mapping.to")

                if src_addr is None and self.fs.is_dir(src_file):
                    for rel in self.fs.list_files(src_file):
                        copies.append(
                            _Copy(
                                posixpath.join(src_file, rel),
                                None,
                                posixpath.join(dest_file, rel),
                                None,
                            )
                        )
                else:
                    copies.append(_Copy(src_file, src_addr, dest_file, dest_addr))
        return copies

    def _content_hash(self, copies: list[_Copy]) -> str:
        """Hash of every copy and its source fingerprint, independent of mapping order."""
        lines = sorted(
            f"{copy.label}:{self.cache.compute_file_checksum(copy.src_file)}\n" for copy in copies
        )
        return hashlib.sha256("".join(lines).encode("utf-8")).hexdigest()

    def _cache_matches(self, vendor_name: str, content_hash: str) -> bool:
        cache = self.cache.load(vendor_name, self.settings.local_ref)
        if cache.is_empty or cache.commit_hash != content_hash:
            return False
        for cached in cache.files:
            try:
                if self.cache.compute_file_checksum(cached.path) != cached.hash:
                    return False
            except FileNotFoundError:
                return False
        return True

    # --- Copying ---

    def _read_source(self, copy: _Copy) -> bytes:
        if copy.src_addr is None:
            return self.fs.read_bytes(copy.src_file)
        content, _ = extract_position(
            copy.src_file, copy.src_addr, fs=self.fs, window=self.settings.binary_scan_window
        )
        return content

    def _locally_modified(self, copy: _Copy, incoming: bytes, locked: LockDetails | None) -> bool:
        """Whether writing ``incoming`` would discard edits made at the destination.

        A destination that is missing or whose region no longer resolves gives
        no signal.
        """
        if not self.fs.exists(copy.dest_file):
            return False

        if locked and copy.dest_file in locked.file_hashes:
            current = self.cache.compute_file_checksum(copy.dest_file)
            return current != locked.file_hashes[copy.dest_file]

        existing = self.fs.read_bytes(copy.dest_file)
        if copy.dest_addr is None:
            return existing != incoming
        try:
            region = extract_from_content(
                existing, copy.dest_addr, copy.dest_file, self.settings.binary_scan_window
            )
        except (AddressRangeError, BinaryContentError):
            return False
        return region != incoming
