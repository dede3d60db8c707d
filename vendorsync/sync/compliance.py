"""Compliance checking and propagation for internal vendors.

Each mapping of an internal vendor is classified from four fingerprints: the
source and destination checksums recorded in the lock at the last sync, and
their current values. The vendor's compliance mode then decides what to do:

    mode              state        action
    any               synced       nothing
    any               both drifted conflict, nothing is written
    source-canonical  source drift source -> destination
    source-canonical  dest drift   warning only (destination -> source with reverse)
    bidirectional     source drift source -> destination
    bidirectional     dest drift   destination -> source

Propagation is best-effort: every mapping is attempted, failures are collected
and raised together once the lock has been updated for the mappings that
succeeded. Lock fingerprints are kept per file, so a file that a conflicting
or failed mapping also references keeps its old fingerprint until that mapping
is resolved.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from vendorsync.errors import ComplianceConflictError, PropagationError, VendorSyncError
from vendorsync.models.compliance import (
    Action,
    ComplianceEntry,
    ComplianceResult,
    DriftState,
    summarize,
)
from vendorsync.models.vendor import LockDetails, PathMapping, VendorConfig, VendorLock, VendorSpec
from vendorsync.position.address import PositionAddress, parse_path_position, strip_position
from vendorsync.position.extract import count_lines, extract_position, place_content
from vendorsync.settings import BIDIRECTIONAL, DEFAULT_SETTINGS, Settings
from vendorsync.store.cache_store import CacheStore
from vendorsync.store.filesystem import FileSystem
from vendorsync.store.yaml_store import ConfigStore, LockStore
from vendorsync.sync.drift import classify
from vendorsync.sync.positions import adjust_position_addresses, resize_written_range
from vendorsync.sync.validation import compute_auto_path
from vendorsync.utils.logging import get_logger

logger = get_logger("sync.compliance")


@dataclass
class ComplianceOptions:
    vendor_name: str = ""  # Empty means all internal vendors
    dry_run: bool = False
    reverse: bool = False  # Apply dest -> source in source-canonical mode


@dataclass
class _MappingRef:
    """Links a compliance entry back to the live config and lock objects."""

    vendor: VendorSpec
    mapping: PathMapping
    default_target: str
    lock_entry: LockDetails

    def resolve(self) -> tuple[str, PositionAddress | None, str, PositionAddress | None]:
        src_file, src_addr = parse_path_position(self.mapping.from_path)
        dest_raw = self.mapping.to_path or compute_auto_path(
            src_file, self.default_target, self.vendor.name
        )
        dest_file, dest_addr = parse_path_position(dest_raw)
        return src_file, src_addr, dest_file, dest_addr


class ComplianceService:
    """Drift detection and propagation for internal vendors."""

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

    def check(self, options: ComplianceOptions | None = None) -> ComplianceResult:
        """Classify every internal mapping without writing anything."""
        _, _, result, _ = self._evaluate(options or ComplianceOptions())
        return result

    def propagate(self, options: ComplianceOptions | None = None) -> ComplianceResult:
        """Check, then copy drifted content according to each vendor's mode.

        Raises:
            PropagationError: If any mapping conflicted or failed. The lock is
                still updated for the mappings that succeeded, and the error
                carries the full result.
        """
        options = options or ComplianceOptions()
        config, lock, result, refs = self._evaluate(options)

        failures: list[str] = []
        resolved: list[tuple[ComplianceEntry, _MappingRef]] = []
        config_changed = False

        for entry, ref in zip(result.entries, refs):
            if entry.state == DriftState.SYNCED:
                continue

            if entry.state == DriftState.BOTH_DRIFT:
                conflict = ComplianceConflictError(entry.vendor_name, entry.from_path, entry.to_path)
                failures.append(str(conflict))
                logger.error("Conflict", vendor=entry.vendor_name, src=entry.from_path, dest=entry.to_path)
                continue

            if entry.action == Action.WARN:
                warning = (
                    f"{entry.vendor_name}: destination {entry.dest_file} modified "
                    f"(source-canonical mode, use --reverse to apply)"
                )
                result.warnings.append(warning)
                logger.warning("Destination modified", vendor=entry.vendor_name, dest=entry.dest_file)
                continue

            if options.dry_run:
                entry.dry_run = True
                continue

            try:
                changed = self._propagate_entry(config, entry, ref)
            except (VendorSyncError, OSError) as e:
                failures.append(f"{entry.identifier}: {e}")
                logger.error("Propagation failed", mapping=entry.identifier, error=str(e))
                continue

            config_changed = config_changed or changed
            entry.propagated = True
            resolved.append((entry, ref))

        if config_changed:
            self.config_store.save(config)

        if resolved:
            self._update_lock(lock, resolved, result.entries)

        result.summary = summarize(result.entries)

        if failures:
            raise PropagationError(failures, result)
        return result

    # --- Evaluation ---

    def _evaluate(
        self, options: ComplianceOptions
    ) -> tuple[VendorConfig, VendorLock, ComplianceResult, list[_MappingRef]]:
        config = self.config_store.load()
        lock = self.lock_store.load()

        result = ComplianceResult(timestamp=_now())
        refs: list[_MappingRef] = []

        for lock_entry in lock.vendors:
            if not lock_entry.is_internal:
                continue
            if options.vendor_name and lock_entry.name != options.vendor_name:
                continue

            vendor = config.get(lock_entry.name)
            if vendor is None or not vendor.is_internal:
                continue

            mode = vendor.compliance or self.settings.default_compliance
            for entry, ref in self._check_vendor(vendor, lock_entry, mode, options):
                result.entries.append(entry)
                refs.append(ref)

        result.summary = summarize(result.entries)
        logger.info(
            "Compliance checked",
            entries=result.summary.total,
            result=result.summary.result.value,
        )
        return config, lock, result, refs

    def _check_vendor(
        self,
        vendor: VendorSpec,
        lock_entry: LockDetails,
        mode: str,
        options: ComplianceOptions,
    ) -> list[tuple[ComplianceEntry, _MappingRef]]:
        checked: dict[tuple[str, str], tuple[ComplianceEntry, _MappingRef]] = {}

        for spec in vendor.specs:
            for mapping in spec.mapping:
                key = (mapping.from_path, mapping.to_path)
                if key in checked:
                    continue

                ref = _MappingRef(vendor, mapping, spec.default_target, lock_entry)
                src_file = strip_position(mapping.from_path)
                dest_file = strip_position(
                    mapping.to_path
                    or compute_auto_path(src_file, spec.default_target, vendor.name)
                )

                locked_src = lock_entry.source_file_hashes.get(src_file)
                locked_dest = lock_entry.file_hashes.get(dest_file)
                if locked_src is None or locked_dest is None:
                    logger.debug("Mapping not synced yet", vendor=vendor.name, mapping=mapping.identifier)
                    continue

                current_src = self._checksum(src_file)
                current_dest = self._checksum(dest_file)
                state = classify(locked_src, current_src, locked_dest, current_dest)

                entry = ComplianceEntry(
                    vendor_name=vendor.name,
                    from_path=mapping.from_path,
                    to_path=mapping.to_path or dest_file,
                    source_file=src_file,
                    dest_file=dest_file,
                    state=state,
                    compliance=mode,
                    source_hash_locked=locked_src,
                    source_hash_current=current_src,
                    dest_hash_locked=locked_dest,
                    dest_hash_current=current_dest,
                    action=_select_action(state, mode, options.reverse),
                )
                checked[key] = (entry, ref)

        return list(checked.values())

    def _checksum(self, path: str) -> str:
        """Current checksum, or an ``error:`` marker that never matches a lock value."""
        try:
            return self.cache.compute_file_checksum(path)
        except OSError as e:
            return f"error: {e}"

    # --- Execution ---

    def _propagate_entry(
        self, config: VendorConfig, entry: ComplianceEntry, ref: _MappingRef
    ) -> bool:
        """Copy one mapping in the direction its action names.

        Addresses are re-read from the live mapping, so shifts made by earlier
        entries in the same run are honoured. Afterwards the written range of
        the mapping itself is fitted to the placed content, and the ranges of
        its siblings on the written file are shifted by the line count delta.

        Returns:
            True if position addresses in ``config`` were adjusted.
        """
        src_file, src_addr, dest_file, dest_addr = ref.resolve()

        if entry.action == Action.SOURCE_TO_DEST:
            read_file, read_addr, write_file, write_addr = src_file, src_addr, dest_file, dest_addr
            write_attr = "to_path"
        else:
            read_file, read_addr, write_file, write_addr = dest_file, dest_addr, src_file, src_addr
            write_attr = "from_path"

        old_count = count_lines(self._read_or_empty(write_file))

        content = self._read_region(read_file, read_addr)
        place_content(write_file, content, write_addr, fs=self.fs, window=self.settings.binary_scan_window)

        new_count = count_lines(self._read_or_empty(write_file))
        logger.info(
            "Propagated",
            vendor=entry.vendor_name,
            src=read_file,
            dest=write_file,
            lines_before=old_count,
            lines_after=new_count,
        )

        changed = False
        if old_count != new_count:
            changed = adjust_position_addresses(
                config, entry.vendor_name, write_file, old_count, new_count, skip=ref.mapping
            )
        if write_addr is not None:
            changed = resize_written_range(ref.mapping, write_attr, content.count(b"\n") + 1) or changed
        return changed

    def _read_region(self, path: str, address: PositionAddress | None) -> bytes:
        if address is None:
            return self.fs.read_bytes(path)
        content, _ = extract_position(path, address, fs=self.fs, window=self.settings.binary_scan_window)
        return content

    def _read_or_empty(self, path: str) -> bytes:
        try:
            return self.fs.read_bytes(path)
        except FileNotFoundError:
            return b""

    def _update_lock(
        self,
        lock: VendorLock,
        resolved: list[tuple[ComplianceEntry, _MappingRef]],
        entries: list[ComplianceEntry],
    ) -> None:
        """Record new fingerprints for propagated mappings and save the lock once.

        A file that an unresolved mapping of the same vendor also references
        keeps its locked fingerprint, so that mapping still drifts on the next
        run instead of being silently marked as synced.
        """
        pending = {
            (entry.vendor_name, path)
            for entry in entries
            if entry.state != DriftState.SYNCED and not entry.propagated
            for path in (entry.source_file, entry.dest_file)
        }

        stamp = _now()
        for entry, ref in resolved:
            lock_entry = ref.lock_entry
            for path, hashes in (
                (entry.source_file, lock_entry.source_file_hashes),
                (entry.dest_file, lock_entry.file_hashes),
            ):
                if (entry.vendor_name, path) in pending:
                    logger.info("Keeping locked hash", vendor=entry.vendor_name, path=path)
                    continue
                try:
                    hashes[path] = self.cache.compute_file_checksum(path)
                except OSError as e:
                    logger.warning("Could not rehash", path=path, error=str(e))
            lock_entry.last_synced_at = stamp

        self.lock_store.save(lock)


def _select_action(state: DriftState, mode: str, reverse: bool) -> Action:
    if state == DriftState.SYNCED:
        return Action.NONE
    if state == DriftState.BOTH_DRIFT:
        return Action.CONFLICT
    if state == DriftState.SOURCE_DRIFT:
        return Action.SOURCE_TO_DEST
    if mode == BIDIRECTIONAL or reverse:
        return Action.DEST_TO_SOURCE
    return Action.WARN


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
