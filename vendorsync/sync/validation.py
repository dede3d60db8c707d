"""Configuration validation and path-conflict detection.

``validate_config`` is the gate every configuration passes before it is used:
vendor names, remote vs. internal vendor rules, and finally cycle detection
over internal mappings.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass

from vendorsync.errors import ValidationError
from vendorsync.models.vendor import BranchSpec, PathMapping, VendorConfig, VendorSpec
from vendorsync.position.address import strip_position
from vendorsync.settings import DEFAULT_SETTINGS, Settings
from vendorsync.store.filesystem import FileSystem, normalize_path
from vendorsync.store.yaml_store import ConfigStore
from vendorsync.sync.cycles import detect_internal_cycles
from vendorsync.utils.logging import get_logger

logger = get_logger("sync.validation")

ALLOWED_URL_PREFIXES = ("https://", "http://", "ssh://", "git://", "git@")


@dataclass
class PathConflict:
    """Two vendors writing to the same or nested destination paths."""

    path: str
    vendor1: str
    vendor2: str
    mapping1: PathMapping
    mapping2: PathMapping


class ValidationService:
    """Validates ``vendor.yml`` and reports destination conflicts."""

    def __init__(
        self,
        config_store: ConfigStore,
        fs: FileSystem,
        settings: Settings = DEFAULT_SETTINGS,
    ):
        self.config_store = config_store
        self.fs = fs
        self.settings = settings

    def validate_config(self) -> None:
        """Validate the stored configuration.

        Raises:
            ValidationError: On the first invalid field.
            CycleError: If internal mappings form a cycle.
        """
        config = self.config_store.load()

        if not config.vendors:
            raise ValidationError("no vendors configured")

        seen: set[str] = set()
        for vendor in config.vendors:
            validate_vendor_name(vendor.name)
            if vendor.name in seen:
                raise ValidationError(f"duplicate vendor name: {vendor.name}", vendor.name)
            seen.add(vendor.name)

            if vendor.is_internal:
                self._validate_internal_vendor(vendor)
            else:
                self._validate_remote_vendor(vendor)

        detect_internal_cycles(config)
        logger.debug("Configuration valid", vendors=len(config.vendors))

    def detect_conflicts(self) -> list[PathConflict]:
        """Find destinations claimed by more than one vendor."""
        config = self.config_store.load()
        owners = _build_path_ownership(config)

        conflicts = []
        for path, claims in owners.items():
            for i in range(len(claims) - 1):
                for j in range(i + 1, len(claims)):
                    if claims[i][0] != claims[j][0]:
                        conflicts.append(
                            PathConflict(path, claims[i][0], claims[j][0], claims[i][1], claims[j][1])
                        )

        paths = list(owners)
        for i in range(len(paths) - 1):
            for j in range(i + 1, len(paths)):
                if not _is_nested(paths[i], paths[j]):
                    continue
                first, second = owners[paths[i]][0], owners[paths[j]][0]
                if first[0] != second[0]:
                    conflicts.append(
                        PathConflict(
                            f"{paths[i]} overlaps with {paths[j]}",
                            first[0],
                            second[0],
                            first[1],
                            second[1],
                        )
                    )

        return conflicts

    # --- Internal vendors ---

    def _validate_internal_vendor(self, vendor: VendorSpec) -> None:
        if vendor.url:
            raise ValidationError("internal vendors MUST NOT have a URL", vendor.name, field="url")
        if vendor.license:
            raise ValidationError(
                "internal vendors MUST NOT have a license", vendor.name, field="license"
            )
        self._validate_compliance_mode(vendor)

        if not vendor.specs:
            raise ValidationError("no specs configured", vendor.name)

        for spec in vendor.specs:
            if spec.ref != self.settings.local_ref:
                raise ValidationError(
                    f"internal vendors MUST use ref {self.settings.local_ref!r}",
                    vendor.name,
                    ref=spec.ref,
                    field="ref",
                )
            _require_mappings(vendor, spec)
            for mapping in spec.mapping:
                src_file = strip_position(mapping.from_path)
                if not self.fs.exists(src_file):
                    raise ValidationError(
                        f"source file {src_file!r} does not exist",
                        vendor.name,
                        ref=spec.ref,
                        field="mapping.from",
                    )

    def _validate_compliance_mode(self, vendor: VendorSpec) -> None:
        if vendor.compliance and vendor.compliance not in self.settings.compliance_modes:
            allowed = ", ".join(repr(m) for m in self.settings.compliance_modes)
            raise ValidationError(
                f"compliance must be empty or one of {allowed}, got {vendor.compliance!r}",
                vendor.name,
                field="compliance",
            )

    # --- Remote vendors ---

    def _validate_remote_vendor(self, vendor: VendorSpec) -> None:
        if not vendor.url:
            raise ValidationError("vendor has no URL", vendor.name, field="url")
        if not vendor.url.startswith(ALLOWED_URL_PREFIXES):
            raise ValidationError(
                f"unsupported URL scheme in {vendor.url!r}", vendor.name, field="url"
            )
        self._validate_compliance_mode(vendor)

        if not vendor.specs:
            raise ValidationError("no specs configured", vendor.name)
        for spec in vendor.specs:
            if not spec.ref:
                raise ValidationError("spec has no ref", vendor.name, field="ref")
            _require_mappings(vendor, spec)


def validate_vendor_name(name: str) -> None:
    """Vendor names end up in file names, so keep them path-safe."""
    if not name:
        raise ValidationError("vendor name must not be empty", field="name")
    if "\x00" in name:
        raise ValidationError("null bytes are not allowed in vendor names", name, field="name")
    if "/" in name or "\\" in name:
        raise ValidationError("path separators are not allowed in vendor names", name, field="name")
    if ".." in name:
        raise ValidationError(
            "path traversal sequences are not allowed in vendor names", name, field="name"
        )


def _require_mappings(vendor: VendorSpec, spec: BranchSpec) -> None:
    if not spec.mapping:
        raise ValidationError("no path mappings", vendor.name, ref=spec.ref, field="mapping")
    for mapping in spec.mapping:
        if not mapping.from_path:
            raise ValidationError(
                "mapping with empty 'from' path", vendor.name, ref=spec.ref, field="mapping.from"
            )


def _build_path_ownership(config: VendorConfig) -> dict[str, list[tuple[str, PathMapping]]]:
    owners: dict[str, list[tuple[str, PathMapping]]] = {}
    for vendor in config.vendors:
        for spec in vendor.specs:
            for mapping in spec.mapping:
                dest = mapping.to_path
                if not dest or dest == ".":
                    dest = compute_auto_path(
                        strip_position(mapping.from_path), spec.default_target, vendor.name
                    )
                dest = normalize_path(strip_position(dest))
                owners.setdefault(dest, []).append((vendor.name, mapping))
    return owners


def compute_auto_path(source_path: str, default_target: str, fallback_name: str) -> str:
    """Destination for a mapping with no explicit ``to``: the source basename."""
    name = posixpath.basename(normalize_path(source_path))
    if name in ("", ".", "/"):
        return fallback_name or "."
    if default_target:
        return posixpath.join(default_target, name)
    return name


def _is_nested(path1: str, path2: str) -> bool:
    return path2.startswith(path1.rstrip("/") + "/") or path1.startswith(path2.rstrip("/") + "/")
