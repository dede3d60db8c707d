"""Configuration and lock data models.

``vendor.yml`` declares what to vendor (``VendorConfig``); ``vendor.lock``
records the last known good state of every synced vendor (``VendorLock``).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from vendorsync.settings import SOURCE_INTERNAL


# --- Configuration ---


@dataclass
class PathMapping:
    """A source-to-destination mapping; either side may carry a position suffix."""

    from_path: str
    to_path: str = ""

    @property
    def identifier(self) -> str:
        return f"{self.from_path} -> {self.to_path or '(auto)'}"


@dataclass
class BranchSpec:
    """Mappings for one git ref (``local`` for internal vendors)."""

    ref: str
    mapping: list[PathMapping] = field(default_factory=list)
    default_target: str = ""


@dataclass
class VendorSpec:
    """A single vendored dependency."""

    name: str
    url: str = ""
    license: str = ""
    source: str = ""  # "internal" for same-repo vendors, empty for remote ones
    compliance: str = ""  # source-canonical | bidirectional, empty means default
    groups: list[str] = field(default_factory=list)
    specs: list[BranchSpec] = field(default_factory=list)

    @property
    def is_internal(self) -> bool:
        return self.source == SOURCE_INTERNAL


@dataclass
class VendorConfig:
    """Root of ``vendor.yml``."""

    vendors: list[VendorSpec] = field(default_factory=list)

    def get(self, name: str) -> VendorSpec | None:
        for vendor in self.vendors:
            if vendor.name == name:
                return vendor
        return None

    def to_dict(self) -> dict:
        return {"vendors": [_vendor_to_dict(v) for v in self.vendors]}

    @classmethod
    def from_dict(cls, data: dict | None) -> VendorConfig:
        data = data or {}
        return cls(vendors=[_dict_to_vendor(v) for v in data.get("vendors") or []])


# --- Lock ---


@dataclass
class LockDetails:
    """Locked state for one vendor and ref."""

    name: str
    ref: str
    source: str = ""
    commit_hash: str = ""
    source_file_hashes: dict[str, str] = field(default_factory=dict)
    file_hashes: dict[str, str] = field(default_factory=dict)
    license_path: str = ""
    license_spdx: str = ""
    source_version_tag: str = ""
    updated: str = ""
    last_synced_at: str = ""

    @property
    def is_internal(self) -> bool:
        return self.source == SOURCE_INTERNAL


@dataclass
class VendorLock:
    """Root of ``vendor.lock``."""

    schema_version: str = "1.0"
    vendors: list[LockDetails] = field(default_factory=list)

    def get(self, name: str, ref: str = "") -> LockDetails | None:
        for entry in self.vendors:
            if entry.name == name and (not ref or entry.ref == ref):
                return entry
        return None

    def upsert(self, entry: LockDetails) -> None:
        """Replace the entry with the same name and ref, or append it."""
        for i, existing in enumerate(self.vendors):
            if existing.name == entry.name and existing.ref == entry.ref:
                self.vendors[i] = entry
                return
        self.vendors.append(entry)

    def to_dict(self) -> dict:
        return {
            "schema_version": self.schema_version,
            "vendors": [_lock_to_dict(e) for e in self.vendors],
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> VendorLock:
        data = data or {}
        return cls(
            schema_version=str(data.get("schema_version", "1.0")),
            vendors=[_dict_to_lock(e) for e in data.get("vendors") or []],
        )


# --- Serialization helpers ---


def _vendor_to_dict(vendor: VendorSpec) -> dict:
    data: dict = {"name": vendor.name}
    if vendor.url:
        data["url"] = vendor.url
    if vendor.license:
        data["license"] = vendor.license
    if vendor.source:
        data["source"] = vendor.source
    if vendor.compliance:
        data["compliance"] = vendor.compliance
    if vendor.groups:
        data["groups"] = list(vendor.groups)
    data["specs"] = []
    for spec in vendor.specs:
        spec_data: dict = {"ref": spec.ref}
        if spec.default_target:
            spec_data["default_target"] = spec.default_target
        spec_data["mapping"] = [
            {"from": m.from_path, "to": m.to_path} for m in spec.mapping
        ]
        data["specs"].append(spec_data)
    return data


def _dict_to_vendor(data: dict) -> VendorSpec:
    return VendorSpec(
        name=data.get("name", ""),
        url=data.get("url", "") or "",
        license=data.get("license", "") or "",
        source=data.get("source", "") or "",
        compliance=data.get("compliance", "") or "",
        groups=list(data.get("groups") or []),
        specs=[
            BranchSpec(
                ref=str(s.get("ref", "") or ""),
                default_target=s.get("default_target", "") or "",
                mapping=[
                    PathMapping(
                        from_path=m.get("from", "") or "",
                        to_path=m.get("to", "") or "",
                    )
                    for m in s.get("mapping") or []
                ],
            )
            for s in data.get("specs") or []
        ],
    )


_LOCK_FIELDS = (
    "source",
    "commit_hash",
    "license_path",
    "license_spdx",
    "source_version_tag",
    "updated",
    "last_synced_at",
)


def _lock_to_dict(entry: LockDetails) -> dict:
    data: dict = {"name": entry.name, "ref": entry.ref}
    for key in _LOCK_FIELDS:
        value = getattr(entry, key)
        if value:
            data[key] = value
    if entry.source_file_hashes:
        data["source_file_hashes"] = dict(sorted(entry.source_file_hashes.items()))
    if entry.file_hashes:
        data["file_hashes"] = dict(sorted(entry.file_hashes.items()))
    return data


def _dict_to_lock(data: dict) -> LockDetails:
    return LockDetails(
        name=data.get("name", ""),
        ref=str(data.get("ref", "") or ""),
        source_file_hashes=dict(data.get("source_file_hashes") or {}),
        file_hashes=dict(data.get("file_hashes") or {}),
        **{key: str(data.get(key, "") or "") for key in _LOCK_FIELDS},
    )
