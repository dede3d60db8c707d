"""Compliance data models: drift state and check/propagate results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum


class DriftState(Enum):
    """Relationship between a source and its destination since the last sync."""

    SYNCED = "synced"
    SOURCE_DRIFT = "source_drifted"
    DEST_DRIFT = "dest_drifted"
    BOTH_DRIFT = "both_drifted"


class Action(Enum):
    """What propagation does with a mapping in a given drift state."""

    NONE = "none"
    SOURCE_TO_DEST = "propagate source → dest"
    DEST_TO_SOURCE = "propagate dest → source"
    WARN = "warning: dest modified (source-canonical)"
    CONFLICT = "conflict: manual resolution required"


class SummaryResult(Enum):
    SYNCED = "SYNCED"
    DRIFTED = "DRIFTED"
    CONFLICT = "CONFLICT"


@dataclass
class ComplianceEntry:
    """Compliance state of a single source-to-destination mapping."""

    vendor_name: str
    from_path: str  # Raw mapping text, may carry a position suffix
    to_path: str
    source_file: str  # File part of from_path
    dest_file: str
    state: DriftState
    compliance: str  # source-canonical | bidirectional
    source_hash_locked: str = ""
    source_hash_current: str = ""
    dest_hash_locked: str = ""
    dest_hash_current: str = ""
    action: Action = Action.NONE
    dry_run: bool = False  # Action was only planned
    propagated: bool = False

    @property
    def identifier(self) -> str:
        return f"{self.vendor_name}: {self.from_path} -> {self.to_path}"

    @property
    def action_text(self) -> str:
        if self.dry_run and self.action != Action.NONE:
            return f"would {self.action.value}"
        return self.action.value


@dataclass
class ComplianceSummary:
    total: int = 0
    synced: int = 0
    source_drift: int = 0
    dest_drift: int = 0
    both_drift: int = 0
    result: SummaryResult = SummaryResult.SYNCED


@dataclass
class ComplianceResult:
    """Full output of a compliance check or propagation."""

    schema_version: str = "1.0"
    timestamp: str = ""
    entries: list[ComplianceEntry] = field(default_factory=list)
    summary: ComplianceSummary = field(default_factory=ComplianceSummary)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        for entry, raw in zip(self.entries, data["entries"]):
            raw["state"] = entry.state.value
            raw["action"] = entry.action_text
        data["summary"]["result"] = self.summary.result.value
        return data


def summarize(entries: list[ComplianceEntry]) -> ComplianceSummary:
    """Aggregate entries into counts and an overall result."""
    summary = ComplianceSummary(total=len(entries))
    for entry in entries:
        if entry.state == DriftState.SYNCED:
            summary.synced += 1
        elif entry.state == DriftState.SOURCE_DRIFT:
            summary.source_drift += 1
        elif entry.state == DriftState.DEST_DRIFT:
            summary.dest_drift += 1
        elif entry.state == DriftState.BOTH_DRIFT:
            summary.both_drift += 1

    if summary.both_drift:
        summary.result = SummaryResult.CONFLICT
    elif summary.source_drift or summary.dest_drift:
        summary.result = SummaryResult.DRIFTED
    else:
        summary.result = SummaryResult.SYNCED
    return summary
