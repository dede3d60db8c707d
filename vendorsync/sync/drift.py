"""Drift classification: has the source, the destination, or both changed?

Drift is decided purely from fingerprints: the ones recorded in the lock at the
last successful sync and the ones observed now. No file is read here.
"""

from __future__ import annotations

from vendorsync.models.compliance import DriftState


def classify(
    locked_source: str,
    current_source: str,
    locked_dest: str,
    current_dest: str,
) -> DriftState:
    """Classify a source/destination pair into one of the four drift states."""
    return classify_changes(
        source_changed=current_source != locked_source,
        dest_changed=current_dest != locked_dest,
    )


def classify_changes(source_changed: bool, dest_changed: bool) -> DriftState:
    if source_changed and dest_changed:
        return DriftState.BOTH_DRIFT
    if source_changed:
        return DriftState.SOURCE_DRIFT
    if dest_changed:
        return DriftState.DEST_DRIFT
    return DriftState.SYNCED
