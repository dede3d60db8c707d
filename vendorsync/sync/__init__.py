"""Sync layer for internal vendors.

This package provides:
- Internal sync: copy mappings and record their fingerprints in the lock
- Drift classification: compare locked and current fingerprints
- Compliance: check mappings and propagate drift by compliance mode
- Position adjustment: keep line ranges valid when a file grows or shrinks
- Validation: configuration rules, cycle detection and path conflicts
"""
