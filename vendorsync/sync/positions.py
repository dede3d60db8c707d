"""Position-delta adjustment after a propagation changes a file's line count.

When a propagation rewrites a file and its line count moves by ``delta``, the
explicit line ranges that other mappings of the same vendor hold on that file
are shifted by ``delta`` so they keep covering the same region. The range of
the mapping that did the write is instead fitted to the lines it placed.

Left untouched:
- ``-EOF`` ranges, which always resolve to the current last line
- single-line and column addresses
- mappings of other vendors, even when they address the same file
"""

from __future__ import annotations

from dataclasses import replace

from vendorsync.errors import AddressParseError, PositionDeltaError
from vendorsync.models.vendor import PathMapping, VendorConfig
from vendorsync.position.address import format_path_position, parse_path_position
from vendorsync.store.filesystem import normalize_path


def adjust_position_addresses(
    config: VendorConfig,
    vendor_name: str,
    path: str,
    old_line_count: int,
    new_line_count: int,
    skip: PathMapping | None = None,
) -> bool:
    """Shift ``end_line`` of matching line ranges in ``config`` in place.

    Args:
        config: Configuration to rewrite.
        vendor_name: Only mappings of this vendor are considered.
        path: The file whose line count changed.
        old_line_count: Line count before the rewrite.
        new_line_count: Line count after the rewrite.
        skip: The mapping that performed the rewrite; it is not adjusted.

    Returns:
        True if at least one address changed.

    Raises:
        PositionDeltaError: If a range would end before it starts.
    """
    delta = new_line_count - old_line_count
    if delta == 0:
        return False

    target_file = normalize_path(path)

    # Every shift is computed before any is applied, so a failure leaves
    # ``config`` untouched.
    updates: list[tuple[PathMapping, str, str]] = []
    for vendor in config.vendors:
        if vendor.name != vendor_name:
            continue
        for spec in vendor.specs:
            for mapping in spec.mapping:
                if mapping is skip:
                    continue
                for attr in ("from_path", "to_path"):
                    updated = _shift(getattr(mapping, attr), target_file, delta)
                    if updated is not None:
                        updates.append((mapping, attr, updated))

    for mapping, attr, updated in updates:
        setattr(mapping, attr, updated)
    return bool(updates)


def _shift(raw: str, target_file: str, delta: int) -> str | None:
    """Return the shifted address text, or None if ``raw`` is not affected."""
    try:
        file_path, address = parse_path_position(raw)
    except AddressParseError:
        return None

    if address is None or normalize_path(file_path) != target_file:
        return None
    if address.to_eof or address.is_single_line or address.has_columns:
        return None

    new_end = address.end_line + delta
    if new_end < address.start_line:
        raise PositionDeltaError(raw, address.start_line, new_end, delta)

    return format_path_position(file_path, replace(address, end_line=new_end))


def resize_written_range(mapping: PathMapping, attr: str, placed_lines: int) -> bool:
    """Make the line range in ``mapping.<attr>`` end on the last placed line.

    Only explicit line ranges are resized, under the same rules as
    ``adjust_position_addresses``.

    Returns:
        True if the address changed.
    """
    file_path, address = parse_path_position(getattr(mapping, attr))
    if address is None or address.to_eof or address.is_single_line or address.has_columns:
        return False

    new_end = address.start_line + max(placed_lines, 1) - 1
    if new_end == address.end_line:
        return False

    setattr(mapping, attr, format_path_position(file_path, replace(address, end_line=new_end)))
    return True
