"""Extraction and placement of position-addressed content.

Both directions work on raw bytes:

- ``\\r\\n`` is normalized to ``\\n`` before splitting or hashing, so the same
  text checked out on different platforms yields the same fingerprint. A lone
  ``\\r`` is left as is.
- Content is split on ``\\n``. A file ending in ``\\n`` therefore has one extra,
  empty last line: ``b"a\\nb\\n"`` has 3 lines and ``L2-EOF`` extracts
  ``b"b\\n"``. An empty file has exactly one empty line.
- Columns are byte offsets. A multi-byte character occupies several columns
  and a boundary may split it.
- ``L1-EOF`` always reproduces the normalized file, so its fingerprint equals
  the fingerprint of the whole (normalized) file.
"""

from __future__ import annotations

import hashlib

from vendorsync.errors import AddressRangeError, BinaryContentError, PlacementError
from vendorsync.position.address import PositionAddress
from vendorsync.settings import DEFAULT_SETTINGS
from vendorsync.store.filesystem import FileSystem, OSFileSystem, parent_dir

BINARY_SCAN_WINDOW = DEFAULT_SETTINGS.binary_scan_window


def fingerprint(data: bytes) -> str:
    """Content fingerprint, independent of where the bytes came from."""
    return "sha256:" + hashlib.sha256(data).hexdigest()


def is_binary_content(data: bytes, window: int = BINARY_SCAN_WINDOW) -> bool:
    """True if a NUL byte occurs within the first ``window`` bytes."""
    return b"\x00" in data[:window]


def normalize_crlf(data: bytes) -> bytes:
    return data.replace(b"\r\n", b"\n")


def count_lines(data: bytes) -> int:
    """Number of ``\\n``-separated lines; 0 for empty data."""
    if not data:
        return 0
    return data.count(b"\n") + 1


# --- Extraction ---


def extract_from_content(
    data: bytes,
    address: PositionAddress | None,
    path: str = "<content>",
    window: int = BINARY_SCAN_WINDOW,
) -> bytes:
    """Return the bytes ``address`` selects from ``data``.

    Raises:
        BinaryContentError: If ``data`` looks binary.
        AddressRangeError: If a line or column does not exist.
    """
    if is_binary_content(data, window):
        raise BinaryContentError(path, "extraction")

    data = normalize_crlf(data)
    if address is None:
        return data

    lines = data.split(b"\n")
    end_line = _resolve_range(lines, address, path, target=False)

    if address.has_columns:
        return _extract_columns(lines, address, end_line, path)

    return b"\n".join(lines[address.start_line - 1 : end_line])


def extract_position(
    path: str,
    address: PositionAddress | None,
    fs: FileSystem | None = None,
    window: int = BINARY_SCAN_WINDOW,
) -> tuple[bytes, str]:
    """Read ``path`` and return the addressed bytes with their fingerprint.

    A missing file raises ``FileNotFoundError`` unchanged.
    """
    fs = fs or OSFileSystem()
    content = extract_from_content(fs.read_bytes(path), address, path, window)
    return content, fingerprint(content)


def _resolve_range(
    lines: list[bytes], address: PositionAddress, path: str, target: bool
) -> int:
    """Validate the line range and return the effective (1-indexed) end line."""
    total = len(lines)

    if address.start_line < 1 or address.start_line > total:
        raise AddressRangeError(path, address.start_line, total, target=target)

    if address.to_eof:
        end_line = total
    elif address.end_line > 0:
        end_line = address.end_line
    else:
        end_line = address.start_line

    if end_line > total:
        raise AddressRangeError(path, end_line, total, target=target)
    if end_line < address.start_line:
        raise AddressRangeError(path, end_line, address.start_line, target=target)

    return end_line


def _column_bounds(
    lines: list[bytes], address: PositionAddress, end_line: int, path: str
) -> tuple[int, int]:
    """Validate columns and return ``(start_index, end_index)``.

    ``start_index`` indexes the first line and ``end_index`` the last one, both
    as half-open 0-indexed slice bounds.

    In single-line mode both columns must lie within the line. In multi-line
    mode ``start_col`` may sit one past the end of the first line, which
    selects nothing from it and starts at the next line.
    """
    first = lines[address.start_line - 1]
    last = lines[end_line - 1]

    if address.start_line == end_line:
        if address.start_col > len(first):
            raise AddressRangeError(
                path, address.start_col, len(first), kind="column", line=address.start_line
            )
        if address.end_col > len(first):
            raise AddressRangeError(
                path, address.end_col, len(first), kind="column", line=address.start_line
            )
        return address.start_col - 1, address.end_col

    if address.start_col > len(first) + 1:
        raise AddressRangeError(
            path, address.start_col, len(first), kind="column", line=address.start_line
        )
    if address.end_col > len(last):
        raise AddressRangeError(path, address.end_col, len(last), kind="column", line=end_line)

    return min(address.start_col - 1, len(first)), address.end_col


def _extract_columns(
    lines: list[bytes], address: PositionAddress, end_line: int, path: str
) -> bytes:
    start_idx, end_idx = _column_bounds(lines, address, end_line, path)

    if address.start_line == end_line:
        return lines[address.start_line - 1][start_idx:end_idx]

    pieces = [lines[address.start_line - 1][start_idx:]]
    pieces.extend(lines[address.start_line : end_line - 1])
    pieces.append(lines[end_line - 1][:end_idx])
    return b"\n".join(pieces)


# --- Placement ---


def place_in_content(
    existing: bytes,
    replacement: bytes,
    address: PositionAddress,
    path: str = "<content>",
    window: int = BINARY_SCAN_WINDOW,
) -> bytes:
    """Return ``existing`` with the addressed region replaced by ``replacement``.

    Bytes outside the region are kept, including the trailing empty line of
    content that ends in a newline.
    """
    if is_binary_content(existing, window):
        raise BinaryContentError(path, "placement")

    lines = normalize_crlf(existing).split(b"\n")
    end_line = _resolve_range(lines, address, path, target=True)

    if address.has_columns:
        start_idx, end_idx = _column_bounds(lines, address, end_line, path)
        prefix = lines[address.start_line - 1][:start_idx]
        suffix = lines[end_line - 1][end_idx:]
        result = lines[: address.start_line - 1]
        result.append(prefix + replacement + suffix)
        result.extend(lines[end_line:])
        return b"\n".join(result)

    result = lines[: address.start_line - 1]
    result.extend(replacement.split(b"\n"))
    result.extend(lines[end_line:])
    return b"\n".join(result)


def place_content(
    path: str,
    content: bytes | str,
    address: PositionAddress | None,
    fs: FileSystem | None = None,
    window: int = BINARY_SCAN_WINDOW,
) -> None:
    """Write ``content`` into ``path`` at ``address``.

    Without an address the file is overwritten verbatim (and created, with its
    parent directories, if needed). With an address the target must already
    exist. Each call reads the file as it is now; an address in a later call
    refers to the content left by the earlier one.

    Raises:
        PlacementError: If an addressed target does not exist.
    """
    fs = fs or OSFileSystem()
    if isinstance(content, str):
        content = content.encode("utf-8")

    if address is None:
        fs.mkdir_all(parent_dir(path))
        fs.write_bytes(path, content)
        return

    try:
        existing = fs.read_bytes(path)
    except FileNotFoundError as exc:
        raise PlacementError(path, f"read target file {path}: {exc}") from exc

    result = place_in_content(existing, content, address, path, window)
    if result == normalize_crlf(existing):
        return
    fs.write_bytes(path, result)
