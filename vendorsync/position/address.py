"""Position addresses: the ``path:L<n>...`` suffix mini-language.

Supported forms::

    src/file.go                 whole file
    src/file.go:L5              single line
    src/file.go:L5-L20          line range (L5:L20 is accepted too)
    src/file.go:L10-EOF         line 10 through the last line
    src/file.go:L5C10:L10C30    byte-column range

Columns are 1-indexed, inclusive byte offsets. Only the shape of an address is
checked here; whether the lines and columns exist is decided against real
content at extraction or placement time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from vendorsync.errors import AddressParseError

_COL_RANGE = re.compile(r"^L(\d+)C(\d+):L(\d+)C(\d+)$")
_LINE_RANGE = re.compile(r"^L(\d+)[-:]L(\d+)$")
_LINE_EOF = re.compile(r"^L(\d+)-EOF$")
_SINGLE_LINE = re.compile(r"^L(\d+)$")
_ADDRESS_START = re.compile(r":L\d")


@dataclass(frozen=True)
class PositionAddress:
    """A line/column region within a file."""

    start_line: int
    end_line: int = 0  # 0 means same as start_line
    start_col: int = 0  # 0 means whole lines
    end_col: int = 0
    to_eof: bool = False

    @property
    def is_single_line(self) -> bool:
        return not self.to_eof and (self.end_line == 0 or self.end_line == self.start_line)

    @property
    def has_columns(self) -> bool:
        return self.start_col > 0

    def format(self) -> str:
        """Render the address suffix (without the leading colon)."""
        if self.has_columns:
            end_line = self.end_line or self.start_line
            return f"L{self.start_line}C{self.start_col}:L{end_line}C{self.end_col}"
        if self.to_eof:
            return f"L{self.start_line}-EOF"
        if self.is_single_line:
            return f"L{self.start_line}"
        return f"L{self.start_line}-L{self.end_line}"

    def __str__(self) -> str:
        return self.format()


def parse_path_position(path: str) -> tuple[str, PositionAddress | None]:
    """Split ``path`` into the file path and an optional position address.

    The address begins at the first ``:L<digit>``, so colons elsewhere in the
    path (Windows drive letters) are left alone while the column form's own
    inner colon is kept inside the suffix.

    Raises:
        AddressParseError: If the suffix is malformed.
    """
    match = _ADDRESS_START.search(path)
    if match is None:
        return path, None

    file_path = path[: match.start()]
    suffix = path[match.start() + 1 :]

    if not file_path:
        raise AddressParseError(path, "empty file path")

    return file_path, _parse_suffix(path, suffix)


def strip_position(path: str) -> str:
    """Return the file part of ``path``, or ``path`` itself if it does not parse."""
    try:
        file_path, _ = parse_path_position(path)
    except AddressParseError:
        return path
    return file_path


def format_path_position(file_path: str, address: PositionAddress | None) -> str:
    if address is None:
        return file_path
    return f"{file_path}:{address.format()}"


def _parse_suffix(path: str, suffix: str) -> PositionAddress:
    m = _COL_RANGE.match(suffix)
    if m:
        start_line, start_col, end_line, end_col = (int(g) for g in m.groups())
        _check(path, start_line >= 1, f"start line must be >= 1, got {start_line}")
        _check(path, start_col >= 1, f"start column must be >= 1, got {start_col}")
        _check(
            path,
            end_line >= start_line,
            f"end line ({end_line}) must be >= start line ({start_line})",
        )
        _check(path, end_col >= 1, f"end column must be >= 1, got {end_col}")
        if start_line == end_line:
            _check(
                path,
                end_col >= start_col,
                f"on same line, end column ({end_col}) must be >= start column ({start_col})",
            )
        return PositionAddress(
            start_line=start_line,
            end_line=end_line,
            start_col=start_col,
            end_col=end_col,
        )

    m = _LINE_RANGE.match(suffix)
    if m:
        start_line, end_line = int(m.group(1)), int(m.group(2))
        _check(path, start_line >= 1, f"start line must be >= 1, got {start_line}")
        _check(
            path,
            end_line >= start_line,
            f"end line ({end_line}) must be >= start line ({start_line})",
        )
        return PositionAddress(start_line=start_line, end_line=end_line)

    m = _LINE_EOF.match(suffix)
    if m:
        start_line = int(m.group(1))
        _check(path, start_line >= 1, f"start line must be >= 1, got {start_line}")
        return PositionAddress(start_line=start_line, to_eof=True)

    m = _SINGLE_LINE.match(suffix)
    if m:
        start_line = int(m.group(1))
        _check(path, start_line >= 1, f"line must be >= 1, got {start_line}")
        return PositionAddress(start_line=start_line)

    raise AddressParseError(
        path,
        f"unrecognized position format: {suffix} "
        "(expected L<n>, L<n>-L<m>, L<n>-EOF, or L<n>C<c>:L<m>C<d>)",
    )


def _check(path: str, condition: bool, reason: str) -> None:
    if not condition:
        raise AddressParseError(path, reason)
