"""Byte-exact sub-file addressing.

- Address parsing: ``path:L5-L20`` style suffixes into ``PositionAddress``
- Extraction: the addressed bytes plus a ``sha256:`` fingerprint
- Placement: splicing content into the addressed region of a file
"""

from vendorsync.position.address import (
    PositionAddress,
    format_path_position,
    parse_path_position,
    strip_position,
)
from vendorsync.position.extract import (
    count_lines,
    extract_from_content,
    extract_position,
    fingerprint,
    is_binary_content,
    normalize_crlf,
    place_content,
    place_in_content,
)

__all__ = [
    "PositionAddress",
    "count_lines",
    "extract_from_content",
    "extract_position",
    "fingerprint",
    "format_path_position",
    "is_binary_content",
    "normalize_crlf",
    "parse_path_position",
    "place_content",
    "place_in_content",
    "strip_position",
]
