"""Tests for position addresses, extraction and placement."""

import pytest

from vendorsync.errors import (
    AddressParseError,
    AddressRangeError,
    BinaryContentError,
    PlacementError,
)
from vendorsync.position import (
    PositionAddress,
    count_lines,
    extract_from_content,
    extract_position,
    fingerprint,
    format_path_position,
    is_binary_content,
    parse_path_position,
    place_content,
    place_in_content,
    strip_position,
)


def addr(suffix: str) -> PositionAddress:
    _, address = parse_path_position(f"f.txt:{suffix}")
    return address


# --- Parsing ---


def test_parse_plain_path():
    assert parse_path_position("src/file.go") == ("src/file.go", None)


def test_parse_single_line():
    path, address = parse_path_position("src/file.go:L5")
    assert path == "src/file.go"
    assert address == PositionAddress(start_line=5)
    assert address.is_single_line
    assert not address.has_columns


def test_parse_line_range_both_separators():
    _, dash = parse_path_position("a.go:L5-L20")
    _, colon = parse_path_position("a.go:L5:L20")
    assert dash == colon == PositionAddress(start_line=5, end_line=20)


def test_parse_to_eof():
    _, address = parse_path_position("a.go:L10-EOF")
    assert address.to_eof
    assert address.start_line == 10
    assert not address.is_single_line


def test_parse_column_range():
    _, address = parse_path_position("a.go:L5C10:L10C30")
    assert address == PositionAddress(start_line=5, end_line=10, start_col=10, end_col=30)
    assert address.has_columns


def test_parse_keeps_drive_letter_colon():
    path, address = parse_path_position("C:\\src\\file.go:L3")
    assert path == "C:\\src\\file.go"
    assert address.start_line == 3


def test_parse_colon_without_line_marker_is_part_of_path():
    assert parse_path_position("weird:name.txt") == ("weird:name.txt", None)


@pytest.mark.parametrize(
    "spec",
    [
        "a.go:L0",
        "a.go:L5-L3",
        "a.go:L0-EOF",
        "a.go:L2C5:L2C3",
        "a.go:L3C1:L2C1",
        "a.go:L1C0:L1C3",
        "a.go:L5-",
        "a.go:L5-L",
        ":L5",
    ],
)
def test_parse_rejects_malformed(spec):
    with pytest.raises(AddressParseError) as exc:
        parse_path_position(spec)
    assert exc.value.spec == spec


def test_parse_error_is_value_error():
    with pytest.raises(ValueError):
        parse_path_position("a.go:L9-L1")


def test_format_round_trip():
    for spec in ["a.go", "a.go:L5", "a.go:L5-L20", "a.go:L10-EOF", "a.go:L5C10:L10C30"]:
        path, address = parse_path_position(spec)
        assert format_path_position(path, address) == spec


def test_format_collapses_equal_range():
    assert addr("L4-L4").format() == "L4"


def test_strip_position():
    assert strip_position("lib/util.py:L1-L9") == "lib/util.py"
    assert strip_position("lib/util.py") == "lib/util.py"
    # Malformed suffixes are returned untouched
    assert strip_position("lib/util.py:L9-L1") == "lib/util.py:L9-L1"


# --- Extraction ---


def test_extract_line_range():
    data = b"line1\nline2\nline3\nline4\nline5\n"
    assert extract_from_content(data, addr("L2-L4")) == b"line2\nline3\nline4"


def test_extract_whole_file_returns_normalized_content():
    assert extract_from_content(b"a\r\nb\r\n", None) == b"a\nb\n"


def test_trailing_newline_adds_phantom_line():
    data = b"a\nb\n"
    assert extract_from_content(data, addr("L2-EOF")) == b"b\n"
    assert extract_from_content(data, addr("L3")) == b""

    with pytest.raises(AddressRangeError) as exc:
        extract_from_content(data, addr("L4"), "f.txt")
    assert exc.value.requested == 4
    assert exc.value.limit == 3
    assert str(exc.value) == "line 4 does not exist in f.txt (3 lines)"


def test_empty_file_has_one_empty_line():
    assert extract_from_content(b"", addr("L1")) == b""
    with pytest.raises(AddressRangeError):
        extract_from_content(b"", addr("L2"))


def test_end_line_out_of_range():
    with pytest.raises(AddressRangeError) as exc:
        extract_from_content(b"a\nb", addr("L1-L5"))
    assert exc.value.requested == 5
    assert exc.value.limit == 2


def test_eof_range_equals_whole_file_fingerprint():
    data = b"x\r\ny\nz\n"
    region = extract_from_content(data, addr("L1-EOF"))
    assert fingerprint(region) == fingerprint(extract_from_content(data, None))


def test_crlf_and_lf_have_same_fingerprint():
    crlf = extract_from_content(b"line1\r\nline2\r\n", addr("L1-L2"))
    lf = extract_from_content(b"line1\nline2\n", addr("L1-L2"))
    assert fingerprint(crlf) == fingerprint(lf)
    assert fingerprint(lf).startswith("sha256:")


def test_lone_carriage_return_is_kept():
    assert extract_from_content(b"a\rb\nc\n", addr("L1")) == b"a\rb"


def test_extract_single_line_columns():
    assert extract_from_content(b"Hello World!\n", addr("L1C7:L1C11")) == b"World"


def test_single_line_column_past_end_fails():
    with pytest.raises(AddressRangeError) as exc:
        extract_from_content(b"Hello World!\n", addr("L1C13:L1C13"), "f.txt")
    assert exc.value.kind == "column"
    assert exc.value.limit == 12
    assert exc.value.line == 1


def test_multi_line_columns():
    data = b"abcdef\nghijkl\nmnopqr\n"
    assert extract_from_content(data, addr("L1C3:L3C2")) == b"cdef\nghijkl\nmn"


def test_multi_line_start_column_may_sit_past_first_line():
    data = b"abc\ndef\nghi"
    # Column 4 on a 3-byte line selects nothing from it
    assert extract_from_content(data, addr("L1C4:L2C2")) == b"\nde"
    with pytest.raises(AddressRangeError):
        extract_from_content(data, addr("L1C5:L2C2"))


def test_multi_line_end_column_past_last_line_fails():
    with pytest.raises(AddressRangeError) as exc:
        extract_from_content(b"abc\nde\n", addr("L1C1:L2C3"))
    assert exc.value.line == 2


def test_columns_are_bytes():
    data = "héllo\n".encode("utf-8")
    # "é" is two bytes, so column 3 ends inside it
    assert extract_from_content(data, addr("L1C1:L1C3")) == "hé".encode("utf-8")


def test_binary_content_rejected():
    with pytest.raises(BinaryContentError) as exc:
        extract_from_content(b"abc\x00def", None, "blob.bin")
    assert exc.value.path == "blob.bin"
    assert exc.value.operation == "extraction"


def test_binary_scan_window():
    data = b"a" * 10 + b"\x00"
    assert is_binary_content(data)
    assert not is_binary_content(data, window=10)
    assert extract_from_content(data, None, window=10) == data


def test_extract_position_reads_through_filesystem(memfs):
    memfs.write_bytes("src/a.txt", b"one\ntwo\nthree\n")
    content, fp = extract_position("src/a.txt", addr("L2"), fs=memfs)
    assert content == b"two"
    assert fp == fingerprint(b"two")


def test_extract_position_missing_file(memfs):
    with pytest.raises(FileNotFoundError):
        extract_position("missing.txt", addr("L1"), fs=memfs)


def test_extract_position_on_disk(tmp_path):
    path = tmp_path / "a.txt"
    path.write_bytes(b"one\ntwo\n")
    content, _ = extract_position(str(path), addr("L1-L2"))
    assert content == b"one\ntwo"


def test_count_lines():
    assert count_lines(b"") == 0
    assert count_lines(b"a") == 1
    assert count_lines(b"a\nb\n") == 3


# --- Placement ---


def test_place_columns():
    result = place_in_content(b"Hello World!\n", b"Go", addr("L1C7:L1C11"))
    assert result == b"Hello Go!\n"


def test_place_multi_line_columns():
    result = place_in_content(b"abc\ndef\n", b"Z", addr("L1C2:L2C1"))
    assert result == b"aZef\n"


def test_place_lines_keeps_surroundings():
    result = place_in_content(b"a\nb\nc\n", b"X\nY", addr("L2"))
    assert result == b"a\nX\nY\nc\n"


def test_place_to_eof_replaces_tail():
    result = place_in_content(b"a\nb\nc\n", b"z\n", addr("L2-EOF"))
    assert result == b"a\nz\n"


def test_place_target_line_missing():
    with pytest.raises(AddressRangeError) as exc:
        place_in_content(b"a\nb\n", b"x", addr("L5"), "dst.txt")
    assert exc.value.target
    assert str(exc.value).startswith("target line 5 does not exist in dst.txt")


def test_place_binary_target_rejected():
    with pytest.raises(BinaryContentError) as exc:
        place_in_content(b"\x00\x01", b"x", addr("L1"))
    assert exc.value.operation == "placement"


def test_place_normalizes_crlf_target():
    assert place_in_content(b"a\r\nb\r\n", b"B", addr("L2")) == b"a\nB\n"


def test_place_content_creates_whole_file(memfs):
    place_content("out/new.txt", "hello\n", None, fs=memfs)
    assert memfs.read_bytes("out/new.txt") == b"hello\n"


def test_place_content_addressed_target_must_exist(memfs):
    with pytest.raises(PlacementError) as exc:
        place_content("missing.txt", b"x", addr("L1"), fs=memfs)
    assert exc.value.path == "missing.txt"


def test_place_content_skips_identical_write(memfs):
    memfs.write_bytes("a.txt", b"one\ntwo\nthree\n")
    memfs.writes.clear()

    place_content("a.txt", b"two", addr("L2"), fs=memfs)
    assert memfs.writes == []

    place_content("a.txt", b"TWO", addr("L2"), fs=memfs)
    assert memfs.writes == ["a.txt"]
    assert memfs.read_bytes("a.txt") == b"one\nTWO\nthree\n"


def test_extract_then_place_round_trip(memfs):
    original = b"alpha\nbeta\ngamma\ndelta\n"
    memfs.write_bytes("a.txt", original)
    for suffix in ["L2-L3", "L1C2:L3C4", "L3-EOF", "L4"]:
        content, _ = extract_position("a.txt", addr(suffix), fs=memfs)
        place_content("a.txt", content, addr(suffix), fs=memfs)
        assert memfs.read_bytes("a.txt") == original


def test_successive_placements_see_earlier_writes(memfs):
    memfs.write_bytes("a.txt", b"1\n2\n3\n")
    place_content("a.txt", b"x\ny\nz", addr("L1"), fs=memfs)
    place_content("a.txt", b"Z", addr("L3"), fs=memfs)
    assert memfs.read_bytes("a.txt") == b"x\ny\nZ\n2\n3\n"
