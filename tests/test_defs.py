import json
import struct

import pytest

from vcmiextract.defs import D32F_MAGIC, DefFrameHeader, extract_def, load_def_frame
from vcmiextract.image import Image, ImageFormat, encode_png
from vcmiextract.memfile import FormatError, MemoryFile

PALETTE = bytes(range(256)) * 3


def frame0(fw, fh, sw, sh, ml, mt, pixels):
    return struct.pack("<8I", len(pixels), 0, fw, fh, sw, sh, ml, mt) + pixels


def build_h3(groups):
    table_size = sum(16 + 17 * len(frames) for _, frames in groups)
    position = 16 + 768 + table_size
    head = struct.pack("<4I", 0x42, 8, 8, len(groups)) + PALETTE
    table = b""
    body = b""
    for index, frames in groups:
        offsets = []
        for _, data in frames:
            offsets.append(position + len(body))
            body += data
        table += struct.pack("<4I", index, len(frames), 0, 0)
        table += b"".join(name.encode().ljust(13, b"\0") for name, _ in frames)
        table += struct.pack(f"<{len(frames)}I", *offsets)
    return head + table + body


def d32_frame(fw, fh, sw, sh, ml, mt, rows):
    return struct.pack("<10I", 32, sw * sh * 4, fw, fh, sw, sh, ml, mt, 8, 0) + b"".join(rows)


def build_d32f(frames, header_size=None):
    count = len(frames)
    position = 32 + 16 + 17 * count
    offsets = []
    body = b""
    for _, data in frames:
        offsets.append(position + len(body))
        body += data
    size_field = 17 * count + 16 if header_size is None else header_size
    return (
        struct.pack("<8I", D32F_MAGIC, 1, 24, 4, 4, 1, 8, 1)
        + struct.pack("<4I", size_field, 0, count, 0)
        + b"".join(name.encode().ljust(13, b"\0") for name, _ in frames)
        + struct.pack(f"<{count}I", *offsets)
        + body
    )


def indexed(width, height, pixels):
    image = Image(height, width, ImageFormat.P8)
    image.pixels[:] = pixels
    image.palette[:] = PALETTE
    return image


def test_format0_places_rows_at_margin():
    header = DefFrameHeader(4, 0, 4, 3, 2, 2, 1, 1)
    image = load_def_frame(MemoryFile(bytes([1, 2, 3, 4])), header, PALETTE)
    assert image.pixels == bytearray([0, 0, 0, 0, 0, 1, 2, 0, 0, 3, 4, 0])
    assert image.palette == bytearray(PALETTE)


def test_format1_offsets_are_relative_to_frame_start():
    data = struct.pack("<I", 4) + bytes([0xFF, 1, 9, 8, 5, 1])
    file = MemoryFile(b"\xaa" * 3 + data)
    file.seek(3)
    header = DefFrameHeader(0, 1, 4, 1, 4, 1, 0, 0)
    image = load_def_frame(file, header, PALETTE)
    assert image.pixels == bytearray([9, 8, 5, 5])


def test_format2_packed_segments():
    data = struct.pack("<H", 2) + bytes([0xE1, 4, 6, 0x61])
    header = DefFrameHeader(0, 2, 4, 1, 4, 1, 0, 0)
    image = load_def_frame(MemoryFile(data), header, PALETTE)
    assert image.pixels == bytearray([4, 6, 3, 3])


def test_format3_reads_line_offsets_per_row():
    data = struct.pack("<2H", 4, 5) + bytes([0x5F, 0x3F])
    header = DefFrameHeader(0, 3, 32, 2, 32, 2, 0, 0)
    image = load_def_frame(MemoryFile(data), header, PALETTE)
    assert image.pixels == bytearray([2] * 32 + [1] * 32)


def test_unknown_frame_format_is_rejected():
    header = DefFrameHeader(0, 4, 2, 2, 2, 2, 0, 0)
    with pytest.raises(FormatError):
        load_def_frame(MemoryFile(bytes(8)), header, PALETTE)


def test_run_past_end_of_image_is_rejected():
    data = struct.pack("<H", 2) + bytes([0x63])
    header = DefFrameHeader(0, 2, 2, 1, 2, 1, 0, 0)
    with pytest.raises(FormatError):
        load_def_frame(MemoryFile(data), header, PALETTE)


def test_short_palette_is_rejected():
    header = DefFrameHeader(1, 0, 1, 1, 1, 1, 0, 0)
    with pytest.raises(ValueError):
        load_def_frame(MemoryFile(b"\x01"), header, PALETTE[:10])


def test_extract_h3_single_group(tmp_path):
    data = build_h3(
        [
            (
                0,
                [
                    ("frm0.pcx", frame0(2, 2, 2, 2, 0, 0, bytes([1, 2, 3, 4]))),
                    ("frm1.pcx", frame0(2, 2, 1, 1, 1, 1, bytes([7]))),
                ],
            )
        ]
    )
    listing_path = extract_def(data, tmp_path)
    assert listing_path == tmp_path / "animation.json"
    listing = json.loads(listing_path.read_text())
    assert listing == {
        "images": [
            {"frame": 0, "file": "frm0.png"},
            {"frame": 1, "file": "frm1.png"},
        ]
    }
    assert (tmp_path / "frm0.png").read_bytes() == encode_png(indexed(2, 2, bytes([1, 2, 3, 4])))
    assert (tmp_path / "frm1.png").read_bytes() == encode_png(indexed(2, 2, bytes([0, 0, 0, 7])))


def test_extract_h3_groups_are_sorted_and_labelled(tmp_path):
    frame = frame0(1, 1, 1, 1, 0, 0, b"\x05")
    data = build_h3([(5, [("b.pcx", frame)]), (2, [("a.pcx", frame)])])
    listing = json.loads(extract_def(data, tmp_path).read_text())
    assert listing["images"] == [
        {"group": 2, "frame": 0, "file": "a.png"},
        {"group": 5, "frame": 0, "file": "b.png"},
    ]


def test_extract_h3_duplicate_group_is_rejected(tmp_path):
    frame = frame0(1, 1, 1, 1, 0, 0, b"\x05")
    data = build_h3([(1, [("a.pcx", frame)]), (1, [("b.pcx", frame)])])
    with pytest.raises(FormatError):
        extract_def(data, tmp_path)


def test_extract_h3_old_header_special_case(tmp_path):
    frame = struct.pack("<8I", 0, 1, 2, 1, 16, 5, 0, 0) + bytes([0xFF, 1, 7, 6])
    extract_def(build_h3([(0, [("old.pcx", frame)])]), tmp_path)
    assert (tmp_path / "old.png").read_bytes() == encode_png(indexed(2, 1, bytes([7, 6])))


def test_extract_d32f_bottom_up_rows(tmp_path):
    rows = [bytes([1, 2, 3, 4]), bytes([5, 6, 7, 8])]
    data = build_d32f([("a.d32", d32_frame(2, 2, 1, 2, 1, 0, rows))])
    listing_path = extract_def(MemoryFile(data), tmp_path)

    expected = Image(2, 2, ImageFormat.RGBA32)
    expected.set_pixel(1, 1, rows[0])
    expected.set_pixel(1, 0, rows[1])
    assert (tmp_path / "a.png").read_bytes() == encode_png(expected)
    assert listing_path.read_text() == (
        '{\n\t"images" : [\n\t\t{ "frame" : 0, "file" : "a.png" }\n\t]\n}\n'
    )


def test_extract_d32f_trailing_data_is_rejected(tmp_path):
    rows = [bytes([1, 2, 3, 4])]
    data = build_d32f([("a.d32", d32_frame(1, 1, 1, 1, 0, 0, rows))]) + b"\0"
    with pytest.raises(FormatError):
        extract_def(data, tmp_path)


def test_extract_d32f_bad_group_header_size(tmp_path):
    rows = [bytes([1, 2, 3, 4])]
    data = build_d32f([("a.d32", d32_frame(1, 1, 1, 1, 0, 0, rows))], header_size=16)
    with pytest.raises(FormatError):
        extract_def(data, tmp_path)