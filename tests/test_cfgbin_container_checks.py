from __future__ import annotations
import struct

import pytest

from l5cfg import (
    CfgBinError, DecodeError, Document, EntriesBufferTooSmall, InvalidFooter,
    InvalidHeaderField, KeyTableCorrupt, TooSmall,
)
from l5cfg.bitstream import find_footer
from l5cfg.bitstream.header import encoding_at

from cfgbin_synth import I, S, container, key_table_offset, record


def _valid() -> bytes:
    return container([record("ITEM_INFO", [(I, 5), (S, 0)])],
                     strings=["Sword"], keys=["ITEM_INFO"])


def _patch_header(buf: bytes, **fields) -> bytes:
    vals = list(struct.unpack_from("<4i", buf, 0))
    order = ["entries_count", "st_off", "st_len", "st_count"]
    for k, v in fields.items():
        vals[order.index(k)] = v
    return struct.pack("<4i", *vals) + buf[16:]


def test_errors_are_value_errors():
    assert issubclass(DecodeError, CfgBinError)
    assert issubclass(TooSmall, ValueError)


def test_too_small():
    with pytest.raises(TooSmall):
        Document.open(b"\x00" * 15)


def test_missing_footer():
    with pytest.raises(InvalidFooter):
        Document.open(b"\x00" * 64)


def test_footer_search_window():
    buf = _valid()
    assert Document.has_valid_footer(buf)
    assert find_footer(buf) >= len(buf) - 32
    # trop de padding : la magic sort de la fenêtre
    assert not Document.has_valid_footer(buf + b"\xFF" * 48)
    assert not Document.has_valid_footer(b"\x01\x74\x32\x62")


def test_encoding_byte():
    buf = _valid()
    assert encoding_at(buf) == "utf-8"
    sj = container([record("ITEM_INFO", [(S, 0)], encoding="cp932")],
                   strings=["剣"], keys=["ITEM_INFO"], encoding="cp932", enc_byte=0)
    assert encoding_at(sj) == "cp932"
    doc = Document.open(sj)
    assert doc.entries[0].variables[0].value == "剣"


@pytest.mark.parametrize("fields,bad", [
    ({"st_off": 8}, "StringTableOffset"),
    ({"st_off": 10_000}, "StringTableOffset"),
    ({"st_len": 10_000}, "StringTableLength"),
    ({"entries_count": -1}, "EntriesCount"),
])
def test_invalid_header_fields(fields, bad):
    with pytest.raises(InvalidHeaderField) as ei:
        Document.open(_patch_header(_valid(), **fields))
    assert ei.value.field == bad


def test_entries_region_too_small_for_count():
    with pytest.raises(EntriesBufferTooSmall):
        Document.open(_patch_header(_valid(), entries_count=10))


def test_truncated_record_raises():
    # 1 record vide (8 octets) + 8 octets de padding FF lus comme un record n=255
    buf = container([record("A_BEG")], count=3, keys=["A_BEG"])
    with pytest.raises(EntriesBufferTooSmall):
        Document.open(buf)


def test_key_table_size_out_of_range():
    buf = bytearray(_valid())
    kto = key_table_offset(buf)
    struct.pack_into("<i", buf, kto, 0x7FFFFFF0)
    with pytest.raises(KeyTableCorrupt):
        Document.open(bytes(buf))


def test_key_table_bad_count():
    buf = bytearray(_valid())
    kto = key_table_offset(buf)
    struct.pack_into("<i", buf, kto + 4, 1000)
    with pytest.raises(KeyTableCorrupt):
        Document.open(bytes(buf))
