# packages/l5cfg/src/l5cfg/bitstream/stream.py
from __future__ import annotations
import io
import struct
from typing import List, Optional, Sequence, Tuple

from ..config import CodecConfig
from ..errors import (
    EntriesBufferTooSmall,
    InvalidFooter,
    InvalidHeaderField,
    KeyTableCorrupt,
    TooSmall,
)
from ..model import Entry
from .header import (
    FOOTER_TAG,
    HEADER_SIZE,
    CfgHeader,
    encoding_at,
    encoding_byte,
    find_footer,
    pad_to,
    round_up,
)
from .records_io import pack_entries, rename_duplicates, unpack_records
from .strings import KeyTable, StringPool
from .tree import build_tree

__all__ = ["validate_header", "read_sections", "read_stream", "write_stream"]

MIN_RECORD_SIZE = 5  # crc32 + variable count


def validate_header(h: CfgHeader, buf_len: int) -> None:
    """Bound checks on the fixed header, in file order. Raises InvalidHeaderField."""
    if h.entries_count < 0:
        raise InvalidHeaderField("EntriesCount", h.entries_count, "negative")
    if h.string_table_count < 0:
        raise InvalidHeaderField("StringTableCount", h.string_table_count, "negative")
    if h.string_table_offset < HEADER_SIZE:
        raise InvalidHeaderField("StringTableOffset", h.string_table_offset, "must be >= 16")
    if h.string_table_length < 0:
        raise InvalidHeaderField("StringTableLength", h.string_table_length, "negative")
    if h.string_table_offset > buf_len:
        raise InvalidHeaderField("StringTableOffset", h.string_table_offset,
                                 f"beyond file length {buf_len}")
    if h.string_table_offset + h.string_table_length > buf_len:
        raise InvalidHeaderField("StringTableLength", h.string_table_length,
                                 f"string table extends beyond file length {buf_len}")


def read_sections(buf: bytes, cfg: Optional[CodecConfig] = None) -> Tuple[str, CfgHeader, StringPool, KeyTable]:
    """Validate the container and decode its tables, before any entry decoding."""
    cfg = cfg or CodecConfig()
    if len(buf) < HEADER_SIZE:
        raise TooSmall(f"cfg.bin: buffer too small ({len(buf)} bytes, need >= {HEADER_SIZE})")
    if find_footer(buf, cfg.footer_window) < 0:
        raise InvalidFooter("cfg.bin: footer magic 01 74 32 62 not found")
    encoding = encoding_at(buf)

    h = CfgHeader.unpack(buf)
    validate_header(h, len(buf))
    entries_len = h.string_table_offset - HEADER_SIZE
    if entries_len < h.entries_count * MIN_RECORD_SIZE:
        raise EntriesBufferTooSmall(
            f"cfg.bin: entries buffer too small ({entries_len}) for {h.entries_count} entries")

    st = buf[h.string_table_offset:h.string_table_offset + h.string_table_length]
    pool = StringPool.unpack(st, h.string_table_count, encoding)

    kt_off = round_up(h.string_table_offset + h.string_table_length, cfg.alignment)
    if kt_off + 4 > len(buf):
        raise KeyTableCorrupt(f"cfg.bin: key table offset {kt_off} beyond file length {len(buf)}")
    (kt_size,) = struct.unpack_from("<i", buf, kt_off)
    if kt_size < 0 or kt_off + 4 + kt_size > len(buf):
        raise KeyTableCorrupt(f"cfg.bin: invalid key table size {kt_size}")
    keys = KeyTable.unpack(buf[kt_off:kt_off + kt_size], encoding)
    return encoding, h, pool, keys


def read_stream(buf: bytes, cfg: Optional[CodecConfig] = None) -> Tuple[str, StringPool, List[Entry]]:
    """
    Décode un cfg.bin complet : (encodage, string pool, forêt d'entrées).
    Toutes les validations du conteneur ont lieu avant le décodage des entrées.
    """
    encoding, h, pool, keys = read_sections(buf, cfg)
    entries = buf[HEADER_SIZE:h.string_table_offset]
    records = rename_duplicates(unpack_records(entries, h.entries_count, keys, pool))
    return encoding, pool, build_tree(records)


def write_stream(entries: Sequence[Entry], encoding: str = "utf-8",
                 cfg: Optional[CodecConfig] = None) -> bytes:
    """Forêt -> octets (header | entries | strings | key table | footer)."""
    cfg = cfg or CodecConfig()
    a = cfg.alignment

    pool = StringPool(encoding)
    keys: dict = {}
    for e in entries:
        for s in e.distinct_strings():
            pool.add(s)
        for k in e.unique_keys():
            keys.setdefault(k, None)
    key_table = KeyTable.from_keys(keys, encoding, cfg.preserve_unknown_hashes)

    header = CfgHeader(entries_count=sum(e.count() for e in entries),
                       string_table_count=len(pool))
    buf = io.BytesIO()
    buf.write(b"\x00" * HEADER_SIZE)
    buf.write(pack_entries(entries, pool, key_table, cfg.preserve_unknown_hashes))
    buf.write(pad_to(buf.tell(), a))

    header.string_table_offset = buf.tell()
    if len(pool):
        buf.write(pool.pack())
        header.string_table_length = buf.tell() - header.string_table_offset
        buf.write(pad_to(buf.tell(), a))

    buf.write(key_table.pack(a))
    buf.write(FOOTER_TAG)
    buf.write(bytes([0x01, encoding_byte(encoding), 0x00, 0x01]))
    buf.write(b"\x00")
    buf.write(pad_to(buf.tell(), a))

    out = bytearray(buf.getvalue())
    out[:HEADER_SIZE] = header.pack()
    return bytes(out)
