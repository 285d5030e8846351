# packages/l5cfg/src/l5cfg/bitstream/records_io.py
# Sérialisation binaire des records de la section entries (crc32 | n | tags | valeurs).
from __future__ import annotations
import io
import struct
from typing import Dict, List, Sequence

import numpy as np

from ..errors import CfgBinError, EntriesBufferTooSmall
from ..model import Entry, Variable, VariableType
from .records import FlatRecord
from .strings import KeyTable, StringPool

__all__ = [
    "pack_type_tags", "unpack_type_tags",
    "unpack_records", "rename_duplicates",
    "pack_entry", "pack_entries",
]

_LE = "<"  # little-endian
_SHIFTS = np.array([0, 2, 4, 6], dtype=np.uint8)  # variable k of a tag byte -> bits 2k..2k+1
END_RECORD_TAIL = b"\x00\xFF\xFF\xFF"  # 0 variables + tag padding
INT32_MIN, INT32_MAX = -(1 << 31), (1 << 31) - 1


# ---------------------------------------------------------------------------
# Type tags (2 bits / variable, 4 variables / octet)
# ---------------------------------------------------------------------------
def pack_type_tags(types: Sequence[VariableType]) -> bytes:
    """Tag bytes + 0xFF padding so that `len(tags) + 1` is a multiple of 4.

    Unused bit pairs of a partial byte are filled with 1s.
    """
    n = len(types)
    nbytes = (n + 3) // 4
    codes = np.full(nbytes * 4, 0x3, dtype=np.uint8)
    codes[:n] = [int(t) for t in types]
    packed = np.bitwise_or.reduce(codes.reshape(-1, 4) << _SHIFTS, axis=1).astype(np.uint8)
    out = bytearray(packed.tobytes())
    while (len(out) + 1) % 4 != 0:
        out.append(0xFF)
    return bytes(out)


def unpack_type_tags(tag_bytes: bytes, n: int) -> List[VariableType]:
    arr = np.frombuffer(tag_bytes, dtype=np.uint8)
    codes = (arr[:, None] >> _SHIFTS) & 0x3
    return [VariableType(int(c)) for c in codes.reshape(-1)[:n]]


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------
def unpack_records(b: bytes, count: int, keys: KeyTable, pool: StringPool) -> List[FlatRecord]:
    """Parse `count` flat records from the entries region (no renaming)."""
    s = memoryview(b)
    off = 0
    out: List[FlatRecord] = []
    for i in range(count):
        if off + 5 > len(s):
            raise EntriesBufferTooSmall(f"entries: truncated record header (record {i}, offset {off})")
        crc, n = struct.unpack_from(_LE + "IB", s, off)
        off += 5

        nbytes = (n + 3) // 4
        if off + nbytes > len(s):
            raise EntriesBufferTooSmall(f"entries: truncated type tags (record {i}, offset {off})")
        types = unpack_type_tags(bytes(s[off:off + nbytes]), n)
        off += nbytes
        if (nbytes + 1) % 4 != 0:
            off += 4 - (off % 4)

        if off + 4 * n > len(s):
            raise EntriesBufferTooSmall(f"entries: truncated values (record {i}, offset {off})")
        variables: List[Variable] = []
        if n == 0:
            out.append(FlatRecord(keys.lookup(crc), variables, crc))
            continue
        raw = np.frombuffer(s, dtype="<i4", count=n, offset=off)
        flt = raw.view("<f4")
        off += 4 * n

        for j, t in enumerate(types):
            if t is VariableType.STRING:
                variables.append(Variable(t, pool.get(int(raw[j]))))
            elif t is VariableType.FLOAT:
                variables.append(Variable(t, float(flt[j])))
            else:
                variables.append(Variable(t, int(raw[j])))
        out.append(FlatRecord(keys.lookup(crc), variables, crc))
    return out


def rename_duplicates(records: List[FlatRecord]) -> List[FlatRecord]:
    """Suffix every record with its occurrence index: `FOO`, `FOO` -> `FOO_0`, `FOO_1`."""
    seen: Dict[str, int] = {}
    for r in records:
        i = seen.get(r.name, 0)
        seen[r.name] = i + 1
        r.name = f"{r.name}_{i}"
    return records


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------
def _int32(v, what: str) -> int:
    x = int(v or 0)
    if not (INT32_MIN <= x <= INT32_MAX):
        raise CfgBinError(f"{what} out of int32 range: {x}")
    return x


def _pack_value(v: Variable, pool: StringPool, where: str) -> bytes:
    if v.type is VariableType.STRING:
        text = None if v.value is None else str(v.value)
        return struct.pack(_LE + "i", pool.offset_of(text))
    if v.type is VariableType.FLOAT:
        return struct.pack(_LE + "f", float(v.value or 0.0))
    return struct.pack(_LE + "i", _int32(v.value, where))


def _pack_into(buf: io.BytesIO, e: Entry, pool: StringPool, keys: KeyTable, preserve_unknown: bool) -> None:
    n = len(e.variables)
    if n > 0xFF:
        raise CfgBinError(f"{e.name}: too many variables ({n}, max=255)")
    buf.write(struct.pack(_LE + "IB", keys.hash_of(e.base_name, preserve_unknown), n))
    buf.write(pack_type_tags([v.type for v in e.variables]))
    for v in e.variables:
        buf.write(_pack_value(v, pool, e.name))
    for child in e.children:
        _pack_into(buf, child, pool, keys, preserve_unknown)
    if e.has_end_record():
        buf.write(struct.pack(_LE + "I", keys.hash_of(e.end_name, False)))
        buf.write(END_RECORD_TAIL)


def pack_entry(e: Entry, pool: StringPool, keys: KeyTable, preserve_unknown: bool = True) -> bytes:
    """Encode one subtree (pre-order, synthetic end records after children)."""
    buf = io.BytesIO()
    _pack_into(buf, e, pool, keys, preserve_unknown)
    return buf.getvalue()


def pack_entries(entries: Sequence[Entry], pool: StringPool, keys: KeyTable,
                 preserve_unknown: bool = True) -> bytes:
    return b"".join(pack_entry(e, pool, keys, preserve_unknown) for e in entries)
