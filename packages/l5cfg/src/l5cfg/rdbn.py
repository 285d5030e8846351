# packages/l5cfg/src/l5cfg/rdbn.py
"""
Lecteur RDBN (conteneur Level-5 plus récent, livré à côté des cfg.bin).

Lecture seule. Le résultat a la forme `{"version", "lists": [...]}` que le pont
JSON sait réimporter (`from_json` accepte la clé `lists`).

Disposition (little-endian) :
- 0x00 header `<Ihihi` : magic "RDBN", header size, version, data offset (>>2), data size
- 0x24 offsets/compteurs `<10h` + string offset `<i` (offsets >>2, relatifs à data offset)
- tables root/type/field : enregistrements de 0x20 octets
- table de chaînes hachée : hashes u32 | offsets i32 | chaînes UTF-8 terminées par 0
"""
from __future__ import annotations
import logging
import struct
from dataclasses import dataclass
from typing import Any, Dict, List

import numpy as np

from .errors import InvalidHeaderField, TooSmall

__all__ = ["RDBN_MAGIC", "RdbnHeader", "RdbnFieldType", "is_rdbn", "read_rdbn"]

log = logging.getLogger(__name__)

_LE = "<"
RDBN_MAGIC = 0x4E424452  # "RDBN"
MIN_SIZE = 0x50
ENTRY_SIZE = 0x20
INVALID = "<invalid>"


class RdbnFieldType:
    ABILITY_DATA = 0
    ENHANCE_DATA = 1
    STATUS_RATE = 2
    BOOL = 3
    BYTE = 4
    SHORT = 5
    INT = 6
    ACT_TYPE = 9
    FLAG = 10
    FLOAT = 0xD
    HASH = 0xF
    RATES = 0x12
    POSITION = 0x13
    CONDITION = 0x14
    SHORT_TUPLE = 0x15


@dataclass
class RdbnHeader:
    magic: int
    header_size: int
    version: int
    data_offset: int
    data_size: int
    type_offset: int
    type_count: int
    field_offset: int
    field_count: int
    root_offset: int
    root_count: int
    string_hash_offset: int
    string_offsets_offset: int
    hash_count: int
    value_offset: int
    string_offset: int

    @classmethod
    def unpack(cls, b: bytes) -> "RdbnHeader":
        magic, hsize, version, doff, dsize = struct.unpack_from(_LE + "Ihihi", b, 0)
        tail = struct.unpack_from(_LE + "10hi", b, 0x24)
        return cls(magic, hsize, version, doff, dsize, *tail)

    @property
    def base(self) -> int:
        return self.data_offset << 2

    def section(self, offset: int) -> int:
        return (offset << 2) + self.base


@dataclass
class _Root:
    type_index: int
    value_offset: int
    value_size: int
    value_count: int
    name_hash: int


@dataclass
class _Type:
    name_hash: int
    field_index: int
    field_count: int


@dataclass
class _Field:
    name_hash: int
    type: int
    value_size: int
    value_offset: int


def is_rdbn(data: bytes) -> bool:
    return len(data) >= 4 and struct.unpack_from(_LE + "I", data, 0)[0] == RDBN_MAGIC


def _check_table(name: str, offset: int, count: int, size: int, buf_len: int) -> None:
    if count < 0:
        raise InvalidHeaderField(f"{name}Count", count, "negative")
    if offset < 0 or offset + count * size > buf_len:
        raise InvalidHeaderField(f"{name}Offset", offset, f"table extends beyond file length {buf_len}")


def _cstr(b: bytes, pos: int) -> str:
    end = b.find(b"\x00", pos)
    if end < 0:
        end = len(b)
    return b[pos:end].decode("utf-8", errors="replace")


def _f32(values) -> List[float]:
    return [float(str(v)) for v in values]


def _read_strings(b: bytes, h: RdbnHeader) -> Dict[int, str]:
    hashes_at = h.section(h.string_hash_offset)
    offsets_at = h.section(h.string_offsets_offset)
    _check_table("StringHash", hashes_at, h.hash_count, 4, len(b))
    _check_table("StringOffsets", offsets_at, h.hash_count, 4, len(b))
    strings_at = h.string_offset + h.base

    hashes = np.frombuffer(b, dtype="<u4", count=h.hash_count, offset=hashes_at)
    offsets = np.frombuffer(b, dtype="<i4", count=h.hash_count, offset=offsets_at)
    out: Dict[int, str] = {}
    for hv, off in zip(hashes, offsets):
        pos = strings_at + int(off)
        if 0 <= pos < len(b):
            out[int(hv)] = _cstr(b, pos)
    return out


def _read_value(b: bytes, off: int, f: _Field, strings_at: int) -> Any:
    if off < 0 or off + f.value_size > len(b):
        return INVALID
    t = f.type
    try:
        if t == RdbnFieldType.BOOL:
            return b[off] != 0
        if t == RdbnFieldType.BYTE:
            return b[off]
        if t in (RdbnFieldType.SHORT, RdbnFieldType.ACT_TYPE):
            return struct.unpack_from(_LE + "h", b, off)[0]
        if t in (RdbnFieldType.INT, RdbnFieldType.FLAG):
            return struct.unpack_from(_LE + "i", b, off)[0]
        if t == RdbnFieldType.FLOAT:
            return _f32(np.frombuffer(b, dtype="<f4", count=1, offset=off))[0]
        if t == RdbnFieldType.HASH:
            return "0x%08X" % struct.unpack_from(_LE + "I", b, off)[0]
        if t in (RdbnFieldType.RATES, RdbnFieldType.POSITION):
            return _f32(np.frombuffer(b, dtype="<f4", count=4, offset=off))
        if t == RdbnFieldType.CONDITION:
            (v,) = struct.unpack_from(_LE + "I", b, off)
            pos = strings_at + v
            return _cstr(b, pos) if 0 < pos < len(b) else v
        if t == RdbnFieldType.SHORT_TUPLE:
            return list(struct.unpack_from(_LE + "2h", b, off))
    except (struct.error, ValueError, IndexError):
        # value_size plus petit que la largeur du type
        return INVALID
    return b[off:off + max(f.value_size, 0)].hex().upper()


def read_rdbn(data: bytes) -> Dict[str, Any]:
    """RDBN buffer -> `{"version", "lists": [{"name", "typeName", "values"}]}`."""
    b = bytes(data)
    if len(b) < MIN_SIZE:
        raise TooSmall(f"rdbn: buffer too small ({len(b)} bytes, need >= {MIN_SIZE})")
    h = RdbnHeader.unpack(b)
    if h.magic != RDBN_MAGIC:
        raise InvalidHeaderField("Magic", h.magic, "expected RDBN")

    roots_at = h.section(h.root_offset)
    types_at = h.section(h.type_offset)
    fields_at = h.section(h.field_offset)
    _check_table("Root", roots_at, h.root_count, ENTRY_SIZE, len(b))
    _check_table("Type", types_at, h.type_count, ENTRY_SIZE, len(b))
    _check_table("Field", fields_at, h.field_count, ENTRY_SIZE, len(b))

    roots = [
        _Root(*struct.unpack_from(_LE + "hxxiiiI", b, roots_at + i * ENTRY_SIZE))
        for i in range(h.root_count)
    ]
    types = [
        _Type(*struct.unpack_from(_LE + "I4xhh", b, types_at + i * ENTRY_SIZE))
        for i in range(h.type_count)
    ]
    fields = [
        _Field(*struct.unpack_from(_LE + "Ih2xii", b, fields_at + i * ENTRY_SIZE))
        for i in range(h.field_count)
    ]
    strings = _read_strings(b, h)
    values_at = h.section(h.value_offset)
    strings_at = h.string_offset + h.base

    lists: List[Dict[str, Any]] = []
    for root in roots:
        if not (0 <= root.type_index < len(types)):
            raise InvalidHeaderField("TypeIndex", root.type_index, f"{len(types)} types")
        typ = types[root.type_index]
        if typ.field_index < 0 or typ.field_index + typ.field_count > len(fields):
            raise InvalidHeaderField("FieldIndex", typ.field_index, f"{len(fields)} fields")
        list_name = strings.get(root.name_hash, "Unknown_0x%08X" % root.name_hash)
        type_name = strings.get(typ.name_hash, "Type_0x%08X" % typ.name_hash)

        layout = [
            (strings.get(f.name_hash, "Field_0x%08X" % f.name_hash), f)
            for f in fields[typ.field_index:typ.field_index + typ.field_count]
        ]
        values = []
        base = values_at + root.value_offset
        for v in range(max(root.value_count, 0)):
            at = base + v * root.value_size
            values.append({name: _read_value(b, at + f.value_offset, f, strings_at) for name, f in layout})
        lists.append({"name": list_name, "typeName": type_name, "values": values})
        log.debug("rdbn: list %s (%s) %d value(s)", list_name, type_name, len(values))

    return {"version": h.version, "lists": lists}
