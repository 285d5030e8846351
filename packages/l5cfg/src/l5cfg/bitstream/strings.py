# packages/l5cfg/src/l5cfg/bitstream/strings.py
# String pool (offset -> texte) et key table (crc32 -> nom).
from __future__ import annotations
import io
import struct
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import KeyTableCorrupt
from ..naming import crc32_name, unknown_hash, unknown_name
from .header import KEY_HEADER_SIZE, KeyHeader, pad_to

__all__ = ["StringPool", "KeyTable"]

_LE = "<"


def _cstring_end(buf: bytes, start: int) -> int:
    end = buf.find(b"\x00", start)
    return len(buf) if end < 0 else end


class StringPool:
    """Table de chaînes adressée par offset d'octet.

    Sert dans les deux sens : `unpack` indexe une section existante,
    `add` ajoute une chaîne (dédupliquée) et retourne son offset.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self._by_offset: Dict[int, str] = {}
        self._by_value: Dict[str, int] = {}
        self._size = 0

    @classmethod
    def from_strings(cls, strings: Iterable[str], encoding: str = "utf-8") -> "StringPool":
        pool = cls(encoding)
        for s in strings:
            pool.add(s)
        return pool

    @classmethod
    def unpack(cls, buf: bytes, count: int, encoding: str = "utf-8") -> "StringPool":
        """Read `count` null-terminated strings laid back-to-back in `buf`."""
        pool = cls(encoding)
        pos = 0
        for _ in range(count):
            if pos in pool._by_offset:
                # past the end: nothing more to read
                continue
            end = _cstring_end(buf, pos)
            text = buf[pos:end].decode(encoding, errors="replace")
            pool._by_offset[pos] = text
            pool._by_value.setdefault(text, pos)
            pos = min(end + 1, len(buf))
        pool._size = len(buf)
        return pool

    def add(self, text: str) -> int:
        off = self._by_value.get(text)
        if off is not None:
            return off
        off = self._size
        self._by_offset[off] = text
        self._by_value[text] = off
        self._size += len(text.encode(self.encoding)) + 1
        return off

    def get(self, offset: int) -> Optional[str]:
        if offset == -1:
            return None
        return self._by_offset.get(offset)

    def offset_of(self, text: Optional[str]) -> int:
        if text is None:
            return -1
        return self._by_value.get(text, -1)

    @property
    def strings(self) -> Dict[int, str]:
        return dict(self._by_offset)

    def __len__(self) -> int:
        return len(self._by_offset)

    def __contains__(self, text: object) -> bool:
        return text in self._by_value

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_offset.values())

    def pack(self) -> bytes:
        buf = io.BytesIO()
        for text in self._by_offset.values():
            buf.write(text.encode(self.encoding))
            buf.write(b"\x00")
        return buf.getvalue()


class KeyTable:
    """Correspondance crc32 -> nom, résolution avec repli sur `UNKNOWN_<hex8>`."""

    def __init__(self, names: Optional[Dict[int, str]] = None, encoding: str = "utf-8") -> None:
        self.names: Dict[int, str] = dict(names or {})
        self.encoding = encoding

    def lookup(self, crc: int) -> str:
        name = self.names.get(crc)
        return name if name is not None else unknown_name(crc)

    def hash_of(self, name: str, preserve_unknown: bool = True) -> int:
        if preserve_unknown:
            h = unknown_hash(name)
            if h is not None:
                return h
        return crc32_name(name, self.encoding)

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, crc: object) -> bool:
        return crc in self.names

    @classmethod
    def from_keys(cls, keys: Iterable[str], encoding: str = "utf-8",
                  preserve_unknown: bool = True) -> "KeyTable":
        table = cls(encoding=encoding)
        for key in keys:
            if preserve_unknown and unknown_hash(key) is not None:
                continue
            table.names.setdefault(crc32_name(key, encoding), key)
        return table

    @classmethod
    def unpack(cls, blob: bytes, encoding: str = "utf-8") -> "KeyTable":
        """Decode a key table blob (sub-header + pairs + key strings)."""
        if len(blob) < KEY_HEADER_SIZE:
            raise KeyTableCorrupt(f"key table too small ({len(blob)} bytes)")
        h = KeyHeader.unpack(blob)
        if h.key_count < 0 or KEY_HEADER_SIZE + 8 * h.key_count > len(blob):
            raise KeyTableCorrupt(f"invalid KeyCount: {h.key_count}")
        if (h.key_string_offset < 0 or h.key_string_length < 0
                or h.key_string_offset + h.key_string_length > len(blob)):
            raise KeyTableCorrupt(
                f"key strings out of range: offset={h.key_string_offset} length={h.key_string_length}")
        strings = blob[h.key_string_offset:h.key_string_offset + h.key_string_length]

        table = cls(encoding=encoding)
        for crc, start in cls._pairs(blob, h.key_count):
            if not (0 <= start <= len(strings)):
                raise KeyTableCorrupt(f"key string start out of range: {start}")
            end = _cstring_end(strings, start)
            table.names[crc] = strings[start:end].decode(encoding, errors="replace")
        return table

    @staticmethod
    def _pairs(blob: bytes, count: int) -> List[Tuple[int, int]]:
        return [struct.unpack_from(_LE + "Ii", blob, KEY_HEADER_SIZE + 8 * i) for i in range(count)]

    def pack(self, alignment: int = 16) -> bytes:
        buf = io.BytesIO()
        buf.write(b"\x00" * KEY_HEADER_SIZE)
        offset = 0
        encoded = []
        for crc, name in self.names.items():
            raw = name.encode(self.encoding)
            buf.write(struct.pack(_LE + "Ii", crc, offset))
            offset += len(raw) + 1
            encoded.append(raw)
        buf.write(pad_to(buf.tell(), alignment))
        key_string_offset = buf.tell()
        for raw in encoded:
            buf.write(raw + b"\x00")
        buf.write(pad_to(buf.tell(), alignment))
        header = KeyHeader(
            key_length=buf.tell(),
            key_count=len(encoded),
            key_string_offset=key_string_offset,
            key_string_length=offset,
        )
        out = bytearray(buf.getvalue())
        out[:KEY_HEADER_SIZE] = header.pack()
        return bytes(out)
