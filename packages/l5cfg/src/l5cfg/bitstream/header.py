# packages/l5cfg/src/l5cfg/bitstream/header.py
from __future__ import annotations
import codecs
import logging
import struct
from dataclasses import dataclass

__all__ = [
    "HEADER_SIZE", "KEY_HEADER_SIZE", "FOOTER_MAGIC", "FOOTER_TAG",
    "CfgHeader", "KeyHeader",
    "find_footer", "encoding_at", "encoding_byte", "encoding_label", "canonical_encoding",
    "round_up", "pad_to",
]

log = logging.getLogger(__name__)

_LE = "<"  # little-endian

HEADER_SIZE = 0x10
KEY_HEADER_SIZE = 0x10
FOOTER_MAGIC = b"\x01\x74\x32\x62"
FOOTER_TAG = FOOTER_MAGIC + b"\xFE"
ENCODING_OFFSET_FROM_END = 0x0A

SHIFT_JIS = "cp932"
_SJIS_FAMILY = {"shift_jis", "cp932", "shift_jis_2004", "shift_jisx0213"}


@dataclass(eq=True)
class CfgHeader:
    """En-tête fixe (16 octets) en début de fichier."""
    entries_count: int = 0
    string_table_offset: int = 0
    string_table_length: int = 0
    string_table_count: int = 0

    def pack(self) -> bytes:
        return struct.pack(_LE + "4i", self.entries_count, self.string_table_offset,
                           self.string_table_length, self.string_table_count)

    @staticmethod
    def unpack(b: bytes, off: int = 0) -> "CfgHeader":
        return CfgHeader(*struct.unpack_from(_LE + "4i", b, off))


@dataclass(eq=True)
class KeyHeader:
    """Sous-en-tête de la key table (16 octets)."""
    key_length: int = 0
    key_count: int = 0
    key_string_offset: int = 0
    key_string_length: int = 0

    def pack(self) -> bytes:
        return struct.pack(_LE + "4i", self.key_length, self.key_count,
                           self.key_string_offset, self.key_string_length)

    @staticmethod
    def unpack(b: bytes, off: int = 0) -> "KeyHeader":
        return KeyHeader(*struct.unpack_from(_LE + "4i", b, off))


def find_footer(buf: bytes, window: int = 32) -> int:
    """Index of the footer magic within the last `window` bytes, or -1.

    Only the 4 magic bytes are required; the trailing `FE` is tolerated missing.
    """
    start = max(0, len(buf) - window)
    for i in range(start, len(buf) - 4):
        if buf[i:i + 4] == FOOTER_MAGIC:
            return i
    return -1


def encoding_at(buf: bytes) -> str:
    """Text encoding selected by the byte at `len - 10` (0 = Shift-JIS, else UTF-8)."""
    b = buf[len(buf) - ENCODING_OFFSET_FROM_END]
    if b != 0:
        return "utf-8"
    try:
        codecs.lookup(SHIFT_JIS)
    except LookupError:
        log.warning("Shift-JIS codec unavailable, falling back to UTF-8")
        return "utf-8"
    return SHIFT_JIS


def _is_sjis(encoding: str) -> bool:
    try:
        name = codecs.lookup(encoding).name
    except LookupError:
        return False
    return name in _SJIS_FAMILY


def encoding_byte(encoding: str) -> int:
    return 0 if _is_sjis(encoding) else 1


def encoding_label(encoding: str) -> str:
    """Web name written to JSON (`shift_jis` / `utf-8`)."""
    return "shift_jis" if _is_sjis(encoding) else "utf-8"


def canonical_encoding(encoding: str) -> str:
    """Codec name used for text I/O: any Shift-JIS alias reads and writes as cp932.

    Raises LookupError for an unknown codec.
    """
    if _is_sjis(encoding):
        return SHIFT_JIS
    return codecs.lookup(encoding).name


def round_up(n: int, exp: int) -> int:
    return ((n + exp - 1) // exp) * exp


def pad_to(pos: int, alignment: int = 16, fill: int = 0xFF) -> bytes:
    rem = pos % alignment
    return b"" if rem == 0 else bytes([fill]) * (alignment - rem)
