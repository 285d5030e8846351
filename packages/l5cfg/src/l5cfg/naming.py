# packages/l5cfg/src/l5cfg/naming.py
# Noms d'entrées : hash CRC32, placeholders UNKNOWN_<hex8>, noms de fermeture.
from __future__ import annotations
import re
import zlib
from typing import Optional

__all__ = [
    "crc32_name", "unknown_name", "unknown_hash",
    "strip_instance", "strip_marker", "end_name_for",
    "node_type", "is_begin",
]

_UNKNOWN_RE = re.compile(r"^UNKNOWN_([0-9A-F]{8})$")
_MARKERS = ("BEGIN", "BEG", "START", "END", "PTREE")
_BEGIN_SUFFIXES = ("beg", "begin", "start")


def crc32_name(name: str, encoding: str = "utf-8") -> int:
    """CRC32 (IEEE, zlib) of the encoded name: the only on-disk identifier."""
    return zlib.crc32(name.encode(encoding)) & 0xFFFFFFFF


def unknown_name(crc: int) -> str:
    return f"UNKNOWN_{crc & 0xFFFFFFFF:08X}"


def unknown_hash(name: str) -> Optional[int]:
    """Hash carried by an `UNKNOWN_<hex8>` placeholder, else None."""
    m = _UNKNOWN_RE.match(name)
    return int(m.group(1), 16) if m else None


def strip_instance(name: str) -> str:
    """`FOO_INFO_3` -> `FOO_INFO` (drops the last `_` token; names without `_` are kept)."""
    head, sep, _ = name.rpartition("_")
    return head if sep else name


def strip_marker(base: str) -> str:
    """`GROUP_LIST_BEG` -> `GROUP_LIST`; names without marker token are unchanged."""
    head, sep, last = base.rpartition("_")
    if sep and last.upper() in _MARKERS:
        return head
    return base


def node_type(name: str) -> str:
    """Second-to-last `_` token, lower-cased (`FOO_LIST_BEG_0` -> `beg`)."""
    parts = name.split("_")
    return parts[-2].lower() if len(parts) >= 2 else ""


def is_begin(name: str) -> bool:
    """Instanced name of a container opener (BEG/BEGIN/START token, or PTREE)."""
    nt = node_type(name)
    return nt.endswith(_BEGIN_SUFFIXES) or (nt.endswith("ptree") and "_PTREE" not in name)


def end_name_for(base: str) -> str:
    """Name of the synthetic close record written after a container.

    Only the marker token is rewritten: `RESTART_LIST_BEG` -> `RESTART_LIST_END`.
    """
    if base.startswith("PTREE"):
        return "_PTREE"
    head, sep, last = base.rpartition("_")
    last = last.replace("BEGIN", "END").replace("BEG", "END").replace("START", "END")
    return head + sep + last
