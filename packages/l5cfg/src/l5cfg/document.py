# packages/l5cfg/src/l5cfg/document.py
from __future__ import annotations
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, TextIO

from .bitstream import find_footer, read_cfgbin, read_stream, write_cfgbin, write_stream
from .bitstream.header import HEADER_SIZE, encoding_label
from .config import CodecConfig
from .model import Entry, Variable, VariableType

__all__ = ["Document"]


def _format_value(v: Variable) -> str:
    if v.value is None:
        return "<null>"
    if v.type is VariableType.STRING:
        s = str(v.value)
        return f'"{s[:50]}..."' if len(s) > 50 else f'"{s}"'
    if v.type is VariableType.FLOAT:
        return f"{float(v.value):.4f}"
    return str(v.value)


@dataclass
class Document:
    """Document cfg.bin décodé : encodage, forêt d'entrées, string pool.

    `strings` (offset -> texte) reflète la table lue ou construite à l'import
    JSON ; `save()` reconstruit toujours la table à partir des entrées.
    """
    encoding: str = "utf-8"
    entries: List[Entry] = field(default_factory=list)
    strings: Dict[int, str] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Binary
    # ------------------------------------------------------------------
    @staticmethod
    def has_valid_footer(data: bytes, cfg: Optional[CodecConfig] = None) -> bool:
        cfg = cfg or CodecConfig()
        return len(data) >= HEADER_SIZE and find_footer(data, cfg.footer_window) >= 0

    @classmethod
    def open(cls, data: bytes, cfg: Optional[CodecConfig] = None) -> "Document":
        """Decode a cfg.bin buffer. Raises a `DecodeError` subclass on invalid data."""
        encoding, pool, entries = read_stream(bytes(data), cfg)
        return cls(encoding=encoding, entries=entries, strings=pool.strings)

    @classmethod
    def load(cls, path: str | Path, cfg: Optional[CodecConfig] = None) -> "Document":
        return cls.open(read_cfgbin(path), cfg)

    def save(self, cfg: Optional[CodecConfig] = None) -> bytes:
        return write_stream(self.entries, self.encoding, cfg)

    def dump(self, path: str | Path, cfg: Optional[CodecConfig] = None) -> None:
        write_cfgbin(self.save(cfg), path)

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------
    def to_json(self, indent: int = 2) -> str:
        from .json_bridge import to_json
        return to_json(self, indent=indent)

    @classmethod
    def from_json(cls, src: Any, cfg: Optional[CodecConfig] = None) -> "Document":
        from .json_bridge import from_json
        return from_json(src, cfg)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def walk(self) -> Iterator[Entry]:
        for e in self.entries:
            yield from e.walk()

    def count(self) -> int:
        """Flat record count written to the header on save."""
        return sum(e.count() for e in self.entries)

    def distinct_strings(self) -> List[str]:
        out: Dict[str, None] = {}
        for e in self.entries:
            for s in e.distinct_strings():
                out.setdefault(s, None)
        return list(out)

    def unique_keys(self) -> List[str]:
        out: Dict[str, None] = {}
        for e in self.entries:
            for k in e.unique_keys():
                out.setdefault(k, None)
        return list(out)

    def find(self, pattern: str) -> List[Entry]:
        return [e for e in self.walk() if e.match(pattern)]

    def replace_string(self, old: str, new: str) -> int:
        return sum(e.replace_string(old, new) for e in self.walk())

    def summary(self) -> Dict[str, Any]:
        return {
            "encoding": encoding_label(self.encoding),
            "total_entries": self.count(),
            "root_entries": len(self.entries),
            "unique_strings": len(self.distinct_strings()),
        }

    def print_info(self, out: TextIO = sys.stdout) -> None:
        s = self.summary()
        out.write(f"Encoding: {s['encoding']}\n")
        out.write(f"Total Entries: {s['total_entries']}\n")
        out.write(f"Root Entries: {s['root_entries']}\n")
        out.write(f"Unique Strings: {s['unique_strings']}\n\n")
        out.write("Entry Structure:\n")
        for e in self.entries:
            self._print_entry(out, e, 0)

    def _print_entry(self, out: TextIO, e: Entry, indent: int) -> None:
        pad = "  " * indent
        out.write(f"{pad}[{e.base_name}] ({len(e.variables)} vars)\n")
        for i, v in enumerate(e.variables):
            name = v.name if v.name is not None else f"#{i}"
            out.write(f"{pad}  {name}: {v.type.label} = {_format_value(v)}\n")
        for child in e.children:
            self._print_entry(out, child, indent + 1)
