# packages/l5cfg/src/l5cfg/bitstream/__init__.py
from __future__ import annotations

# I/O bruts
from .io import read_cfgbin, write_cfgbin

# Header / footer
from .header import CfgHeader, KeyHeader, FOOTER_MAGIC, find_footer

# Tables
from .strings import StringPool, KeyTable

# Records plats + type tags
from .records import FlatRecord
from .records_io import pack_type_tags, unpack_type_tags, unpack_records, rename_duplicates, pack_entry

# Reconstruction de l'arbre
from .tree import TreeBuilder, build_tree

# Framing complet header+entries+tables+footer
from .stream import read_stream, write_stream

__all__ = [
    "read_cfgbin", "write_cfgbin",
    "CfgHeader", "KeyHeader", "FOOTER_MAGIC", "find_footer",
    "StringPool", "KeyTable",
    "FlatRecord",
    "pack_type_tags", "unpack_type_tags", "unpack_records", "rename_duplicates", "pack_entry",
    "TreeBuilder", "build_tree",
    "read_stream", "write_stream",
]
