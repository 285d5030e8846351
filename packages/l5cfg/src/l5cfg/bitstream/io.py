# packages/l5cfg/src/l5cfg/bitstream/io.py
from __future__ import annotations
from pathlib import Path


def read_cfgbin(path: str | Path) -> bytes:
    """Read a cfg.bin from disk (raw bytes, not validated)."""
    return Path(path).read_bytes()


def write_cfgbin(payload: bytes, path: str | Path) -> None:
    """Atomic write (`<name>.tmp` then replace); parent directories are created."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    tmp.write_bytes(payload)
    tmp.replace(p)
