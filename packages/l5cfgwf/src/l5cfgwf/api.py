# packages/l5cfgwf/src/l5cfgwf/api.py
from __future__ import annotations
import os, time
from pathlib import Path

def atomic_write(path: Path | str, data: bytes) -> None:
    path = Path(path)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.parent.mkdir(parents=True, exist_ok=True)
    with open(tmp, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)

def cfgbin_json_name(path: Path | str) -> str:
    """`item_config.cfg.bin` -> `item_config.cfg.json` ; sinon on ajoute `.json`."""
    name = Path(path).name
    if name.lower().endswith(".bin"):
        return name[:-4] + ".json"
    return name + ".json"

def json_cfgbin_name(path: Path | str) -> str:
    """`item_config.cfg.json` -> `item_config.cfg.bin` ; sinon on ajoute `.cfg.bin`."""
    name = Path(path).name
    if name.lower().endswith(".cfg.json"):
        return name[:-5] + ".bin"
    if name.lower().endswith(".json"):
        name = name[:-5]
    return name + ".cfg.bin"

def log_append(path: Path | str, msg: str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    ts = time.strftime("%Y-%m-%d %H:%M:%S")
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"[{ts}] {msg}\n")

def export_json(data: bytes, cfg=None, indent: int = 2) -> str:
    """cfg.bin ou RDBN (détecté par la magic) -> texte JSON."""
    import json
    from l5cfg import Document, is_rdbn, read_rdbn
    if is_rdbn(data):
        return json.dumps(read_rdbn(data), ensure_ascii=False, indent=indent)
    return Document.open(data, cfg).to_json(indent=indent)

def looks_like_cfgbin(p: Path | str) -> bool:
    """Footer cfg.bin valide ou magic RDBN."""
    from l5cfg import Document, is_rdbn
    try:
        data = Path(p).read_bytes()
    except OSError:
        return False
    return is_rdbn(data) or Document.has_valid_footer(data)
