# packages/l5cfgwf/src/l5cfgwf/orchestrator.py
from __future__ import annotations
import os, json, time, logging, hashlib, traceback
from pathlib import Path
from typing import Dict, Any, Optional

from .api import atomic_write, cfgbin_json_name, export_json, log_append, looks_like_cfgbin

log = logging.getLogger(__name__)

# --- Local helpers (no CLI dependency) --------------------------------------

MANIFEST_KIND = "l5cfg_export_manifest_v1"

def _write_json_atomic(p: Path, obj: Any) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    tmp.write_text(json.dumps(obj, ensure_ascii=False, indent=2), encoding="utf-8")
    os.replace(tmp, p)

def _read_json(p: Path) -> Any:
    return json.loads(p.read_text(encoding="utf-8"))

def _looks_like_export(p: Path) -> bool:
    """Sortie JSON déjà produite (objet non vide)."""
    try:
        with open(p, "rb") as f:
            head = f.read(1)
        return head == b"{" and p.stat().st_size > 2
    except OSError:
        return False

def _sha256(p: Path, nbytes: int = 1_048_576) -> str:
    h = hashlib.sha256()
    with open(p, "rb") as f:
        while True:
            b = f.read(nbytes)
            if not b:
                break
            h.update(b)
    return h.hexdigest()

def _list_sources(root: Path, recursive: bool = True) -> list[Path]:
    it = root.rglob("*.bin") if recursive else root.glob("*.bin")
    return sorted(p for p in it if p.is_file() and looks_like_cfgbin(p))

# --- Public Orchestration API ----------------------------------------------

def plan_export(src_dir: str, out_dir: str, manifest_path: Optional[str] = None,
                recursive: bool = True) -> str:
    """Scan src_dir and produce a manifest to export its cfg.bin files as JSON into out_dir."""
    src = Path(src_dir)
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    sources = _list_sources(src, recursive=recursive)
    if not sources:
        raise RuntimeError(f"Aucun cfg.bin trouvé sous: {src}")

    items: list[dict[str, Any]] = []
    for p in sources:
        rel = p.relative_to(src)
        items.append({
            "id": rel.as_posix(),
            "in": str(p),
            "out": str(out / rel.parent / cfgbin_json_name(p)),
            "state": "todo",
        })

    mani = {
        "kind": MANIFEST_KIND,
        "run": {"start_ts": time.time()},
        "items": items,
    }

    if manifest_path is None:
        mdir = out.parent / "manifests"
        mdir.mkdir(parents=True, exist_ok=True)
        manifest_path = str(mdir / f"export_{int(time.time())}.json")
    mp = Path(manifest_path)
    _write_json_atomic(mp, mani)
    log.info("plan_export: %d item(s) -> %s", len(items), mp)
    return str(mp)

def run_export(manifest_path: str, resume: bool = True, stats_jsonl: Optional[str] = None,
               error_log: Optional[str] = None) -> Dict[str, Any]:
    """Execute an export manifest (single-process with per-item file locks).

    Failed items are also appended to `error_log` (one timestamped line each).
    """
    from l5cfg import CodecConfig

    mp = Path(manifest_path)
    if not mp.exists():
        raise FileNotFoundError(f"Manifest introuvable: {mp}")
    mani = _read_json(mp)
    if mani.get("kind") != MANIFEST_KIND:
        raise ValueError(f"{mp}: manifest kind {mani.get('kind')!r}, attendu {MANIFEST_KIND}")
    cfg = CodecConfig.from_env()

    stats_fp: Optional[Path] = Path(stats_jsonl) if stats_jsonl else None
    if stats_fp:
        stats_fp.parent.mkdir(parents=True, exist_ok=True)

    total = len(mani["items"]); done = 0; errors = 0
    for it in mani["items"]:
        out_p = Path(it["out"])
        # fast resume
        if resume and out_p.exists() and _looks_like_export(out_p):
            it["state"] = "done"
            it["size"] = out_p.stat().st_size
            it["sha256"] = _sha256(out_p)
            done += 1
            continue

        out_p.parent.mkdir(parents=True, exist_ok=True)
        lock = out_p.with_suffix(out_p.suffix + ".lock")
        try:
            fd = os.open(str(lock), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            os.close(fd)
        except FileExistsError:
            # another process might be doing it → skip here
            log.info("skip %s (locked)", it["id"])
            continue

        try:
            it["state"] = "running"
            it["t0"] = time.time()
            text = export_json(Path(it["in"]).read_bytes(), cfg)
            atomic_write(out_p, text.encode("utf-8"))
            it["state"] = "done"
            it.pop("error", None)
            it["elapsed_s"] = time.time() - it["t0"]
            it["size"] = out_p.stat().st_size
            it["sha256"] = _sha256(out_p)
            done += 1
            if stats_fp:
                with open(stats_fp, "a", encoding="utf-8") as f:
                    f.write(json.dumps({
                        "event": "export_done",
                        "id": it["id"],
                        "in": it["in"],
                        "out": it["out"],
                        "size": it["size"],
                        "elapsed_s": it["elapsed_s"],
                    }, ensure_ascii=False) + "\n")
        except Exception as e:
            it["state"] = "error"
            it["error"] = f"{type(e).__name__}: {e}"
            it["traceback"] = traceback.format_exc(limit=3)
            errors += 1
            log.warning("export %s: %s", it["id"], it["error"])
            if error_log:
                log_append(error_log, f"{it['id']}: {it['error']}")
        finally:
            try:
                os.remove(lock)
            except OSError:
                pass
            _write_json_atomic(mp, mani)  # checkpoint after each item

    mani.setdefault("run", {})["end_ts"] = time.time()
    _write_json_atomic(mp, mani)
    return {"total": total, "done": done, "errors": errors}
