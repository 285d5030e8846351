# packages/l5cfgwf/src/l5cfgwf/cli/export.py
from __future__ import annotations
import argparse, logging, sys
from pathlib import Path

from .common import setup_logging, ensure_dir, codec_config, looks_like_cfgbin
from ..api import atomic_write, cfgbin_json_name, export_json

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="L5CFG — Export cfg.bin (ou RDBN) -> JSON")
    p.add_argument("files", nargs="*", help="Fichiers cfg.bin")
    p.add_argument("--out", required=True, help="Dossier de sortie")
    p.add_argument("--indent", type=int, default=2)
    p.add_argument("--log-file", default=None)
    p.add_argument("--verbose", action="store_true")
    return p.parse_args(argv)

def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(Path(args.log_file) if args.log_file else None, verbose=args.verbose)
    if not args.files:
        logging.warning("Aucun fichier à exporter")
        return 2

    out_dir = Path(args.out); ensure_dir(out_dir)
    cfg = codec_config()
    ok = 0
    for i, p in enumerate(args.files, 1):
        p = Path(p)
        if not looks_like_cfgbin(p):
            logging.error("%s: ni cfg.bin (footer) ni RDBN, ignoré", p)
            continue
        try:
            logging.info("[%d/%d] export: %s", i, len(args.files), p)
            text = export_json(p.read_bytes(), cfg, indent=args.indent)
            dst = out_dir / cfgbin_json_name(p)
            atomic_write(dst, text.encode("utf-8"))
            logging.info("→ OK %s", dst)
            ok += 1
        except Exception as e:
            logging.exception("Échec export %s: %s", p, e)
    return 0 if ok == len(args.files) else 1

if __name__ == "__main__":
    sys.exit(main())
