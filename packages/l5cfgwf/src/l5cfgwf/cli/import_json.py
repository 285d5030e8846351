# packages/l5cfgwf/src/l5cfgwf/cli/import_json.py
from __future__ import annotations
import argparse, logging, sys
from pathlib import Path

from l5cfg import Document

from .common import setup_logging, ensure_dir, codec_config
from ..api import atomic_write, json_cfgbin_name

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="L5CFG — Import JSON -> cfg.bin")
    p.add_argument("files", nargs="*", help="Fichiers JSON")
    p.add_argument("--out", required=True, help="Dossier de sortie")
    p.add_argument("--encoding", default=None,
                   help="Encodage si le JSON n'a pas de champ Encoding (ex: shift_jis)")
    p.add_argument("--log-file", default=None)
    p.add_argument("--verbose", action="store_true")
    return p.parse_args(argv)

def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(Path(args.log_file) if args.log_file else None, verbose=args.verbose)
    if not args.files:
        logging.warning("Aucun fichier à importer")
        return 2

    out_dir = Path(args.out); ensure_dir(out_dir)
    ok = 0
    for i, p in enumerate(args.files, 1):
        p = Path(p)
        try:
            cfg = codec_config(args.encoding)
            logging.info("[%d/%d] import: %s", i, len(args.files), p)
            doc = Document.from_json(p.read_text(encoding="utf-8"), cfg)
            if not doc.entries:
                logging.warning("%s: aucune entrée importée", p)
            dst = out_dir / json_cfgbin_name(p)
            atomic_write(dst, doc.save(cfg))
            logging.info("→ OK %s (%d records)", dst, doc.count())
            ok += 1
        except Exception as e:
            logging.exception("Échec import %s: %s", p, e)
    return 0 if ok == len(args.files) else 1

if __name__ == "__main__":
    sys.exit(main())
