# packages/l5cfgwf/src/l5cfgwf/cli/info.py
from __future__ import annotations
import argparse, json, logging, sys
from pathlib import Path

from l5cfg import Document

from .common import setup_logging, codec_config

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="L5CFG — Résumé / recherche dans un cfg.bin")
    p.add_argument("file", help="Fichier cfg.bin")
    p.add_argument("--find", default=None, help="Préfixe (insensible à la casse) sur noms, variables et valeurs")
    p.add_argument("--json", action="store_true", help="Sortie JSON (résumé ou résultats)")
    p.add_argument("--log-file", default=None)
    p.add_argument("--verbose", action="store_true")
    return p.parse_args(argv)

def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(Path(args.log_file) if args.log_file else None, verbose=args.verbose)

    p = Path(args.file)
    try:
        doc = Document.load(p, codec_config())
    except Exception as e:
        logging.exception("Échec lecture %s: %s", p, e)
        return 1

    if args.find is None:
        if args.json:
            print(json.dumps(doc.summary(), ensure_ascii=False, indent=2))
        else:
            doc.print_info(sys.stdout)
        return 0

    hits = doc.find(args.find)
    if not hits:
        logging.info("%s: aucune entrée pour %r", p, args.find)
        return 2
    if args.json:
        print(json.dumps([e.to_dict() for e in hits], ensure_ascii=False, indent=2))
    else:
        for e in hits:
            print(f"{e.name} ({len(e.variables)} vars, {len(e.children)} children)")
    return 0

if __name__ == "__main__":
    sys.exit(main())
