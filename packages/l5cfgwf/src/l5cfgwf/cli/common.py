# packages/l5cfgwf/src/l5cfgwf/cli/common.py
from __future__ import annotations
import logging, sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from l5cfg import CodecConfig

from ..api import looks_like_cfgbin  # noqa: F401  (ré-export pour les CLI)

def setup_logging(log_file: Optional[Path], verbose: bool = True) -> None:
    log_fmt = "[%(asctime)s] %(levelname)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=log_fmt, datefmt=datefmt, handlers=handlers, force=True)

def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def codec_config(encoding: Optional[str] = None) -> CodecConfig:
    """Config par défaut + surcharge `L5CFG_*` + option CLI `--encoding`."""
    cfg = CodecConfig.from_env()
    if encoding:
        cfg = replace(cfg, encoding=encoding)
    return cfg
