# packages/l5cfgwf/src/l5cfgwf/__init__.py
from __future__ import annotations

from .api import atomic_write, cfgbin_json_name, export_json, json_cfgbin_name, log_append, looks_like_cfgbin

__all__ = [
    "atomic_write",
    "cfgbin_json_name",
    "export_json",
    "json_cfgbin_name",
    "log_append",
    "looks_like_cfgbin",
    # on n’importe PAS le sous-module cli ici
]

__version__ = "1.0.0"
