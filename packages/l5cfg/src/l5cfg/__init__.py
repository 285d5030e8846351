# packages/l5cfg/src/l5cfg/__init__.py
from __future__ import annotations

"""L5CFG - codec cfg.bin Level-5 (public surface).

Document (décodage/encodage binaire + pont JSON), modèle Entry/Variable,
configuration et hiérarchie d'erreurs. Les détails du format vivent dans
`l5cfg.bitstream`.
"""

__version__ = "1.0.0"

# API publique (stable)
from .config import CodecConfig
from .document import Document
from .errors import (
    CfgBinError,
    DecodeError,
    EntriesBufferTooSmall,
    InvalidFooter,
    InvalidHeaderField,
    KeyTableCorrupt,
    TooSmall,
)
from .json_bridge import from_json, to_json
from .model import Entry, Variable, VariableType
from .rdbn import is_rdbn, read_rdbn

__all__ = [
    "__version__",
    "CodecConfig",
    "Document",
    "Entry", "Variable", "VariableType",
    "to_json", "from_json",
    "is_rdbn", "read_rdbn",
    "CfgBinError", "DecodeError", "TooSmall", "InvalidFooter",
    "InvalidHeaderField", "KeyTableCorrupt", "EntriesBufferTooSmall",
]
