# packages/l5cfg/src/l5cfg/json_bridge.py
# -----------------------------------------------------------------------------
# Pont JSON <-> modèle Entry/Variable.
# Export : forme {"Encoding", "Entries": [{Name, EndTerminator, Variables, Children}]}
# Import : permissif (clés en Pascal/camel case, forme "lists", variables implicites) ;
#          une racine non reconnue donne un document vide, jamais d'exception.
# -----------------------------------------------------------------------------
from __future__ import annotations
import json
import logging
from typing import Any, Dict, List, Optional

from .bitstream.header import canonical_encoding, encoding_label
from .bitstream.strings import StringPool
from .config import CodecConfig
from .document import Document
from .model import Entry, Variable, VariableType

__all__ = ["to_obj", "to_json", "from_json", "entry_from_dict"]

log = logging.getLogger(__name__)

INT32_MIN, INT32_MAX = -(1 << 31), (1 << 31) - 1
_ENTRY_KEYS = {
    "Name", "name", "id", "hash",
    "EndTerminator", "endTerminator",
    "Variables", "variables",
    "Children", "children",
}


def to_obj(doc: Document) -> Dict[str, Any]:
    obj: Dict[str, Any] = {"Encoding": encoding_label(doc.encoding)}
    if doc.entries:
        obj["Entries"] = [e.to_dict() for e in doc.entries]
    return obj


def to_json(doc: Document, indent: int = 2) -> str:
    return json.dumps(to_obj(doc), ensure_ascii=False, indent=indent)


# -----------------------------------------------------------------------------
# Import
# -----------------------------------------------------------------------------
def _get(d: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in d:
            return d[k]
    return None


def _resolve_encoding(name: Any, default: str) -> str:
    if not isinstance(name, str) or not name:
        return default
    try:
        return canonical_encoding(name)
    except LookupError:
        log.warning("unknown encoding %r in JSON, using %s", name, default)
        return default


def _to_int(v: Any) -> Optional[int]:
    if v is None:
        return None
    if isinstance(v, str):
        try:
            return int(v.strip())
        except ValueError:
            return 0
    try:
        return int(v)
    except (TypeError, ValueError, OverflowError):
        return 0


def _to_float(v: Any) -> Optional[float]:
    if v is None:
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0.0


def _to_bool(v: Any) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in ("true", "1", "yes")
    if isinstance(v, (bool, int, float)):
        return bool(v)
    return False


def _as_list(v: Any) -> List[Any]:
    return v if isinstance(v, list) else []


class _Importer:
    """Une instance par appel d'import : possède son propre StringPool."""

    def __init__(self, encoding: str) -> None:
        self.pool = StringPool(encoding)

    def variable(self, d: Any) -> Variable:
        if not isinstance(d, dict):
            return Variable(VariableType.INT, _to_int(d))
        name = _get(d, "Name", "name")
        type_name = _get(d, "Type", "type")
        vtype = VariableType.INT if type_name is None else VariableType.from_label(type_name)

        raw = _get(d, "Value", "value")
        if vtype is VariableType.STRING:
            value = None if raw is None else str(raw)
        elif vtype is VariableType.INT:
            value = _to_int(raw)
        elif vtype is VariableType.FLOAT:
            value = _to_float(raw)
        else:
            value = int(raw) if isinstance(raw, (int, float)) and not isinstance(raw, bool) else None

        if vtype is VariableType.STRING and value is not None:
            self.pool.add(value)
        return Variable(vtype, value, None if name is None else str(name))

    def implicit_variable(self, name: str, raw: Any) -> Variable:
        if isinstance(raw, bool):
            return Variable(VariableType.INT, 1 if raw else 0, name)
        if isinstance(raw, str):
            self.pool.add(raw)
            return Variable(VariableType.STRING, raw, name)
        if isinstance(raw, int) and INT32_MIN <= raw <= INT32_MAX:
            return Variable(VariableType.INT, raw, name)
        if isinstance(raw, (int, float)):
            return Variable(VariableType.FLOAT, float(raw), name)
        return Variable(VariableType.STRING, None, name)

    def entry(self, d: Any) -> Entry:
        if not isinstance(d, dict):
            return Entry("")
        name = _get(d, "Name", "name", "id", "hash")
        e = Entry("" if name is None else str(name))
        e.end_terminator = _to_bool(_get(d, "EndTerminator", "endTerminator"))

        for v in _as_list(_get(d, "Variables", "variables")):
            e.variables.append(self.variable(v))
        for c in _as_list(_get(d, "Children", "children")):
            e.children.append(self.entry(c))

        if not e.variables:
            for k, raw in d.items():
                if k not in _ENTRY_KEYS:
                    e.variables.append(self.implicit_variable(k, raw))
        return e


def entry_from_dict(d: Dict[str, Any], encoding: str = "utf-8") -> Entry:
    return _Importer(encoding).entry(d)


def from_json(src: Any, cfg: Optional[CodecConfig] = None) -> Document:
    """JSON text (or already-parsed object) -> Document. Never raises on shape problems."""
    cfg = cfg or CodecConfig()
    obj = src
    if isinstance(src, (str, bytes, bytearray)):
        try:
            obj = json.loads(src)
        except ValueError as e:
            log.warning("from_json: invalid JSON (%s), empty document", e)
            return Document(encoding=cfg.encoding)
    if not isinstance(obj, dict):
        log.warning("from_json: root is %s, expected an object; empty document", type(obj).__name__)
        return Document(encoding=cfg.encoding)

    encoding = _resolve_encoding(_get(obj, "Encoding", "encoding"), cfg.encoding)
    imp = _Importer(encoding)
    entries: List[Entry] = []

    raw_entries = _get(obj, "Entries", "entries")
    lists = obj.get("lists")
    if isinstance(raw_entries, list):
        entries = [imp.entry(d) for d in raw_entries]
    elif isinstance(lists, list):
        for lst in lists:
            if not isinstance(lst, dict):
                continue
            list_name = str(lst.get("name") or "")
            values = lst.get("values")
            if not isinstance(values, list):
                continue
            for i, d in enumerate(values):
                e = imp.entry(d)
                if not e.name and list_name:
                    e.name = f"{list_name}_{i}"
                entries.append(e)
    else:
        log.warning("from_json: no 'Entries', 'entries' or 'lists' at root; empty document")

    return Document(encoding=encoding, entries=entries, strings=imp.pool.strings)
