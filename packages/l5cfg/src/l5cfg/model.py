# packages/l5cfg/src/l5cfg/model.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Optional, Union
import copy

import numpy as np

from .naming import end_name_for, is_begin, strip_instance, strip_marker

__all__ = ["VariableType", "Variable", "Entry", "Value"]

Value = Union[str, int, float, None]


class VariableType(IntEnum):
    """2-bit on-disk type tag."""
    STRING = 0
    INT = 1
    FLOAT = 2
    UNKNOWN = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def from_label(cls, label: str) -> "VariableType":
        """`"string"|"int"|"float"` (any case) -> type; anything else -> UNKNOWN."""
        try:
            t = cls[str(label).strip().upper()]
        except KeyError:
            return cls.UNKNOWN
        return t


def to_float32(v: Any) -> float:
    """Round a number to the nearest float32 (the only float width on disk)."""
    return float(np.float32(v))


@dataclass(eq=True)
class Variable:
    """Valeur scalaire typée d'une entrée.

    `STRING` avec `value=None` correspond à l'offset -1 ("pas de chaîne").
    `name` n'existe pas dans le binaire : il ne sert qu'au pont JSON.
    """
    type: VariableType
    value: Value = None
    name: Optional[str] = None

    def __post_init__(self) -> None:
        self.type = VariableType(self.type)
        if self.type is VariableType.FLOAT and self.value is not None:
            self.value = to_float32(self.value)

    def to_dict(self, index: int = 0) -> Dict[str, Any]:
        value = self.value
        if self.type is VariableType.FLOAT and value is not None:
            # shortest float32 text, e.g. 0.1 instead of 0.10000000149011612
            value = float(str(np.float32(value)))
        return {
            "Name": self.name if self.name is not None else f"Variable_{index}",
            "Type": self.type.label,
            "Value": value,
        }


@dataclass(eq=True)
class Entry:
    """Noeud de la forêt de configuration.

    `name` est le nom *instancié* tel que décodé (`<clé>_<i>`, ex. `GROUP_LIST_BEG_0`) ;
    le nom haché sur disque est `base_name`. Le nom de groupe sans instance ni
    marqueur (`GROUP_LIST`) est `group_name`.
    """
    name: str
    variables: List[Variable] = field(default_factory=list)
    children: List["Entry"] = field(default_factory=list)
    end_terminator: bool = False

    # -- naming ----------------------------------------------------------
    @property
    def base_name(self) -> str:
        return strip_instance(self.name)

    @property
    def group_name(self) -> str:
        return strip_marker(self.base_name)

    @property
    def end_name(self) -> str:
        return end_name_for(self.base_name)

    def has_end_record(self) -> bool:
        # root scalar leaves are end-terminated but only containers get a close record
        return self.end_terminator and is_begin(self.name) and self.end_name != self.base_name

    # -- traversal -------------------------------------------------------
    def walk(self) -> Iterator["Entry"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def count(self) -> int:
        """Number of flat records this subtree encodes to (end records included)."""
        total = 1 + (1 if self.has_end_record() else 0)
        for child in self.children:
            total += child.count()
        return total

    def distinct_strings(self) -> List[str]:
        out: Dict[str, None] = {}
        for e in self.walk():
            for v in e.variables:
                if v.type is VariableType.STRING and v.value is not None:
                    out.setdefault(str(v.value), None)
        return list(out)

    def unique_keys(self) -> List[str]:
        """Base names hashed by this subtree, first-seen order (end names after children)."""
        names: Dict[str, None] = {}
        self._collect_keys(names)
        return list(names)

    def _collect_keys(self, names: Dict[str, None]) -> None:
        names.setdefault(self.base_name, None)
        for child in self.children:
            child._collect_keys(names)
        if self.has_end_record():
            names.setdefault(self.end_name, None)

    # -- edition / search ------------------------------------------------
    def replace_string(self, old: str, new: str) -> int:
        """Replace String values equal to `old` in this entry only; returns the hit count."""
        n = 0
        for v in self.variables:
            if v.type is VariableType.STRING and v.value == old:
                v.value = new
                n += 1
        return n

    def match(self, pattern: str) -> bool:
        """Case-insensitive prefix match on name, variable names and values."""
        pattern = pattern.lower()
        if self.base_name.lower().startswith(pattern):
            return True
        for v in self.variables:
            if v.name is not None and v.name.lower().startswith(pattern):
                return True
            if v.type is VariableType.STRING:
                if v.value is not None and str(v.value).lower().startswith(pattern):
                    return True
            elif v.type is VariableType.INT:
                try:
                    if int(pattern) == int(v.value or 0):
                        return True
                except ValueError:
                    pass
            elif v.type is VariableType.FLOAT:
                try:
                    if abs(float(pattern) - float(v.value or 0.0)) < 1e-4:
                        return True
                except ValueError:
                    pass
        return False

    def clone(self) -> "Entry":
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Entry":
        """Inverse of `to_dict` (same permissive rules as the JSON import)."""
        from .json_bridge import entry_from_dict
        return entry_from_dict(d)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "Name": self.name,
            "EndTerminator": bool(self.end_terminator),
            "Variables": [v.to_dict(i) for i, v in enumerate(self.variables)],
        }
        if self.children:
            d["Children"] = [c.to_dict() for c in self.children]
        return d
