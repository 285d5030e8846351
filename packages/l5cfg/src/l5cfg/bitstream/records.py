# packages/l5cfg/src/l5cfg/bitstream/records.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..model import Variable, VariableType


@dataclass(eq=True)
class FlatRecord:
    """Enregistrement plat (non imbriqué) tel que lu dans la section entries.

    `name` est d'abord le nom résolu par la key table, puis le nom instancié
    (`<nom>_<i>`) après `rename_duplicates`.
    """
    name: str
    variables: List[Variable] = field(default_factory=list)
    crc: int = 0

    @property
    def types(self) -> List[VariableType]:
        return [v.type for v in self.variables]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "crc": int(self.crc),
            "variables": [(v.type.label, v.value) for v in self.variables],
        }
