# packages/l5cfg/src/l5cfg/bitstream/tree.py
"""
Reconstruction de la hiérarchie à partir du flux de records plats.

La hiérarchie n'est pas encodée dans le fichier : elle est déduite des noms
(`*_BEG_*`, `*_BEGIN_*`, `*_START_*`, `*_END_*`, `PTREE`). `TreeBuilder` est
une machine à états (pile de conteneurs ouverts + profondeur par nom de
conteneur) qui reproduit l'heuristique historique telle quelle, y compris ses
cas limites.

Transitions (pour chaque record, dans l'ordre du fichier) :

- begin : nouveau noeud, rattaché à la racine (pile vide), au dernier enfant du
  sommet (le conteneur le plus profond préfixe le nom et le record est un
  BEG/BEGIN) ou au sommet ; puis empilé.
- end   : le sommet reçoit `end_terminator`, une frame est dépilée et le
  conteneur BEG/BEGIN/START/PTREE correspondant est oublié.
- leaf  : racine terminée si aucun conteneur n'est connu ; sinon rattachée au
  sommet, avec fermeture implicite quand le nom ne correspond pas à un
  conteneur qui n'a pas de marqueur d'ouverture.
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional

from ..model import Entry, Variable
from ..naming import is_begin, node_type
from .records import FlatRecord

__all__ = [
    "node_type", "is_begin", "is_end", "is_nesting_begin", "is_open_marker",
    "container_base", "prefix_matches_container", "end_key_for",
    "TreeBuilder", "build_tree",
]

log = logging.getLogger(__name__)

_END_KEY_SUBSTITUTIONS = (("_END_", "_BEG_"), ("_END_", "_BEGIN_"), ("_END_", "_START_"), ("_PTREE", "PTREE"))


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------
def is_end(name: str) -> bool:
    return node_type(name).endswith("end") or "_PTREE" in name


def is_nesting_begin(name: str) -> bool:
    """BEG/BEGIN records opened inside a matching container nest under its last child."""
    return node_type(name).endswith(("beg", "begin"))


def is_open_marker(container: str) -> bool:
    return any(m in container for m in ("BEGIN", "BEG", "START", "PTREE"))


def container_base(container: str) -> str:
    """Prefix shared by a container's members: `ITEM_LIST_BEG_0` -> `ITEM`."""
    container = container.replace("_LIST_BEG_", "_BEG_")
    parts = container.split("_")
    if len(parts) >= 2:
        return "_".join(parts[:-2])
    return container


def prefix_matches_container(name: str, container: str) -> bool:
    return name.startswith(container_base(container))


def end_key_for(name: str, depth: Dict[str, int]) -> Optional[str]:
    """Open container closed by the end record `name`, if it is still tracked."""
    for old, new in _END_KEY_SUBSTITUTIONS:
        key = name.replace(old, new)
        if key in depth:
            return key
    return None


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------
class TreeBuilder:
    def __init__(self) -> None:
        self.stack: List[Entry] = []
        self.depth: Dict[str, int] = {}
        self.output: List[Entry] = []
        self.dropped = 0

    def deepest(self) -> Optional[str]:
        """Tracked container with the greatest depth (first one on ties)."""
        if not self.depth:
            return None
        return max(self.depth.items(), key=lambda kv: kv[1])[0]

    def feed(self, name: str, variables: List[Variable]) -> None:
        if is_begin(name):
            self._begin(name, variables)
        elif is_end(name):
            self._end(name)
        else:
            self._leaf(name, variables)

    def _push(self, node: Entry) -> None:
        self.stack.append(node)
        self.depth[node.name] = len(self.stack)

    def _drop(self, name: str) -> None:
        self.dropped += 1
        log.debug("record %s has no open container, dropped", name)

    def _begin(self, name: str, variables: List[Variable]) -> None:
        node = Entry(name, variables)
        if not self.stack:
            self.output.append(node)
        else:
            top = self.stack[-1]
            deepest = self.deepest()
            if deepest is not None and prefix_matches_container(name, deepest) and is_nesting_begin(name):
                parent = top.children[-1] if top.children else top
                parent.children.append(node)
            else:
                top.children.append(node)
        self._push(node)

    def _end(self, name: str) -> None:
        if not self.stack:
            self._drop(name)
            return
        self.stack[-1].end_terminator = True
        key = end_key_for(name, self.depth)
        self.stack.pop()
        if key is not None:
            del self.depth[key]

    def _leaf(self, name: str, variables: List[Variable]) -> None:
        if not self.depth:
            self.output.append(Entry(name, variables, end_terminator=True))
            return
        item = Entry(name, variables)
        deepest = self.deepest()
        if prefix_matches_container(name, deepest):
            if self.stack:
                self.stack[-1].children.append(item)
            else:
                self._drop(name)
            return

        if not is_open_marker(deepest) and "_PTREE" not in name:
            # implicit close of a container without BEG/START marker
            if not self.stack:
                self._drop(name)
                return
            self.stack.pop()
            self.depth.pop(deepest, None)
            if self.stack:
                self.stack[-1].children.append(item)
            else:
                self._drop(name)
        elif self.stack and self.stack[-1].children:
            self.stack[-1].children[-1].children.append(item)
            self._push(item)
        elif self.stack:
            self.stack[-1].children.append(item)
        else:
            self._drop(name)


def build_tree(records: Iterable[FlatRecord]) -> List[Entry]:
    """Flat, renamed records -> forest of root entries."""
    builder = TreeBuilder()
    for rec in records:
        builder.feed(rec.name, rec.variables)
    if builder.dropped:
        log.debug("tree: %d record(s) dropped", builder.dropped)
    return builder.output
