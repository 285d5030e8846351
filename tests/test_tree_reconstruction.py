from __future__ import annotations
import pytest

from l5cfg import Document, Entry, Variable, VariableType as VT
from l5cfg.bitstream import FlatRecord, TreeBuilder, build_tree
from l5cfg.bitstream.tree import (
    container_base, end_key_for, is_begin, is_end, node_type, prefix_matches_container,
)

from cfgbin_synth import I, S, container, record


@pytest.mark.parametrize("name,nt,begin,end", [
    ("GROUP_LIST_BEG_0", "beg", True, False),
    ("QUEST_BEGIN_2", "begin", True, False),
    ("TALK_START_0", "start", True, False),
    ("GROUP_LIST_END_0", "end", False, True),
    ("PTREE_0", "ptree", True, False),
    ("_PTREE_0", "ptree", False, True),
    ("ITEM_INFO_3", "info", False, False),
    ("SOLO", "", False, False),
])
def test_predicates(name, nt, begin, end):
    assert node_type(name) == nt
    assert is_begin(name) is begin
    assert is_end(name) is end


def test_container_base_and_prefix():
    assert container_base("ITEM_LIST_BEG_0") == "ITEM"
    assert container_base("QUEST_BEGIN_1") == "QUEST"
    assert container_base("PTREE_0") == ""
    assert prefix_matches_container("ITEM_3", "ITEM_LIST_BEG_0")
    assert not prefix_matches_container("CHARA_0", "ITEM_LIST_BEG_0")


def test_end_key_resolution():
    depth = {"A_BEG_0": 1, "B_START_0": 2, "PTREE_0": 3}
    assert end_key_for("A_END_0", depth) == "A_BEG_0"
    assert end_key_for("B_END_0", depth) == "B_START_0"
    assert end_key_for("_PTREE_0", depth) == "PTREE_0"
    assert end_key_for("C_END_0", depth) is None


def test_group_list_scenario():
    buf = container([record("GROUP_LIST_BEG"), record("GROUP_LIST_END")],
                    keys=["GROUP_LIST_BEG", "GROUP_LIST_END"])
    doc = Document.open(buf)
    assert len(doc.entries) == 1
    root = doc.entries[0]
    assert root.group_name == "GROUP_LIST"
    assert root.name == "GROUP_LIST_BEG_0"
    assert root.end_terminator is True
    assert root.children == []


def test_scalar_leaf_at_root():
    buf = container([record("ITEM_INFO", [(I, 5), (S, 0)])], strings=["Sword"], keys=["ITEM_INFO"])
    doc = Document.open(buf)
    assert len(doc.entries) == 1
    e = doc.entries[0]
    assert e.end_terminator is True
    assert e.variables == [Variable(VT.INT, 5), Variable(VT.STRING, "Sword")]


def test_list_with_leaves_and_nested_begin():
    recs = [
        FlatRecord("ROOT_BEG_0"),
        FlatRecord("ROOT_ITEM_BEG_0"),
        FlatRecord("ROOT_ITEM_VAL_0", [Variable(VT.INT, 1)]),
        FlatRecord("ROOT_ITEM_END_0"),
        FlatRecord("ROOT_END_0"),
    ]
    (root,) = build_tree(recs)
    assert root.name == "ROOT_BEG_0" and root.end_terminator
    (child,) = root.children
    assert child.name == "ROOT_ITEM_BEG_0" and child.end_terminator
    assert [c.name for c in child.children] == ["ROOT_ITEM_VAL_0"]


def test_implicit_close_for_container_without_marker():
    b = TreeBuilder()
    b.feed("A_LIST_BEG_0", [])
    b.feed("ROW_X_0", [])          # pas de préfixe A, conteneur BEG : sous le sommet
    b.feed("ROW_Y_0", [])          # le sommet a un enfant : imbriqué + empilé
    assert [c.name for c in b.output[0].children] == ["ROW_X_0"]
    assert [c.name for c in b.output[0].children[0].children] == ["ROW_Y_0"]
    assert b.deepest() == "ROW_Y_0"
    b.feed("OTHER_0", [])          # ROW_Y_0 n'a pas de marqueur : fermeture implicite
    assert "ROW_Y_0" not in b.depth
    assert [c.name for c in b.output[0].children] == ["ROW_X_0", "OTHER_0"]


def test_orphan_end_is_dropped():
    b = TreeBuilder()
    b.feed("A_END_0", [])
    assert b.output == [] and b.dropped == 1


def test_deepest_first_on_ties():
    b = TreeBuilder()
    b.depth = {"A_BEG_0": 1, "B_BEG_0": 1}
    assert b.deepest() == "A_BEG_0"
