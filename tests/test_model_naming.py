from __future__ import annotations
import pytest

from l5cfg import Entry, Variable, VariableType as VT
from l5cfg.naming import (
    crc32_name, end_name_for, strip_instance, strip_marker, unknown_hash, unknown_name,
)


@pytest.mark.parametrize("base,end", [
    ("GROUP_LIST_BEG", "GROUP_LIST_END"),
    ("QUEST_BEGIN", "QUEST_END"),
    ("TALK_START", "TALK_END"),
    ("PTREE", "_PTREE"),
    ("ITEM_INFO", "ITEM_INFO"),
    ("RESTART_LIST_BEG", "RESTART_LIST_END"),
    ("RESTART_INFO", "RESTART_INFO"),
    ("BEGINNER_DATA", "BEGINNER_DATA"),
])
def test_end_names(base, end):
    assert end_name_for(base) == end


def test_instance_and_marker():
    assert strip_instance("FOO_INFO_3") == "FOO_INFO"
    assert strip_instance("SOLO") == "SOLO"
    assert strip_marker("GROUP_LIST_BEG") == "GROUP_LIST"
    assert strip_marker("ITEM_INFO") == "ITEM_INFO"
    e = Entry("GROUP_LIST_BEG_0")
    assert (e.base_name, e.group_name, e.end_name) == ("GROUP_LIST_BEG", "GROUP_LIST", "GROUP_LIST_END")


def test_unknown_placeholders():
    assert unknown_name(0xAB) == "UNKNOWN_000000AB"
    assert unknown_hash("UNKNOWN_000000AB") == 0xAB
    assert unknown_hash("UNKNOWN_00ab") is None
    assert crc32_name("ITEM") == crc32_name("ITEM", "cp932")


def test_variable_types():
    assert VT.from_label("float") is VT.FLOAT
    assert VT.from_label("Bool") is VT.UNKNOWN
    assert VT.STRING.label == "String"
    v = Variable(VT.FLOAT, 0.1)
    assert v.value != 0.1 and abs(v.value - 0.1) < 1e-8
    assert v.to_dict(4) == {"Name": "Variable_4", "Type": "Float", "Value": 0.1}
    assert Variable(2, 1).type is VT.FLOAT


def test_count_rules():
    leaf = Entry("ITEM_INFO_0", end_terminator=True)
    assert leaf.count() == 1 and not leaf.has_end_record()
    lst = Entry("A_LIST_BEG_0", children=[Entry("A_0"), Entry("A_1")], end_terminator=True)
    assert lst.count() == 4
    lst.end_terminator = False
    assert lst.count() == 3
    restart = Entry("RESTART_INFO_0", end_terminator=True)
    assert restart.count() == 1 and restart.unique_keys() == ["RESTART_INFO"]


def test_entry_dict_roundtrip():
    e = Entry("A_LIST_BEG_0", children=[Entry("A_0", [Variable(VT.STRING, "x", "label")])],
              end_terminator=True)
    assert Entry.from_dict(e.to_dict()).children[0].variables == [Variable(VT.STRING, "x", "label")]
    assert Entry.from_dict(e.to_dict()).to_dict() == e.to_dict()
