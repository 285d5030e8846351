from __future__ import annotations
import json
import logging
from pathlib import Path

import pytest

from l5cfg import Document, Entry, Variable, VariableType as VT
from l5cfgwf import atomic_write, cfgbin_json_name, json_cfgbin_name, log_append
from l5cfgwf.orchestrator import plan_export, run_export


@pytest.fixture(autouse=True)
def _restore_root_logging():
    # setup_logging() remplace les handlers racine (stdout capturé par pytest)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _write_sample(p: Path, label: str = "Sword") -> bytes:
    doc = Document(entries=[Entry("ITEM_LIST_BEG_0", children=[
        Entry("ITEM_0", [Variable(VT.INT, 1), Variable(VT.STRING, label)]),
    ], end_terminator=True)])
    data = doc.save()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(data)
    return data


def test_api_helpers(tmp_path):
    assert cfgbin_json_name("data/item_config.cfg.bin") == "item_config.cfg.json"
    assert cfgbin_json_name("raw") == "raw.json"
    assert json_cfgbin_name("item_config.cfg.json") == "item_config.cfg.bin"
    assert json_cfgbin_name("other.json") == "other.cfg.bin"
    atomic_write(tmp_path / "a" / "b.bin", b"xyz")
    assert (tmp_path / "a" / "b.bin").read_bytes() == b"xyz"
    log_append(tmp_path / "logs" / "run.log", "hello")
    assert (tmp_path / "logs" / "run.log").read_text(encoding="utf-8").rstrip().endswith("hello")


def test_cli_export_import_roundtrip(tmp_path):
    src = tmp_path / "in" / "item.cfg.bin"
    original = _write_sample(src)
    bogus = tmp_path / "in" / "bogus.cfg.bin"
    bogus.write_bytes(b"\x00" * 64)

    from l5cfgwf.cli.export import main as export_main
    from l5cfgwf.cli.import_json import main as import_main

    assert export_main([str(src), "--out", str(tmp_path / "json")]) == 0
    js = tmp_path / "json" / "item.cfg.json"
    assert json.loads(js.read_text(encoding="utf-8"))["Entries"][0]["Name"] == "ITEM_LIST_BEG_0"

    assert import_main([str(js), "--out", str(tmp_path / "bin")]) == 0
    assert (tmp_path / "bin" / "item.cfg.bin").read_bytes() == original

    assert export_main([str(src), str(bogus), "--out", str(tmp_path / "json2")]) == 1
    assert export_main(["--out", str(tmp_path / "json3")]) == 2


def test_cli_import_encoding_option(tmp_path):
    js = tmp_path / "t.json"
    js.write_text(json.dumps({"Entries": [{"Name": "T_0", "Variables": [{"Type": "String", "Value": "剣"}]}]},
                             ensure_ascii=False), encoding="utf-8")
    from l5cfgwf.cli.import_json import main as import_main
    assert import_main([str(js), "--out", str(tmp_path / "o"), "--encoding", "shift_jis"]) == 0
    data = (tmp_path / "o" / "t.cfg.bin").read_bytes()
    assert data[-10] == 0
    assert Document.open(data).entries[0].variables[0].value == "剣"


def test_cli_info(tmp_path, capsys):
    src = tmp_path / "item.cfg.bin"
    _write_sample(src)
    from l5cfgwf.cli.info import main as info_main

    assert info_main([str(src)]) == 0
    assert "Total Entries: 3" in capsys.readouterr().out

    assert info_main([str(src), "--json"]) == 0
    assert json.loads(capsys.readouterr().out)["root_entries"] == 1

    assert info_main([str(src), "--find", "sword", "--json"]) == 0
    hits = json.loads(capsys.readouterr().out)
    assert [h["Name"] for h in hits] == ["ITEM_0"]

    assert info_main([str(src), "--find", "nothing"]) == 2
    assert info_main([str(tmp_path / "missing.cfg.bin")]) == 1


def test_orchestrator_plan_and_run(tmp_path):
    src_dir = tmp_path / "game"
    _write_sample(src_dir / "item.cfg.bin")
    _write_sample(src_dir / "sub" / "shop.cfg.bin", label="Shield")
    (src_dir / "notes.bin").write_bytes(b"not a cfg")
    out_dir = tmp_path / "export"
    stats = tmp_path / "artifacts" / "run.jsonl"

    mani_path = plan_export(str(src_dir), str(out_dir))
    mani = json.loads(Path(mani_path).read_text(encoding="utf-8"))
    assert mani["kind"] == "l5cfg_export_manifest_v1"
    assert sorted(it["id"] for it in mani["items"]) == ["item.cfg.bin", "sub/shop.cfg.bin"]

    summary = run_export(mani_path, resume=True, stats_jsonl=str(stats))
    assert summary == {"total": 2, "done": 2, "errors": 0}
    assert (out_dir / "sub" / "shop.cfg.json").exists()
    events = [json.loads(line) for line in stats.read_text(encoding="utf-8").splitlines()]
    assert [e["event"] for e in events] == ["export_done", "export_done"]
    mani = json.loads(Path(mani_path).read_text(encoding="utf-8"))
    assert all(it["state"] == "done" and len(it["sha256"]) == 64 for it in mani["items"])
    assert not list(out_dir.rglob("*.lock"))

    # resume : rien n'est réécrit
    assert run_export(mani_path, resume=True) == {"total": 2, "done": 2, "errors": 0}


def test_orchestrator_records_errors(tmp_path):
    src_dir = tmp_path / "game"
    p = src_dir / "item.cfg.bin"
    data = bytearray(_write_sample(p))
    mani_path = plan_export(str(src_dir), str(tmp_path / "export"), manifest_path=str(tmp_path / "m.json"))
    data[4:8] = (8).to_bytes(4, "little")  # StringTableOffset < 16
    p.write_bytes(bytes(data))

    errlog = tmp_path / "logs" / "errors.log"
    assert run_export(mani_path, resume=False, error_log=str(errlog)) == {"total": 1, "done": 0, "errors": 1}
    (it,) = json.loads((tmp_path / "m.json").read_text(encoding="utf-8"))["items"]
    assert it["state"] == "error" and it["error"].startswith("InvalidHeaderField")
    assert "item.cfg.bin: InvalidHeaderField" in errlog.read_text(encoding="utf-8")


def test_orchestrator_rejects_empty_and_foreign_manifest(tmp_path):
    (tmp_path / "empty").mkdir()
    with pytest.raises(RuntimeError):
        plan_export(str(tmp_path / "empty"), str(tmp_path / "out"))
    foreign = tmp_path / "foreign.json"
    foreign.write_text(json.dumps({"kind": "other", "items": []}), encoding="utf-8")
    with pytest.raises(ValueError):
        run_export(str(foreign))
    with pytest.raises(FileNotFoundError):
        run_export(str(tmp_path / "missing.json"))
