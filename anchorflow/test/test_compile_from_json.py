import json

import pytest

from anchorflow.compile_from_json import main
from anchorflow.server import settings as settings_module

GRAPH = {
    "name": "vault-program",
    "programName": "vault",
    "nodes": [
        {"id": "n1", "type": "account", "name": "Vault",
         "outputs": [{"id": "p1", "name": "vault", "type": "account"}]},
        {"id": "n2", "type": "instruction", "name": "Deposit",
         "inputs": [{"id": "p2", "name": "vault", "type": "account"}]},
    ],
    "connections": [
        {"id": "c1", "sourceNodeId": "n1", "sourcePortId": "p1",
         "targetNodeId": "n2", "targetPortId": "p2"},
    ],
}


@pytest.fixture
def graph_file(tmp_path):
    path = tmp_path / "vault.json"
    path.write_text(json.dumps(GRAPH), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def fresh_settings():
    settings_module.reset_settings()
    yield
    settings_module.reset_settings()


class TestCompileFromJson:

    def test_writes_workspace(self, graph_file, tmp_path):
        out = tmp_path / "out"
        assert main([str(graph_file), "--out", str(out)]) == 0
        assert (out / "Anchor.toml").exists()
        assert (out / "programs/vault/Cargo.toml").exists()
        assert "pub mod deposit;" in (out / "programs/vault/src/lib.rs").read_text()
        assert (out / "programs/vault/src/deposit.rs").exists()
        assert (out / "tests/vault.ts").exists()

    def test_program_name_flag_overrides_graph(self, graph_file, tmp_path):
        out = tmp_path / "out"
        assert main([str(graph_file), "--out", str(out), "--program-name", "bank"]) == 0
        assert (out / "programs/bank/src/lib.rs").exists()

    def test_print(self, graph_file, capsys):
        assert main([str(graph_file), "--print"]) == 0
        captured = capsys.readouterr()
        assert captured.out.startswith("use anchor_lang::prelude::*;")
        assert "[compile_from_json]" in captured.err

    def test_analyze(self, graph_file, capsys):
        assert main([str(graph_file), "--analyze"]) == 0
        analysis = json.loads(capsys.readouterr().out)
        assert analysis["dependencies"]["n2"] == ["n1"]
        assert analysis["executionOrder"] == ["n1", "n2"]

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.json")]) == 1
        assert "[error] File not found" in capsys.readouterr().err

    def test_invalid_json(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        assert main([str(path)]) == 1
        assert "[error] Invalid JSON" in capsys.readouterr().err

    def test_strict_rejects_dangling(self, tmp_path, capsys):
        data = json.loads(json.dumps(GRAPH))
        data["connections"][0]["targetNodeId"] = "gone"
        path = tmp_path / "dangling.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        assert main([str(path), "--strict", "--out", str(tmp_path / "out")]) == 1
        assert "Schema validation failed" in capsys.readouterr().err

    def test_size_cap(self, graph_file, monkeypatch, capsys):
        monkeypatch.setenv("ANCHORFLOW_MAX_CONNECTIONS", "0")
        assert main([str(graph_file), "--analyze"]) == 1
        assert "connections" in capsys.readouterr().err

    def test_path_like_names_stay_under_out(self, tmp_path):
        data = json.loads(json.dumps(GRAPH))
        data["programName"] = "../../evil"
        data["nodes"][1]["name"] = "../../../../../escaped"
        path = tmp_path / "graphs" / "evil.json"
        path.parent.mkdir()
        path.write_text(json.dumps(data), encoding="utf-8")
        out = tmp_path / "a" / "b" / "out"
        assert main([str(path), "--out", str(out)]) == 0
        assert (out / "programs/evil/src/lib.rs").exists()
        assert (out / "programs/evil/src/escaped.rs").exists()
        assert (out / "tests/evil.ts").exists()
        written = {p for p in tmp_path.rglob("*") if p.is_file()}
        assert written - set(out.rglob("*")) == {path}

    def test_unusable_program_name_falls_back(self, graph_file, tmp_path):
        out = tmp_path / "out"
        assert main([str(graph_file), "--out", str(out), "--program-name", "../.."]) == 0
        assert (out / "programs/my_program/src/lib.rs").exists()

    def test_refuses_paths_outside_out(self, graph_file, tmp_path, monkeypatch, capsys):
        from anchorflow import compile_from_json
        from anchorflow.compiler.ir import GeneratedArtifact

        monkeypatch.setattr(
            compile_from_json, "generate",
            lambda *args, **kwargs: GeneratedArtifact(program_name="../../escape", lib="// lib"),
        )
        out = tmp_path / "out"
        assert main([str(graph_file), "--out", str(out)]) == 1
        assert "[error] Refusing to write outside" in capsys.readouterr().err
        assert not (tmp_path / "escape").exists()
        assert not out.exists()
