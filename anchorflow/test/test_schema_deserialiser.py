import json
import warnings

import pytest

from anchorflow.compiler.deserialiser import graph_to_json, json_to_graph, load_graph
from anchorflow.compiler.schema import SchemaError, validate, validate_file


def _graph_json():
    return {
        "name": "vault-program",
        "programName": "vault",
        "nodes": [
            {
                "id": "n1", "type": "account", "name": "Vault", "x": 10, "y": 20,
                "inputs": [],
                "outputs": [{"id": "p1", "name": "vault", "type": "account"}],
            },
            {
                "id": "n2", "kind": "instruction", "name": "Deposit",
                "inputs": [{"id": "p2", "name": "vault", "type": "account"}],
            },
        ],
        "connections": [
            {"id": "c1", "sourceNodeId": "n1", "sourcePortId": "p1",
             "targetNodeId": "n2", "targetPortId": "p2"},
        ],
    }


class TestSchema:

    def test_valid_graph_passes(self):
        validate(_graph_json())

    def test_missing_root_keys(self):
        with pytest.raises(SchemaError, match="connections"):
            validate({"nodes": []})

    def test_top_level_must_be_object(self):
        with pytest.raises(SchemaError):
            validate([])

    def test_node_requires_kind(self):
        data = _graph_json()
        del data["nodes"][0]["type"]
        with pytest.raises(SchemaError, match="type"):
            validate(data)

    def test_duplicate_node_id(self):
        data = _graph_json()
        data["nodes"][1]["id"] = "n1"
        with pytest.raises(SchemaError, match="duplicate node id"):
            validate(data)

    def test_duplicate_port_id_within_node(self):
        data = _graph_json()
        data["nodes"][0]["inputs"] = [{"id": "p1", "name": "x", "type": "data"}]
        with pytest.raises(SchemaError, match="duplicate port id"):
            validate(data)

    def test_duplicate_connection_id(self):
        data = _graph_json()
        data["connections"].append(dict(data["connections"][0]))
        with pytest.raises(SchemaError, match="duplicate connection id"):
            validate(data)

    def test_port_field_types(self):
        data = _graph_json()
        data["nodes"][0]["outputs"][0]["type"] = 3
        with pytest.raises(SchemaError, match="must be a string"):
            validate(data)

    def test_dangling_connection_warns(self):
        data = _graph_json()
        data["connections"][0]["targetNodeId"] = "gone"
        with pytest.warns(UserWarning, match="will be skipped"):
            validate(data)

    def test_dangling_connection_strict(self):
        data = _graph_json()
        data["connections"][0]["sourcePortId"] = "gone"
        with pytest.raises(SchemaError, match="source n1.gone not found"):
            validate(data, strict=True)

    def test_connection_must_start_on_output(self):
        data = _graph_json()
        # p2 is an input port of n2, not an output
        data["connections"][0].update(sourceNodeId="n2", sourcePortId="p2")
        with pytest.raises(SchemaError):
            validate(data, strict=True)

    def test_validate_file(self, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps(_graph_json()), encoding="utf-8")
        assert validate_file(path)["programName"] == "vault"


class TestDeserialiser:

    def test_json_to_graph(self):
        graph = json_to_graph(_graph_json())
        assert graph.name == "vault-program"
        assert [n.name for n in graph.nodes] == ["Vault", "Deposit"]
        assert graph.nodes[0].kind == "account"
        assert graph.nodes[1].kind == "instruction"
        assert graph.nodes[0].outputs[0].type == "account"
        assert graph.connections[0].endpoints() == ("n1", "p1", "n2", "p2")

    def test_serialise_drops_editor_fields(self):
        out = graph_to_json(json_to_graph(_graph_json()), program_name="vault")
        assert "x" not in out["nodes"][0]
        assert out["nodes"][1]["type"] == "instruction"
        assert out["programName"] == "vault"
        assert out["connections"] == _graph_json()["connections"]

    def test_load_graph(self, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps(_graph_json()), encoding="utf-8")
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            graph = load_graph(path)
        assert len(graph.nodes) == 2
        assert len(graph.connections) == 1
