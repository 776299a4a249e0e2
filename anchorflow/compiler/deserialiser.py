"""
AnchorFlow Compiler — JSON Deserialiser
=======================================
Converts the editor's graph JSON (see schema.py) into an immutable Graph
snapshot and back.

    graph.json  →  [deserialiser.json_to_graph]  →  Graph
    Graph       →  [compiler.generate]           →  GeneratedArtifact

The deserialiser trusts its input to have passed schema.validate(); it does
not re-check structure. Editor-only fields are dropped.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from anchorflow.core.GraphPrimitives import Connection, Graph, Node, Port

from .schema import node_kind, validate_file


def _ports(raw: List[Dict[str, Any]]) -> List[Port]:
    return [Port(id=p["id"], name=p["name"], type=p["type"]) for p in raw]


def json_to_node(raw: Dict[str, Any]) -> Node:
    return Node(
        id=raw["id"],
        kind=node_kind(raw),
        name=raw["name"],
        inputs=_ports(raw.get("inputs", [])),
        outputs=_ports(raw.get("outputs", [])),
    )


def json_to_connection(raw: Dict[str, Any]) -> Connection:
    return Connection(
        id=raw["id"],
        source_node_id=raw["sourceNodeId"],
        source_port_id=raw["sourcePortId"],
        target_node_id=raw["targetNodeId"],
        target_port_id=raw["targetPortId"],
    )


def json_to_graph(data: Dict[str, Any]) -> Graph:
    """Build a Graph snapshot from a validated graph JSON dict."""
    return Graph(
        nodes=[json_to_node(n) for n in data.get("nodes", [])],
        connections=[json_to_connection(c) for c in data.get("connections", [])],
        name=data.get("name", "untitled"),
    )


def load_graph(path: Union[str, Path], *, strict: bool = False) -> Graph:
    return json_to_graph(validate_file(path, strict=strict))


# ── Serialisation ────────────────────────────────────────────────────────────

def port_to_json(port: Port) -> Dict[str, Any]:
    return {"id": port.id, "name": port.name, "type": port.type}


def node_to_json(node: Node) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": node.kind,
        "name": node.name,
        "inputs": [port_to_json(p) for p in node.inputs],
        "outputs": [port_to_json(p) for p in node.outputs],
    }


def connection_to_json(conn: Connection) -> Dict[str, Any]:
    return {
        "id": conn.id,
        "sourceNodeId": conn.source_node_id,
        "sourcePortId": conn.source_port_id,
        "targetNodeId": conn.target_node_id,
        "targetPortId": conn.target_port_id,
    }


def graph_to_json(graph: Graph, program_name: Optional[str] = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "name": graph.name,
        "nodes": [node_to_json(n) for n in graph.nodes],
        "connections": [connection_to_json(c) for c in graph.connections],
    }
    if program_name:
        data["programName"] = program_name
    return data


__all__ = ["json_to_graph", "load_graph", "graph_to_json", "node_to_json", "connection_to_json"]
