"""
AnchorFlow Compiler — Graph JSON Schema + Validator
===================================================
Defines the serialisation format the editor exports and provides a
lightweight structural validator that runs without any third-party JSON
Schema library.

Canonical JSON format
---------------------

    {
      "name":        "vault-program",            // human label (str, optional)
      "programName": "vault",                    // crate name (str, optional)
      "nodes": [
        {
          "id":      "n1",                       // unique within this graph (str, required)
          "type":    "account",                  // node kind (str, required; "kind" accepted)
          "name":    "Vault",                    // display name (str, required)
          "inputs":  [],                         // ports (list, optional)
          "outputs": [ {"id": "p1", "name": "vault", "type": "account"} ]
        }
      ],
      "connections": [
        {
          "id":           "c1",                  // unique (str, required)
          "sourceNodeId": "n1",  "sourcePortId": "p1",
          "targetNodeId": "n2",  "targetPortId": "p2"
        }
      ]
    }

Editor-only fields (x, y, width, height, color, ...) are allowed and ignored.

Dangling connection endpoints are legal: the analyzer and the generator skip
them. The validator warns about them, or raises when strict=True.
"""

from __future__ import annotations

import json
import warnings
from pathlib import Path
from typing import Any, Dict, List, Union

CONNECTION_FIELDS = ("id", "sourceNodeId", "sourcePortId", "targetNodeId", "targetPortId")
PORT_FIELDS = ("id", "name", "type")


# ── Validation helpers ────────────────────────────────────────────────────────

class SchemaError(ValueError):
    """Raised when graph JSON fails structural validation."""


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise SchemaError(message)


def _require_keys(obj: Dict, keys, context: str) -> None:
    for key in keys:
        _require(key in obj, f"{context}: missing required field '{key}'")


def node_kind(node: Dict[str, Any]) -> Any:
    return node.get("type", node.get("kind"))


def _validate_ports(ports: Any, ctx: str, seen: set) -> Dict[str, str]:
    _require(isinstance(ports, list), f"{ctx} must be a list")
    port_ids: Dict[str, str] = {}
    for i, port in enumerate(ports):
        pctx = f"{ctx}[{i}]"
        _require(isinstance(port, dict), f"{pctx}: each port must be a JSON object")
        _require_keys(port, PORT_FIELDS, pctx)
        for key in PORT_FIELDS:
            _require(isinstance(port[key], str), f"{pctx}.{key} must be a string")
        _require(port["id"] not in seen, f"{pctx}: duplicate port id '{port['id']}'")
        seen.add(port["id"])
        port_ids[port["id"]] = port["type"]
    return port_ids


# ── Public validator ─────────────────────────────────────────────────────────

def validate(data: Dict[str, Any], *, strict: bool = False) -> None:
    """
    Validate a parsed graph JSON dict.

    Args:
        data:   A pre-parsed dict (result of json.load / json.loads).
        strict: When True, raise SchemaError for connections whose endpoints
                do not resolve. When False (default), they produce a warning.

    Raises:
        SchemaError: On any structural violation.
    """
    _require(isinstance(data, dict), "graph JSON must be a JSON object at the top level")
    _require_keys(data, ["nodes", "connections"], "graph root")

    _require(isinstance(data["nodes"], list), "nodes must be a list")
    _require(isinstance(data["connections"], list), "connections must be a list")
    for key in ("name", "programName"):
        if key in data:
            _require(isinstance(data[key], str), f"{key} must be a string")

    # ── Validate nodes ──────────────────────────────────────────────────────

    outputs_by_node: Dict[str, Dict[str, str]] = {}
    inputs_by_node: Dict[str, Dict[str, str]] = {}

    for i, node in enumerate(data["nodes"]):
        ctx = f"nodes[{i}]"
        _require(isinstance(node, dict), f"{ctx}: each node must be a JSON object")
        _require_keys(node, ["id", "name"], ctx)
        _require(node_kind(node) is not None, f"{ctx}: missing required field 'type'")
        _require(isinstance(node["id"], str), f"{ctx}.id must be a string")
        _require(isinstance(node["name"], str), f"{ctx}.name must be a string")
        _require(isinstance(node_kind(node), str), f"{ctx}.type must be a string")
        _require(
            node["id"] not in outputs_by_node,
            f"{ctx}: duplicate node id '{node['id']}'",
        )

        seen_ports: set = set()
        inputs_by_node[node["id"]] = _validate_ports(node.get("inputs", []), f"{ctx}.inputs", seen_ports)
        outputs_by_node[node["id"]] = _validate_ports(node.get("outputs", []), f"{ctx}.outputs", seen_ports)

    # ── Validate connections ────────────────────────────────────────────────

    connection_ids: set = set()

    for i, conn in enumerate(data["connections"]):
        ctx = f"connections[{i}]"
        _require(isinstance(conn, dict), f"{ctx}: each connection must be a JSON object")
        _require_keys(conn, CONNECTION_FIELDS, ctx)

        for field in CONNECTION_FIELDS:
            _require(isinstance(conn[field], str), f"{ctx}.{field} must be a string")

        _require(conn["id"] not in connection_ids, f"{ctx}: duplicate connection id '{conn['id']}'")
        connection_ids.add(conn["id"])

        problems: List[str] = []
        if conn["sourcePortId"] not in outputs_by_node.get(conn["sourceNodeId"], {}):
            problems.append(f"source {conn['sourceNodeId']}.{conn['sourcePortId']} not found")
        if conn["targetPortId"] not in inputs_by_node.get(conn["targetNodeId"], {}):
            problems.append(f"target {conn['targetNodeId']}.{conn['targetPortId']} not found")

        if problems:
            msg = f"{ctx}: " + "; ".join(problems)
            if strict:
                raise SchemaError(msg)
            warnings.warn(msg + " (connection will be skipped)", stacklevel=2)


def validate_file(path: Union[str, Path], *, strict: bool = False) -> Dict[str, Any]:
    """
    Load and validate a graph JSON file.

    Returns:
        The parsed dict on success.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        SchemaError: If the graph structure is invalid.
    """
    path = Path(path)
    with path.open(encoding="utf-8") as fh:
        data = json.load(fh)
    validate(data, strict=strict)
    return data


__all__ = ["SchemaError", "validate", "validate_file"]
