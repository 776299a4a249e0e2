from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from .GraphPrimitives import Connection, Node, Port
from .TypeCompatibility import are_types_compatible


class RejectionReason(str, Enum):
    SELF_CONNECTION = "self_connection"
    INCOMPATIBLE_TYPES = "incompatible_types"
    DUPLICATE_CONNECTION = "duplicate_connection"
    INPUT_ALREADY_BOUND = "input_already_bound"


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None
    reason: Optional[RejectionReason] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"isValid": self.is_valid}
        if self.error is not None:
            out["error"] = self.error
            out["reason"] = self.reason.value
        return out


ACCEPTED = ValidationResult(True)

_SELF_CONNECTION = ValidationResult(False, "Cannot connect node to itself", RejectionReason.SELF_CONNECTION)
_DUPLICATE = ValidationResult(False, "Connection already exists", RejectionReason.DUPLICATE_CONNECTION)
_INPUT_BOUND = ValidationResult(False, "Port already has an input connection", RejectionReason.INPUT_ALREADY_BOUND)


def validate_connection(
    source_node: Node,
    source_port: Port,
    target_node: Node,
    target_port: Port,
    existing_connections: Iterable[Connection],
) -> ValidationResult:
    """
    Decide whether a proposed edge may be added to the graph.

    Rules are checked in order and the first failure wins:
      1. no self connection
      2. port types must be compatible
      3. no duplicate of an existing (node, port, node, port) tuple
      4. an input port accepts at most one connection

    Runs on every drag frame in the editor, so it only scans and never builds
    intermediate collections.
    """
    if source_node.id == target_node.id:
        return _SELF_CONNECTION

    if not are_types_compatible(source_port.type, target_port.type):
        return ValidationResult(
            False,
            f"Incompatible types: {source_port.type} -> {target_port.type}",
            RejectionReason.INCOMPATIBLE_TYPES,
        )

    # The existing collection may be a one-shot iterable, so rules 3 and 4
    # are answered in a single pass. Rule 3 still takes precedence.
    input_bound = False
    for conn in existing_connections:
        if conn.target_node_id != target_node.id or conn.target_port_id != target_port.id:
            continue
        if conn.source_node_id == source_node.id and conn.source_port_id == source_port.id:
            return _DUPLICATE
        input_bound = True

    if input_bound:
        return _INPUT_BOUND

    return ACCEPTED
