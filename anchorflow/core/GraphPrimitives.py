from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, NamedTuple, Optional, Sequence, Tuple

from .Types import NodeKind, type_name


@dataclass(frozen=True)
class Port:
    id: str
    name: str
    type: str

    def __post_init__(self):
        # Enum members are stored as their plain string value
        object.__setattr__(self, "type", type_name(self.type))

    def __repr__(self):
        return f"Port({self.id}:{self.name}<{self.type}>)"


@dataclass(frozen=True)
class Node:
    id: str
    kind: str
    name: str
    inputs: Tuple[Port, ...] = ()
    outputs: Tuple[Port, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "kind", type_name(self.kind))
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "outputs", tuple(self.outputs))

    def is_account(self) -> bool:
        return NodeKind.is_account(self.kind)

    def get_input(self, port_id: str) -> Optional[Port]:
        return next((p for p in self.inputs if p.id == port_id), None)

    def get_output(self, port_id: str) -> Optional[Port]:
        return next((p for p in self.outputs if p.id == port_id), None)

    def __repr__(self):
        return f"Node({self.id}:{self.name}<{self.kind}>)"


# Connections are weak references by id; nothing guarantees the endpoints exist.
class Connection(NamedTuple):
    id: str
    source_node_id: str
    source_port_id: str
    target_node_id: str
    target_port_id: str

    def endpoints(self) -> Tuple[str, str, str, str]:
        return (self.source_node_id, self.source_port_id, self.target_node_id, self.target_port_id)

    def touches(self, node_id: str) -> bool:
        return self.source_node_id == node_id or self.target_node_id == node_id

    def __repr__(self):
        return (f"Connection({self.source_node_id}.{self.source_port_id} -> "
                f"{self.target_node_id}.{self.target_port_id})")


class ResolvedConnection(NamedTuple):
    connection: Connection
    source_node: Node
    source_port: Port
    target_node: Node
    target_port: Port


@dataclass(frozen=True)
class Graph:
    """Immutable snapshot of the editor graph: the unit every core call receives."""
    nodes: Tuple[Node, ...] = ()
    connections: Tuple[Connection, ...] = ()
    name: str = "untitled"

    def __post_init__(self):
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "connections", tuple(self.connections))

    def get_node(self, node_id: str) -> Optional[Node]:
        return next((n for n in self.nodes if n.id == node_id), None)

    def with_nodes(self, nodes: Iterable[Node]) -> "Graph":
        return Graph(tuple(nodes), self.connections, self.name)

    def with_connections(self, connections: Iterable[Connection]) -> "Graph":
        return Graph(self.nodes, tuple(connections), self.name)


def index_nodes(nodes: Iterable[Node]) -> Dict[str, Node]:
    # Later duplicates never shadow the first node with a given id
    index: Dict[str, Node] = {}
    for node in nodes:
        index.setdefault(node.id, node)
    return index


def resolve_connection(node_index: Dict[str, Node], conn: Connection) -> Optional[ResolvedConnection]:
    """
    Resolve all four endpoint ids of a connection.

    Returns None when any endpoint is dangling (unknown node, or a port id
    that the node does not own on the expected side).
    """
    source = node_index.get(conn.source_node_id)
    target = node_index.get(conn.target_node_id)
    if source is None or target is None:
        return None
    source_port = source.get_output(conn.source_port_id)
    target_port = target.get_input(conn.target_port_id)
    if source_port is None or target_port is None:
        return None
    return ResolvedConnection(conn, source, source_port, target, target_port)


def resolve_connections(nodes: Sequence[Node], connections: Iterable[Connection]) -> Iterator[ResolvedConnection]:
    """Yield the resolvable connections in insertion order, skipping dangling ones."""
    node_index = index_nodes(nodes)
    for conn in connections:
        resolved = resolve_connection(node_index, conn)
        if resolved is not None:
            yield resolved
