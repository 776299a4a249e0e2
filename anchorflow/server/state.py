"""
GraphState — the in-memory editing session behind the HTTP API.

Holds the current Graph snapshot and an undo/redo history of snapshots. Every
edit builds a new immutable Graph, so any snapshot handed to the analyzer or
the generator stays valid however the session changes afterwards.

New connections are gated by the connection validator; connections already
stored are never re-validated.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

from anchorflow.core.ConnectionValidator import ValidationResult, validate_connection
from anchorflow.core.GraphPrimitives import Connection, Graph, Node
from anchorflow.core.Types import NodeKind
from anchorflow.noderegistry.ModuleCatalog import create_start_node, new_id
from anchorflow.server.settings import get_settings

logger = logging.getLogger(__name__)


class GraphEditError(ValueError):
    """Raised for an edit that refers to unknown ids or breaks an editor rule."""


@dataclass(frozen=True)
class HistoryEntry:
    graph: Graph
    action: str
    timestamp: float


class GraphState:
    """Current graph plus a bounded linear history."""

    def __init__(self, graph: Optional[Graph] = None, history_limit: int = 100) -> None:
        self.history_limit = max(1, history_limit)
        self.reset(graph)

    # ── History ─────────────────────────────────────────────────────────────

    @property
    def graph(self) -> Graph:
        return self._history[self._index].graph

    @property
    def history(self) -> List[HistoryEntry]:
        return list(self._history)

    def _commit(self, graph: Graph, action: str) -> Graph:
        # An edit after undo drops the redo tail
        del self._history[self._index + 1:]
        self._history.append(HistoryEntry(graph, action, time.time()))
        overflow = len(self._history) - self.history_limit
        if overflow > 0:
            del self._history[:overflow]
        self._index = len(self._history) - 1
        logger.debug(f"History: '{action}' ({len(graph.nodes)} nodes, {len(graph.connections)} connections)")
        return graph

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._history) - 1

    def undo(self) -> Graph:
        if self.can_undo():
            self._index -= 1
        return self.graph

    def redo(self) -> Graph:
        if self.can_redo():
            self._index += 1
        return self.graph

    def reset(self, graph: Optional[Graph] = None) -> Graph:
        self._history: List[HistoryEntry] = [HistoryEntry(graph or Graph(), "reset", time.time())]
        self._index = 0
        return self.graph

    # ── Lookups ─────────────────────────────────────────────────────────────

    def _require_node(self, node_id: str) -> Node:
        node = self.graph.get_node(node_id)
        if node is None:
            raise GraphEditError(f"Node '{node_id}' not found")
        return node

    # ── Node edits ──────────────────────────────────────────────────────────

    def add_node(self, node: Node) -> Node:
        if self.graph.get_node(node.id) is not None:
            raise GraphEditError(f"Node '{node.id}' already exists")
        self._commit(self.graph.with_nodes(self.graph.nodes + (node,)), f"add node {node.name}")
        return node

    def add_start_node(self) -> Node:
        if any(n.kind == NodeKind.START.value for n in self.graph.nodes):
            raise GraphEditError("Only one start node is allowed per program")
        return self.add_node(create_start_node())

    def remove_node(self, node_id: str) -> Node:
        node = self._require_node(node_id)
        graph = Graph(
            nodes=tuple(n for n in self.graph.nodes if n.id != node_id),
            connections=tuple(c for c in self.graph.connections if not c.touches(node_id)),
            name=self.graph.name,
        )
        self._commit(graph, f"remove node {node.name}")
        return node

    # ── Connection edits ────────────────────────────────────────────────────

    def connect(
        self,
        source_node_id: str,
        source_port_id: str,
        target_node_id: str,
        target_port_id: str,
    ) -> Tuple[ValidationResult, Optional[Connection]]:
        """Validate and, when accepted, store a new connection."""
        source = self._require_node(source_node_id)
        target = self._require_node(target_node_id)
        source_port = source.get_output(source_port_id)
        if source_port is None:
            raise GraphEditError(f"Output port '{source_port_id}' not found on node '{source_node_id}'")
        target_port = target.get_input(target_port_id)
        if target_port is None:
            raise GraphEditError(f"Input port '{target_port_id}' not found on node '{target_node_id}'")

        result = validate_connection(source, source_port, target, target_port, self.graph.connections)
        if not result.is_valid:
            logger.info(f"Rejected connection {source.name} -> {target.name}: {result.error}")
            return result, None

        conn = Connection(new_id(), source.id, source_port.id, target.id, target_port.id)
        self._commit(
            self.graph.with_connections(self.graph.connections + (conn,)),
            f"connect {source.name} -> {target.name}",
        )
        return result, conn

    def disconnect(self, connection_id: str) -> Connection:
        conn = next((c for c in self.graph.connections if c.id == connection_id), None)
        if conn is None:
            raise GraphEditError(f"Connection '{connection_id}' not found")
        self._commit(
            self.graph.with_connections(c for c in self.graph.connections if c.id != connection_id),
            f"disconnect {connection_id}",
        )
        return conn


# Shared session used by the HTTP routes
graph_state = GraphState(history_limit=get_settings().history_limit)
