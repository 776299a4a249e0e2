"""
Program flow analysis
=====================
Derives read-only metadata from a graph snapshot:

    dependencies   node id → ids of the nodes feeding it (connection order)
    executionOrder dependency-first linearisation of every node id
    cycles         each cycle found, as the path suffix that closes it
    isolatedNodes  nodes that no connection touches

Cycles are data, not errors. The ordering traversal refuses to re-enter a
node that is still being visited, so a cyclic subgraph yields a partial order
instead of an exception. Roots are taken in node input order and
dependencies in connection insertion order, which makes the truncated part of
the order deterministic: the first node of a cycle reached from a root is
emitted after the rest of that cycle.

Connections whose endpoints do not resolve to a node and one of its ports are
ignored everywhere.

Both traversals use an explicit stack so that long dependency chains cannot
hit the interpreter recursion limit.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Sequence, Set, Tuple

from .GraphPrimitives import Connection, Node, resolve_connections

logger = logging.getLogger(__name__)


@dataclass
class FlowAnalysis:
    dependencies: Dict[str, List[str]] = field(default_factory=dict)
    execution_order: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    isolated_nodes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dependencies": {k: list(v) for k, v in self.dependencies.items()},
            "executionOrder": list(self.execution_order),
            "cycles": [list(c) for c in self.cycles],
            "isolatedNodes": list(self.isolated_nodes),
        }


# ── Dependency map ───────────────────────────────────────────────────────────

def build_dependencies(nodes: Sequence[Node], connections: Sequence[Connection]) -> Dict[str, List[str]]:
    dependencies: Dict[str, List[str]] = {node.id: [] for node in nodes}
    for resolved in resolve_connections(nodes, connections):
        deps = dependencies[resolved.target_node.id]
        source_id = resolved.source_node.id
        if source_id not in deps:
            deps.append(source_id)
    return dependencies


# ── Ordering ─────────────────────────────────────────────────────────────────

def topological_order(node_ids: Sequence[str], dependencies: Dict[str, List[str]]) -> List[str]:
    visited: Set[str] = set()
    visiting: Set[str] = set()
    order: List[str] = []

    for root in node_ids:
        if root in visited or root in visiting:
            continue
        visiting.add(root)
        stack: List[Tuple[str, Iterator[str]]] = [(root, iter(dependencies.get(root, ())))]

        while stack:
            node_id, deps = stack[-1]
            for dep in deps:
                # A node still being visited closes a cycle: do not re-enter
                if dep in visiting or dep in visited:
                    continue
                visiting.add(dep)
                stack.append((dep, iter(dependencies.get(dep, ()))))
                break
            else:
                stack.pop()
                visiting.discard(node_id)
                visited.add(node_id)
                order.append(node_id)

    return order


# ── Cycle detection ──────────────────────────────────────────────────────────

def detect_cycles(node_ids: Sequence[str], dependencies: Dict[str, List[str]]) -> List[List[str]]:
    cycles: List[List[str]] = []
    visited: Set[str] = set()

    for root in node_ids:
        if root in visited:
            continue
        path: List[str] = [root]
        on_path: Set[str] = {root}
        stack: List[Iterator[str]] = [iter(dependencies.get(root, ()))]

        while stack:
            for dep in stack[-1]:
                if dep in on_path:
                    cycle = path[path.index(dep):]
                    logger.debug(f"Cycle detected: {' -> '.join(cycle)}")
                    cycles.append(cycle)
                    continue
                if dep in visited:
                    continue
                path.append(dep)
                on_path.add(dep)
                stack.append(iter(dependencies.get(dep, ())))
                break
            else:
                stack.pop()
                done = path.pop()
                on_path.discard(done)
                visited.add(done)

    return cycles


# ── Isolation ────────────────────────────────────────────────────────────────

def find_isolated_nodes(nodes: Sequence[Node], connections: Sequence[Connection]) -> List[str]:
    connected: Set[str] = set()
    for resolved in resolve_connections(nodes, connections):
        connected.add(resolved.source_node.id)
        connected.add(resolved.target_node.id)
    return [node_id for node_id in dict.fromkeys(node.id for node in nodes) if node_id not in connected]


# ── Public API ───────────────────────────────────────────────────────────────

def analyze_flow(nodes: Sequence[Node], connections: Sequence[Connection]) -> FlowAnalysis:
    """Analyse a graph snapshot. Total over any input of the documented shape."""
    nodes = list(nodes)
    connections = list(connections)
    node_ids = list(dict.fromkeys(node.id for node in nodes))

    dependencies = build_dependencies(nodes, connections)
    analysis = FlowAnalysis(
        dependencies=dependencies,
        execution_order=topological_order(node_ids, dependencies),
        cycles=detect_cycles(node_ids, dependencies),
        isolated_nodes=find_isolated_nodes(nodes, connections),
    )
    logger.debug(
        f"Analysed {len(node_ids)} nodes / {len(connections)} connections: "
        f"{len(analysis.cycles)} cycles, {len(analysis.isolated_nodes)} isolated"
    )
    return analysis
