"""
AnchorFlow Compiler — Program Scheduler
=======================================
Maps a graph snapshot → ProgramSchedule: the resolved, ordered plan the
emitter renders into text.

Partitioning
------------
    account-like   kind == "account"  → ScheduledAccount (data record)
    behavioral     every other kind   → ScheduledInstruction (module)

Naming
------
    module / function name   node.name lower-cased, whitespace runs → "_",
                             anything outside [a-z0-9_] dropped
    struct name              node.name with whitespace removed, [A-Za-z0-9_] kept
    account field name       account struct name lower-cased

Two behavioral nodes that normalise to the same module name would produce
clashing `pub mod` lines; the second and later ones get a numeric suffix
(deposit, deposit_2, deposit_3 ...) in node input order.

Execution order
---------------
The behavioral execution order is the flow analyzer's dependency-first order
filtered to behavioral nodes, so both always agree on acyclic graphs.
Connections with unresolved endpoints are skipped throughout.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence, Set

from anchorflow.core.FlowAnalyzer import build_dependencies, topological_order
from anchorflow.core.GraphPrimitives import Connection, Node, ResolvedConnection, resolve_connections

from .ir import (
    BoundAccount,
    DataFlowConnection,
    ProgramFlow,
    ProgramSchedule,
    ScheduledAccount,
    ScheduledInstruction,
)

logger = logging.getLogger(__name__)

DEFAULT_PROGRAM_NAME = "my_program"

_WHITESPACE = re.compile(r"\s+")
_NOT_MODULE_CHAR = re.compile(r"[^a-z0-9_]")
_NOT_STRUCT_CHAR = re.compile(r"[^A-Za-z0-9_]")


def _identifier(text: str) -> str:
    # Rust identifiers cannot start with a digit
    if text[:1].isdigit():
        return f"_{text}"
    return text


def module_name(name: str) -> str:
    """
    'Token Transfer' → 'token_transfer'.

    The result doubles as a Rust identifier and a file name, so every
    character outside [a-z0-9_] is dropped. May return "".
    """
    return _identifier(_NOT_MODULE_CHAR.sub("", _WHITESPACE.sub("_", name.lower())))


def struct_name(name: str) -> str:
    """'Token Transfer' → 'TokenTransfer'. Keeps only [A-Za-z0-9_]."""
    return _identifier(_NOT_STRUCT_CHAR.sub("", _WHITESPACE.sub("", name)))


def _account_struct(node: Node) -> str:
    return struct_name(node.name) or "AccountData"


class Scheduler:
    def __init__(self, nodes: Sequence[Node], connections: Sequence[Connection]):
        self.nodes = list(nodes)
        self.connections = list(connections)
        self.resolved: List[ResolvedConnection] = list(resolve_connections(self.nodes, self.connections))

    # ── Connection queries ────────────────────────────────────────────────

    def _incoming(self, node_id: str) -> List[ResolvedConnection]:
        return [r for r in self.resolved if r.target_node.id == node_id]

    def _touching(self, node_id: str) -> int:
        return sum(1 for r in self.resolved if r.connection.touches(node_id))

    # ── Program flow ──────────────────────────────────────────────────────

    def _behavioral(self) -> List[Node]:
        return [n for n in self.nodes if not n.is_account()]

    def _entry_points(self) -> List[str]:
        targets: Set[str] = {r.target_node.id for r in self.resolved}
        return [n.name for n in self._behavioral() if n.id not in targets]

    def _execution_order(self) -> List[Node]:
        node_ids = list(dict.fromkeys(n.id for n in self.nodes))
        order = topological_order(node_ids, build_dependencies(self.nodes, self.connections))
        by_id: Dict[str, Node] = {}
        for node in self.nodes:
            by_id.setdefault(node.id, node)
        return [by_id[nid] for nid in order if not by_id[nid].is_account()]

    def _data_flow(self) -> List[DataFlowConnection]:
        return [
            DataFlowConnection(
                from_node=r.source_node.name,
                to_node=r.target_node.name,
                data_type=r.source_port.type,
                required=True,
            )
            for r in self.resolved
        ]

    def program_flow(self) -> ProgramFlow:
        return ProgramFlow(
            entry_points=self._entry_points(),
            execution_order=[n.name for n in self._execution_order()],
            data_flow=self._data_flow(),
        )

    # ── Node scheduling ───────────────────────────────────────────────────

    def _bound_accounts(self, incoming: List[ResolvedConnection]) -> List[BoundAccount]:
        accounts: List[BoundAccount] = []
        seen: Set[str] = set()
        for r in incoming:
            if not r.source_node.is_account():
                continue
            sname = _account_struct(r.source_node)
            field_name = sname.lower()
            # One field per account, however many ports it is wired through
            if field_name in seen:
                continue
            seen.add(field_name)
            accounts.append(BoundAccount(node_id=r.source_node.id, struct_name=sname, field_name=field_name))
        return accounts

    def _schedule_instruction(self, node: Node, mod_name: str, suffix: Optional[int]) -> ScheduledInstruction:
        incoming = self._incoming(node.id)
        upstream = [r.source_node.name for r in incoming if not r.source_node.is_account()]
        sname = struct_name(node.name) or "Instruction"
        if suffix is not None:
            sname = f"{sname}{suffix}"
        return ScheduledInstruction(
            node_id=node.id,
            node_name=node.name,
            category=node.kind.lower(),
            module_name=mod_name,
            struct_name=sname,
            bound_accounts=self._bound_accounts(incoming),
            upstream_instructions=list(dict.fromkeys(upstream)),
            connection_count=self._touching(node.id),
        )

    def _schedule_instructions(self) -> List[ScheduledInstruction]:
        used: Set[str] = set()
        scheduled: List[ScheduledInstruction] = []
        for node in self._behavioral():
            base = module_name(node.name) or "instruction"
            name, suffix = base, None
            while name in used:
                suffix = (suffix or 1) + 1
                name = f"{base}_{suffix}"
            if suffix is not None:
                logger.debug(f"Module name '{base}' already used, renaming node {node.id} to '{name}'")
            used.add(name)
            scheduled.append(self._schedule_instruction(node, name, suffix))
        return scheduled

    def _schedule_accounts(self) -> List[ScheduledAccount]:
        return [
            ScheduledAccount(
                node_id=node.id,
                node_name=node.name,
                struct_name=_account_struct(node),
                connection_count=self._touching(node.id),
            )
            for node in self.nodes
            if node.is_account()
        ]

    # ── Public API ────────────────────────────────────────────────────────

    def build(self, program_name: str = DEFAULT_PROGRAM_NAME) -> ProgramSchedule:
        """Build a ProgramSchedule from the graph snapshot."""
        skipped = len(self.connections) - len(self.resolved)
        if skipped:
            logger.debug(f"Skipping {skipped} connection(s) with unresolved endpoints")

        return ProgramSchedule(
            program_name=program_name,
            instructions=self._schedule_instructions(),
            accounts=self._schedule_accounts(),
            flow=self.program_flow(),
            has_connections=bool(self.connections),
        )
