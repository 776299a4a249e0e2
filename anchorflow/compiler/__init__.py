"""
AnchorFlow Compiler
===================
Lowers a validated module graph into an Anchor workspace.

Pipeline:
    (nodes, connections) →  [scheduler]  →  ProgramSchedule
    ProgramSchedule      →  [emitter]    →  GeneratedArtifact

Public API
----------
    from anchorflow.compiler import generate

    artifact = generate(graph.nodes, graph.connections, program_name="vault")
    print(artifact.lib)
    for path, text in artifact.files().items():
        ...

The pass performs no semantic validation: run the connection validator over
every stored connection first. Connections whose endpoints do not resolve are
skipped rather than reported.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from anchorflow.core.GraphPrimitives import Connection, Node

from .emitter import emit
from .ir import GeneratedArtifact, ProgramFlow
from .scheduler import DEFAULT_PROGRAM_NAME, Scheduler, module_name

logger = logging.getLogger(__name__)


def generate(
    nodes: Sequence[Node],
    connections: Sequence[Connection],
    program_name: Optional[str] = None,
) -> GeneratedArtifact:
    """
    Generate program source, tests and manifests from a graph snapshot.

    Args:
        nodes:         Graph nodes, in editor order.
        connections:   Graph connections, in insertion order.
        program_name:  Crate / program module name. Normalised the same way as
                       module names; falls back to "my_program"
                       when empty or unusable.

    Returns:
        A GeneratedArtifact. Deterministic for a given snapshot.
    """
    name = (module_name(program_name) if program_name else "") or DEFAULT_PROGRAM_NAME
    schedule = Scheduler(nodes, connections).build(program_name=name)
    logger.debug(
        f"Generating '{name}': {len(schedule.instructions)} instruction module(s), "
        f"{len(schedule.accounts)} account(s)"
    )
    return emit(schedule)


__all__ = ["generate", "GeneratedArtifact", "ProgramFlow"]
