"""
AnchorFlow Compiler — Output Model
==================================
Dataclasses shared by the scheduler and the emitter, and the artifact bundle
handed back to callers.

    Graph snapshot  →  [scheduler]  →  ProgramSchedule
    ProgramSchedule →  [emitter]    →  GeneratedArtifact

Nothing here holds a reference to a live editor object; every field is a
plain string, list or nested dataclass so results can be serialised as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


# ── Program flow summary ─────────────────────────────────────────────────────

@dataclass
class DataFlowConnection:
    from_node: str     # source node name
    to_node: str       # target node name
    data_type: str     # source port type
    required: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_node,
            "to": self.to_node,
            "dataType": self.data_type,
            "required": self.required,
        }


@dataclass
class ProgramFlow:
    entry_points: List[str] = field(default_factory=list)
    execution_order: List[str] = field(default_factory=list)
    data_flow: List[DataFlowConnection] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entryPoints": list(self.entry_points),
            "executionOrder": list(self.execution_order),
            "dataFlow": [d.to_dict() for d in self.data_flow],
        }


# ── Scheduled units ──────────────────────────────────────────────────────────

@dataclass
class BoundAccount:
    node_id: str
    struct_name: str   # Rust type of the account record
    field_name: str    # field in the instruction's Accounts struct


@dataclass
class ScheduledInstruction:
    node_id: str
    node_name: str
    category: str
    module_name: str          # also the entry function name
    struct_name: str          # Accounts struct name
    bound_accounts: List[BoundAccount] = field(default_factory=list)
    upstream_instructions: List[str] = field(default_factory=list)
    connection_count: int = 0


@dataclass
class ScheduledAccount:
    node_id: str
    node_name: str
    struct_name: str
    connection_count: int = 0


@dataclass
class ProgramSchedule:
    program_name: str
    instructions: List[ScheduledInstruction] = field(default_factory=list)
    accounts: List[ScheduledAccount] = field(default_factory=list)
    flow: ProgramFlow = field(default_factory=ProgramFlow)
    has_connections: bool = False


# ── Artifact bundle ──────────────────────────────────────────────────────────

@dataclass
class InstructionModule:
    node_id: str
    module_name: str
    source: str

    @property
    def file_name(self) -> str:
        return f"{self.module_name}.rs"


@dataclass
class GeneratedArtifact:
    program_name: str
    lib: str
    instructions: List[InstructionModule] = field(default_factory=list)
    tests: str = ""
    cargo_toml: str = ""
    anchor_toml: str = ""
    program_flow: ProgramFlow = field(default_factory=ProgramFlow)

    def files(self) -> Dict[str, str]:
        """
        Relative path → text for every blob, in a stable order.

        The layout is an Anchor workspace: `pub mod <name>;` in lib.rs resolves
        to a sibling `<name>.rs`.
        """
        program_dir = f"programs/{self.program_name}"
        out: Dict[str, str] = {
            "Anchor.toml": self.anchor_toml,
            f"{program_dir}/Cargo.toml": self.cargo_toml,
            f"{program_dir}/src/lib.rs": self.lib,
        }
        for module in self.instructions:
            out[f"{program_dir}/src/{module.file_name}"] = module.source
        out[f"tests/{self.program_name}.ts"] = self.tests
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "programName": self.program_name,
            "lib": self.lib,
            "instructions": [
                {"nodeId": m.node_id, "moduleName": m.module_name, "source": m.source}
                for m in self.instructions
            ],
            "tests": self.tests,
            "cargoToml": self.cargo_toml,
            "anchorToml": self.anchor_toml,
            "programFlow": self.program_flow.to_dict(),
        }
