import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..core.GraphPrimitives import Node, Port
from ..core.Types import NodeKind, PortType, type_name

# =========================================================================================
# MODULE CATALOG
#
# Built-in module templates offered by the editor palette. A template describes the
# port shape of a module; create_node() stamps out a Node with fresh ids so that
# several instances of the same template can live in one graph.
# =========================================================================================


class CatalogError(KeyError):
    """Raised for an unknown template id."""


@dataclass(frozen=True)
class PortSpec:
    name: str
    type: str
    description: str = ""
    required: bool = True


@dataclass(frozen=True)
class ModuleTemplate:
    id: str
    name: str
    category: str
    kind: str
    description: str
    inputs: Tuple[PortSpec, ...] = ()
    outputs: Tuple[PortSpec, ...] = ()
    built_in: bool = True

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "type": self.kind,
            "description": self.description,
            "isBuiltIn": self.built_in,
            "inputs": [{"name": p.name, "type": p.type, "required": p.required,
                        "description": p.description} for p in self.inputs],
            "outputs": [{"name": p.name, "type": p.type, "required": p.required,
                         "description": p.description} for p in self.outputs],
        }


_catalog: Dict[str, ModuleTemplate] = {}


def register_template(template: ModuleTemplate) -> ModuleTemplate:
    if template.id in _catalog:
        raise ValueError(f"Module template '{template.id}' is already registered")
    _catalog[template.id] = template
    return template


def list_templates() -> List[ModuleTemplate]:
    return list(_catalog.values())


def get_template(template_id: str) -> ModuleTemplate:
    try:
        return _catalog[template_id]
    except KeyError:
        raise CatalogError(f"Unknown module template '{template_id}'") from None


def new_id() -> str:
    return uuid.uuid4().hex


def _port(spec: PortSpec) -> Port:
    return Port(id=new_id(), name=spec.name, type=spec.type)


def create_node(template_id: str, name: Optional[str] = None) -> Node:
    """Instantiate a catalog template as a Node with fresh node and port ids."""
    template = get_template(template_id)
    return Node(
        id=new_id(),
        kind=template.kind,
        name=name or template.name,
        inputs=tuple(_port(p) for p in template.inputs),
        outputs=tuple(_port(p) for p in template.outputs),
    )


def create_blank_node(kind: str, name: Optional[str] = None) -> Node:
    """
    A module with no template. Accounts start without ports; every other kind
    gets one `data` input and one `data` output.
    """
    kind = type_name(kind)
    if NodeKind.is_account(kind):
        return Node(id=new_id(), kind=kind, name=name or "New Account")
    return Node(
        id=new_id(),
        kind=kind,
        name=name or "New Instruction",
        inputs=(Port(new_id(), "input", PortType.DATA),),
        outputs=(Port(new_id(), "output", PortType.DATA),),
    )


def create_start_node() -> Node:
    return Node(
        id=new_id(),
        kind=NodeKind.START,
        name="Program Start",
        outputs=(Port(new_id(), "start", PortType.FLOW),),
    )


# ── Built-in templates ───────────────────────────────────────────────────────

register_template(ModuleTemplate(
    id="spl-token-mint",
    name="SPL Token Mint",
    category="Token",
    kind=NodeKind.TOKEN.value,
    description="Create and mint SPL tokens with configurable supply and decimals",
    inputs=(
        PortSpec("Mint Authority", PortType.ACCOUNT.value, "Account with authority to mint tokens"),
        PortSpec("Token Account", PortType.ACCOUNT.value, "Destination account for minted tokens"),
    ),
    outputs=(
        PortSpec("Mint Result", PortType.INSTRUCTION.value, "Result of the mint operation"),
    ),
))

register_template(ModuleTemplate(
    id="nft-mint",
    name="NFT Mint",
    category="NFT",
    kind=NodeKind.NFT.value,
    description="Mint a non-fungible token with metadata",
    inputs=(
        PortSpec("Creator", PortType.ACCOUNT.value, "Creator and update authority"),
        PortSpec("Metadata", PortType.DATA.value, "Name, symbol and URI"),
    ),
    outputs=(
        PortSpec("NFT Mint", PortType.NFT.value, "The minted NFT"),
    ),
))

register_template(ModuleTemplate(
    id="pda-account",
    name="PDA Account",
    category="Core",
    kind=NodeKind.ACCOUNT.value,
    description="Program derived address owned by the program",
    inputs=(
        PortSpec("Seeds", PortType.DATA.value, "Seeds used to derive the address"),
    ),
    outputs=(
        PortSpec("PDA Address", PortType.ACCOUNT.value, "The derived account"),
    ),
))

register_template(ModuleTemplate(
    id="governance-proposal",
    name="Governance Proposal",
    category="Governance",
    kind=NodeKind.GOVERNANCE.value,
    description="Create a proposal that token holders vote on",
    inputs=(
        PortSpec("Proposer", PortType.ACCOUNT.value, "Account submitting the proposal"),
        PortSpec("Governance Token", PortType.TOKEN.value, "Token granting voting rights"),
    ),
    outputs=(
        PortSpec("Proposal", PortType.ACCOUNT.value, "The proposal account"),
    ),
))

register_template(ModuleTemplate(
    id="liquidity-pool",
    name="Liquidity Pool",
    category="DeFi",
    kind=NodeKind.DEFI.value,
    description="Constant product pool for a token pair",
    inputs=(
        PortSpec("Token A", PortType.TOKEN.value, "First token of the pair"),
        PortSpec("Token B", PortType.TOKEN.value, "Second token of the pair"),
    ),
    outputs=(
        PortSpec("Pool Account", PortType.ACCOUNT.value, "The pool state account"),
    ),
))
