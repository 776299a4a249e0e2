from enum import Enum


class PortType(str, Enum):
    """Port types the editor ships with. Ports may carry any other string too."""
    ANY = "any"
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    DATA = "data"
    CONTROL = "control"
    EVENT = "event"
    FLOW = "flow"
    ACCOUNT = "account"
    INSTRUCTION = "instruction"
    TOKEN = "token"
    NFT = "nft"


class NodeKind(str, Enum):
    ACCOUNT = "account"
    START = "start"
    INSTRUCTION = "instruction"
    VALIDATOR = "validator"
    TOKEN = "token"
    NFT = "nft"
    DEFI = "defi"
    GOVERNANCE = "governance"

    @staticmethod
    def is_account(kind: str) -> bool:
        return kind == NodeKind.ACCOUNT.value


def type_name(value) -> str:
    """Plain string form of a PortType / NodeKind member or a raw string."""
    if isinstance(value, Enum):
        return value.value
    return value
