from typing import Dict, FrozenSet

from .Types import PortType, type_name

ANY = PortType.ANY.value

# Directed on purpose: number -> boolean is allowed, string -> boolean is not.
COMPATIBILITY_MAP: Dict[str, FrozenSet[str]] = {
    "number": frozenset({"string", "boolean"}),
    "string": frozenset({"number"}),
    "data": frozenset({"any"}),
    "control": frozenset({"event"}),
    "event": frozenset({"control"}),
}


def are_types_compatible(source_type: str, target_type: str) -> bool:
    """Whether an output port of `source_type` may feed an input port of `target_type`."""
    source_type = type_name(source_type)
    target_type = type_name(target_type)
    if source_type == ANY or target_type == ANY:
        return True
    if source_type == target_type:
        return True
    return target_type in COMPATIBILITY_MAP.get(source_type, ())
