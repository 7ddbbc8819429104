"""
FlowCanvas - Module Type Registry
Types offered by the palette and the ports a new node of each type starts with.
"""

from dataclasses import dataclass, field

from models import PortSpec


@dataclass(frozen=True)
class NodeType:
    id: str
    title: str
    tags: str = ""
    inputs: tuple = ()
    outputs: tuple = ()
    aliases: tuple = field(default_factory=tuple)


NODE_TYPES: list[NodeType] = [
    NodeType(
        id="data-source",
        title="Data Source",
        tags="read load table csv",
        outputs=(PortSpec("out-0", "table"),),
    ),
    NodeType(
        id="script-editor",
        title="Script Editor",
        tags="script code editor",
        inputs=(PortSpec("in-0", "table", optional=True),),
        outputs=(PortSpec("out-0", "table"),),
    ),
    NodeType(
        id="filter",
        title="Filter",
        tags="filter range select rows",
        inputs=(PortSpec("in-0", "table"),),
        outputs=(PortSpec("out-0", "table"), PortSpec("selection", "selection")),
    ),
    NodeType(
        id="visualization",
        title="Visualization",
        tags="chart plot scatter histogram",
        inputs=(PortSpec("in-0", "table"),),
        outputs=(PortSpec("selection", "selection"),),
        aliases=("chart", "plot"),
    ),
]

# Fallback for types not in the registry (e.g. backend modules).
GENERIC_INPUTS = (PortSpec("in-0", "table"),)
GENERIC_OUTPUTS = (PortSpec("out-0", "table"),)


def get_node_type(type_id: str):
    """Look a type up by id or alias."""
    for node_type in NODE_TYPES:
        if node_type.id == type_id or type_id in node_type.aliases:
            return node_type
    return None


def default_ports(type_id: str) -> tuple[list[PortSpec], list[PortSpec]]:
    """Fresh (inputs, outputs) port lists for a new node of the given type."""
    node_type = get_node_type(type_id)
    if node_type is None:
        inputs, outputs = GENERIC_INPUTS, GENERIC_OUTPUTS
    else:
        inputs, outputs = node_type.inputs, node_type.outputs
    return (
        [PortSpec(p.name, p.type, p.optional) for p in inputs],
        [PortSpec(p.name, p.type, p.optional) for p in outputs],
    )


def default_label(type_id: str) -> str:
    node_type = get_node_type(type_id)
    return node_type.title if node_type else type_id
