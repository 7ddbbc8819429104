"""
FlowCanvas - Data Models
Dataclasses for graph state, history snapshots and their dict records.
"""

from dataclasses import dataclass, field
from typing import Optional
import copy
import time
import uuid


INPUT = "input"
OUTPUT = "output"


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


@dataclass
class PortSpec:
    """A declared input or output port on a node."""
    name: str
    type: str = "table"
    optional: bool = False

    @property
    def id(self) -> str:
        # Port ids are the declared names; they are unique per direction.
        return self.name

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type, "optional": self.optional}

    @classmethod
    def from_dict(cls, data: dict) -> "PortSpec":
        return cls(
            name=str(data["name"]),
            type=data.get("type", "table"),
            optional=bool(data.get("optional", False))
        )


@dataclass
class Position:
    """2D position in world space."""
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict) -> "Position":
        return cls(x=float(data.get("x", 0.0)), y=float(data.get("y", 0.0)))


@dataclass
class NodeData:
    """
    A module placed on the canvas.
    Size falls back to a label-derived default when width/height are unset;
    iconized nodes collapse to a fixed square regardless of size.
    """
    id: str = field(default_factory=generate_uuid)
    type: str = "data-source"
    position: Position = field(default_factory=Position)
    label: str = ""
    width: Optional[float] = None
    height: Optional[float] = None
    is_iconized: bool = False
    is_selected: bool = False
    is_label_visible: bool = True
    inputs: list[PortSpec] = field(default_factory=list)
    outputs: list[PortSpec] = field(default_factory=list)
    parameters: dict = field(default_factory=dict)
    annotations: dict = field(default_factory=dict)
    package: str = ""

    # Backend linkage
    backend_module_id: Optional[int] = None
    backend_module_type: str = ""
    pending: bool = False

    def find_port(self, port_id: str, direction: str) -> Optional[PortSpec]:
        ports = self.inputs if direction == INPUT else self.outputs
        for port in ports:
            if port.id == port_id:
                return port
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "position": self.position.to_dict(),
            "label": self.label,
            "width": self.width,
            "height": self.height,
            "is_iconized": self.is_iconized,
            "is_selected": self.is_selected,
            "is_label_visible": self.is_label_visible,
            "inputs": [p.to_dict() for p in self.inputs],
            "outputs": [p.to_dict() for p in self.outputs],
            "parameters": copy.deepcopy(self.parameters),
            "annotations": copy.deepcopy(self.annotations),
            "package": self.package,
            "backend_module_id": self.backend_module_id,
            "backend_module_type": self.backend_module_type,
            "pending": self.pending
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NodeData":
        return cls(
            id=data.get("id") or generate_uuid(),
            type=data.get("type", "data-source"),
            position=Position.from_dict(data.get("position", {})),
            label=data.get("label", ""),
            width=data.get("width"),
            height=data.get("height"),
            is_iconized=data.get("is_iconized", False),
            is_selected=data.get("is_selected", False),
            is_label_visible=data.get("is_label_visible", True),
            inputs=[PortSpec.from_dict(p) for p in data.get("inputs", [])],
            outputs=[PortSpec.from_dict(p) for p in data.get("outputs", [])],
            parameters=copy.deepcopy(data.get("parameters", {})),
            annotations=copy.deepcopy(data.get("annotations", {})),
            package=data.get("package", ""),
            backend_module_id=data.get("backend_module_id"),
            backend_module_type=data.get("backend_module_type", ""),
            pending=data.get("pending", False)
        )


@dataclass
class EdgeData:
    """A connection from an output port to an input port."""
    id: str = field(default_factory=generate_uuid)
    source_node_id: str = ""
    source_port_id: str = ""
    target_node_id: str = ""
    target_port_id: str = ""
    backend_connection_id: Optional[int] = None

    @property
    def key(self) -> tuple[str, str, str, str]:
        """The endpoint 4-tuple; no two edges may share one."""
        return (self.source_node_id, self.source_port_id,
                self.target_node_id, self.target_port_id)

    def touches(self, node_id: str) -> bool:
        return self.source_node_id == node_id or self.target_node_id == node_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_node_id": self.source_node_id,
            "source_port_id": self.source_port_id,
            "target_node_id": self.target_node_id,
            "target_port_id": self.target_port_id,
            "backend_connection_id": self.backend_connection_id
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EdgeData":
        return cls(
            id=data.get("id") or generate_uuid(),
            source_node_id=data.get("source_node_id", ""),
            source_port_id=data.get("source_port_id", ""),
            target_node_id=data.get("target_node_id", ""),
            target_port_id=data.get("target_port_id", ""),
            backend_connection_id=data.get("backend_connection_id")
        )


@dataclass(frozen=True)
class EdgeDraft:
    """The edge being drawn. Exists only while a port is being dragged."""
    anchor_node_id: str
    anchor_port_id: str
    anchor_direction: str  # "input" or "output"
    data_type: str = "table"


@dataclass
class ViewState:
    """Pan offset and zoom scale of the canvas."""
    offset_x: float = 0.0
    offset_y: float = 0.0
    zoom: float = 1.0

    def to_dict(self) -> dict:
        return {"offset_x": self.offset_x, "offset_y": self.offset_y, "zoom": self.zoom}


@dataclass
class GraphSnapshot:
    """Deep copy of nodes, edges and pan offset at one point in time."""
    nodes: list[NodeData] = field(default_factory=list)
    edges: list[EdgeData] = field(default_factory=list)
    offset_x: float = 0.0
    offset_y: float = 0.0

    def deep_copy(self) -> "GraphSnapshot":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "diagram_offset": {"x": self.offset_x, "y": self.offset_y}
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GraphSnapshot":
        offset = data.get("diagram_offset", {})
        return cls(
            nodes=[NodeData.from_dict(n) for n in data.get("nodes", [])],
            edges=[EdgeData.from_dict(e) for e in data.get("edges", [])],
            offset_x=float(offset.get("x", 0.0)),
            offset_y=float(offset.get("y", 0.0))
        )


@dataclass(frozen=True)
class HistoryEntry:
    """One discrete user action in the undo log. Only backend linkage is patched after creation."""
    action: str
    description: str
    snapshot: GraphSnapshot
    id: str = field(default_factory=lambda: f"history-{generate_uuid()}")
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "action": self.action,
            "description": self.description,
            "state": self.snapshot.to_dict()
        }
