"""
FlowCanvas - Graph Model
Owns nodes, edges and selection. Mutations never touch history; callers decide
when a change is worth a snapshot.
"""

from typing import Optional, Iterable
import copy
import logging

from PyQt6.QtCore import QObject, pyqtSignal

from config import EditorConfig
from geometry import is_finite
from models import NodeData, EdgeData, Position, PortSpec, GraphSnapshot, generate_uuid, INPUT, OUTPUT
import node_types


logger = logging.getLogger(__name__)


class GraphSignals(QObject):
    """Change notifications, suitable for forwarding to a backend sync layer."""
    node_added = pyqtSignal(object)  # NodeData
    node_removed = pyqtSignal(str)  # node_id
    node_changed = pyqtSignal(str)  # node_id
    edge_added = pyqtSignal(object)  # EdgeData
    edge_removed = pyqtSignal(str)  # edge_id
    selection_changed = pyqtSignal()
    graph_reset = pyqtSignal()  # load / restore / clear
    node_link_changed = pyqtSignal(str)  # node_id
    node_rolled_back = pyqtSignal(str)  # node_id
    edge_link_changed = pyqtSignal(str)  # edge_id


class GraphModel:
    """
    In-memory node/edge graph with selection state.

    Selection is either a set of nodes or a single edge, never both.
    References to unknown ids are silent no-ops.
    """

    # Fields update_node() may merge. Identity and linkage have their own calls.
    UPDATABLE_FIELDS = {
        "type", "label", "width", "height", "is_iconized", "is_label_visible",
        "inputs", "outputs", "parameters", "annotations", "package",
        "backend_module_type", "position",
    }

    def __init__(self, config: EditorConfig = None):
        self.config = config or EditorConfig()
        self.signals = GraphSignals()
        self._nodes: dict[str, NodeData] = {}  # insertion order is paint order
        self._edges: dict[str, EdgeData] = {}
        self._selected_node_ids: list[str] = []
        self._selected_edge_id: Optional[str] = None

        # Backend linkage lives outside history; restores re-apply it.
        self._node_links: dict[str, int] = {}
        self._edge_links: dict[str, int] = {}
        self._rolled_back: set[str] = set()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def nodes(self) -> tuple[NodeData, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> tuple[EdgeData, ...]:
        return tuple(self._edges.values())

    def get_node(self, node_id: str) -> Optional[NodeData]:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[EdgeData]:
        return self._edges.get(edge_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_edges_for_node(self, node_id: str) -> list[EdgeData]:
        """Get all edges connected to a node."""
        return [e for e in self._edges.values() if e.touches(node_id)]

    def find_edge(self, source_node_id: str, source_port_id: str,
                  target_node_id: str, target_port_id: str) -> Optional[EdgeData]:
        key = (source_node_id, source_port_id, target_node_id, target_port_id)
        for edge in self._edges.values():
            if edge.key == key:
                return edge
        return None

    def is_connectable(self, node_id: str) -> bool:
        """Present and not waiting on its backend module id."""
        node = self._nodes.get(node_id)
        return node is not None and not node.pending

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------
    def create_node(self, type: str, x: float, y: float,
                    inputs: Optional[Iterable[PortSpec]] = None,
                    outputs: Optional[Iterable[PortSpec]] = None,
                    label: Optional[str] = None,
                    pending: bool = False) -> Optional[NodeData]:
        """
        Create a node of the given type at a world position.
        Port specs default to the type's registered ports.
        """
        if not is_finite(x, y):
            logger.debug("Rejected node %s at non-finite position (%r, %r)", type, x, y)
            return None

        default_inputs, default_outputs = node_types.default_ports(type)
        node = NodeData(
            id=generate_uuid(),
            type=type,
            position=Position(float(x), float(y)),
            label=node_types.default_label(type) if label is None else label,
            inputs=[copy.copy(p) for p in inputs] if inputs is not None else default_inputs,
            outputs=[copy.copy(p) for p in outputs] if outputs is not None else default_outputs,
            pending=pending
        )
        self._nodes[node.id] = node
        logger.debug("Created node %s (%s) at (%.1f, %.1f)", node.id, type, x, y)
        self.signals.node_added.emit(node)
        return node

    def remove_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it. Returns False if absent."""
        node = self._nodes.pop(node_id, None)
        if node is None:
            logger.debug("remove_node: no node %s", node_id)
            return False

        for edge in self.get_edges_for_node(node_id):
            self._remove_edge_internal(edge.id)

        selection_touched = node_id in self._selected_node_ids
        if selection_touched:
            self._selected_node_ids.remove(node_id)

        self.signals.node_removed.emit(node_id)
        if selection_touched:
            self.signals.selection_changed.emit()
        return True

    def update_node(self, node_id: str, fields: dict) -> bool:
        """Merge the given fields into a node. Returns False if absent."""
        node = self._nodes.get(node_id)
        if node is None:
            logger.debug("update_node: no node %s", node_id)
            return False

        changed = False
        for name, value in fields.items():
            if name not in self.UPDATABLE_FIELDS:
                logger.debug("update_node: ignoring field %r", name)
                continue
            if name == "position":
                position = value if isinstance(value, Position) else Position.from_dict(value)
                if not is_finite(position.x, position.y):
                    logger.debug("update_node: rejected non-finite position for %s", node_id)
                    continue
                value = position
            elif name in ("inputs", "outputs"):
                value = [p if isinstance(p, PortSpec) else PortSpec.from_dict(p) for p in value]
            setattr(node, name, value)
            changed = True

        if changed:
            self.signals.node_changed.emit(node_id)
        return True

    def set_node_position(self, node_id: str, x: float, y: float) -> bool:
        node = self._nodes.get(node_id)
        if node is None or not is_finite(x, y):
            return False
        node.position = Position(x, y)
        self.signals.node_changed.emit(node_id)
        return True

    def move_nodes(self, node_ids: Iterable[str], dx: float, dy: float) -> None:
        """Translate several nodes by the same world-space delta."""
        if not is_finite(dx, dy):
            return
        for node_id in node_ids:
            node = self._nodes.get(node_id)
            if node is None:
                continue
            node.position = Position(node.position.x + dx, node.position.y + dy)
            self.signals.node_changed.emit(node_id)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------
    def create_edge(self, source_node_id: str, source_port_id: str,
                    target_node_id: str, target_port_id: str) -> Optional[EdgeData]:
        """
        Connect an output port to an input port.
        Returns None without mutating if the connection already exists,
        an endpoint is missing or pending, or a port has the wrong direction.
        """
        source = self._nodes.get(source_node_id)
        target = self._nodes.get(target_node_id)
        if source is None or target is None:
            logger.debug("create_edge: endpoint missing (%s -> %s)", source_node_id, target_node_id)
            return None
        if source.pending or target.pending:
            logger.debug("create_edge: endpoint pending backend link")
            return None
        if source.find_port(source_port_id, OUTPUT) is None:
            logger.debug("create_edge: %s has no output port %r", source_node_id, source_port_id)
            return None
        if target.find_port(target_port_id, INPUT) is None:
            logger.debug("create_edge: %s has no input port %r", target_node_id, target_port_id)
            return None
        if self.find_edge(source_node_id, source_port_id, target_node_id, target_port_id):
            logger.debug("create_edge: duplicate connection ignored")
            return None

        edge = EdgeData(
            id=generate_uuid(),
            source_node_id=source_node_id,
            source_port_id=source_port_id,
            target_node_id=target_node_id,
            target_port_id=target_port_id
        )
        self._edges[edge.id] = edge
        self.signals.edge_added.emit(edge)
        return edge

    def remove_edge(self, edge_id: str) -> bool:
        if edge_id not in self._edges:
            logger.debug("remove_edge: no edge %s", edge_id)
            return False
        self._remove_edge_internal(edge_id)
        return True

    def _remove_edge_internal(self, edge_id: str) -> None:
        self._edges.pop(edge_id)
        self.signals.edge_removed.emit(edge_id)
        if self._selected_edge_id == edge_id:
            self._selected_edge_id = None
            self.signals.selection_changed.emit()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    @property
    def selected_node_ids(self) -> tuple[str, ...]:
        return tuple(self._selected_node_ids)

    @property
    def selected_edge_id(self) -> Optional[str]:
        return self._selected_edge_id

    def is_edge_selected(self, edge_id: str) -> bool:
        return self._selected_edge_id == edge_id

    def select_node(self, node_id: Optional[str]) -> None:
        """Select a single node (or nothing); clears any edge selection."""
        if node_id is not None and node_id not in self._nodes:
            logger.debug("select_node: no node %s", node_id)
            return
        self.select_nodes([] if node_id is None else [node_id])

    def select_nodes(self, node_ids: Iterable[str]) -> None:
        """Replace the node selection; clears any edge selection."""
        self._selected_edge_id = None
        self._selected_node_ids = [nid for nid in dict.fromkeys(node_ids) if nid in self._nodes]
        self._sync_node_flags()
        self.signals.selection_changed.emit()

    def select_edge(self, edge_id: Optional[str]) -> None:
        """Select a single edge (or nothing); clears the node selection."""
        if edge_id is not None and edge_id not in self._edges:
            logger.debug("select_edge: no edge %s", edge_id)
            return
        self._selected_node_ids = []
        self._sync_node_flags()
        self._selected_edge_id = edge_id
        self.signals.selection_changed.emit()

    def clear_selection(self) -> None:
        self.select_nodes([])

    def _sync_node_flags(self) -> None:
        selected = set(self._selected_node_ids)
        for node in self._nodes.values():
            node.is_selected = node.id in selected

    # ------------------------------------------------------------------
    # Backend linkage
    # ------------------------------------------------------------------
    def confirm_node_link(self, node_id: str, backend_module_id: int) -> bool:
        """The backend created the module; the node may now take edges."""
        node = self._nodes.get(node_id)
        if node is None:
            return False
        self._node_links[node_id] = backend_module_id
        node.backend_module_id = backend_module_id
        node.pending = False
        self.signals.node_link_changed.emit(node_id)
        return True

    def rollback_node(self, node_id: str) -> bool:
        """
        The backend call failed; drop the optimistic node and its edges.
        The node stays gone across later restores.
        """
        node = self._nodes.get(node_id)
        if node is None or not node.pending:
            return False
        logger.info("Rolling back pending node %s", node_id)
        self._rolled_back.add(node_id)
        self.remove_node(node_id)
        self.signals.node_rolled_back.emit(node_id)
        return True

    def confirm_edge_link(self, edge_id: str, backend_connection_id: int) -> bool:
        edge = self._edges.get(edge_id)
        if edge is None:
            return False
        self._edge_links[edge_id] = backend_connection_id
        edge.backend_connection_id = backend_connection_id
        self.signals.edge_link_changed.emit(edge_id)
        return True

    def is_rolled_back(self, node_id: str) -> bool:
        return node_id in self._rolled_back

    def _apply_links(self, node: NodeData) -> None:
        backend_id = self._node_links.get(node.id)
        if backend_id is not None:
            node.backend_module_id = backend_id
            node.pending = False

    # ------------------------------------------------------------------
    # Bulk state
    # ------------------------------------------------------------------
    def load_graph(self, nodes: Iterable[NodeData], edges: Iterable[EdgeData]) -> None:
        """
        Replace every node and edge at once and forget earlier backend links.
        Edges whose endpoints are not among the new nodes, that do not run
        from a declared output to a declared input, or that repeat an earlier
        connection, are dropped.
        """
        self._node_links.clear()
        self._edge_links.clear()
        self._rolled_back.clear()
        self._replace(nodes, edges)

    def _replace(self, nodes: Iterable[NodeData], edges: Iterable[EdgeData]) -> None:
        new_nodes: dict[str, NodeData] = {}
        for node in nodes:
            node = copy.deepcopy(node)
            node.is_selected = False
            self._apply_links(node)
            new_nodes[node.id] = node

        new_edges: dict[str, EdgeData] = {}
        seen_keys = set()
        for edge in edges:
            source = new_nodes.get(edge.source_node_id)
            target = new_nodes.get(edge.target_node_id)
            if source is None or target is None:
                logger.warning("Dropping edge %s with missing endpoint", edge.id)
                continue
            if source.find_port(edge.source_port_id, OUTPUT) is None or \
                    target.find_port(edge.target_port_id, INPUT) is None:
                logger.warning("Dropping edge %s: %s.%s -> %s.%s is not output to input", edge.id,
                               edge.source_node_id, edge.source_port_id,
                               edge.target_node_id, edge.target_port_id)
                continue
            if edge.key in seen_keys:
                logger.warning("Dropping duplicate edge %s", edge.id)
                continue
            seen_keys.add(edge.key)
            edge = copy.deepcopy(edge)
            if edge.id in self._edge_links:
                edge.backend_connection_id = self._edge_links[edge.id]
            new_edges[edge.id] = edge

        self._nodes = new_nodes
        self._edges = new_edges
        self._selected_node_ids = []
        self._selected_edge_id = None
        self.signals.graph_reset.emit()

    def clear(self) -> None:
        self.load_graph([], [])

    def snapshot(self, offset_x: float = 0.0, offset_y: float = 0.0) -> GraphSnapshot:
        """Deep copy of the current graph plus the given pan offset."""
        return GraphSnapshot(
            nodes=copy.deepcopy(list(self._nodes.values())),
            edges=copy.deepcopy(list(self._edges.values())),
            offset_x=offset_x,
            offset_y=offset_y
        )

    def restore(self, snapshot: GraphSnapshot) -> None:
        """
        Put a snapshot's nodes and edges back. Selection is cleared.
        Current backend links win over the snapshot's copies, and rolled
        back nodes are left out together with their edges.
        """
        nodes = [n for n in snapshot.nodes if n.id not in self._rolled_back]
        edges = [e for e in snapshot.edges
                 if e.source_node_id not in self._rolled_back and e.target_node_id not in self._rolled_back]
        self._replace(nodes, edges)
