"""
FlowCanvas - Editor
Composition root: builds one independent set of transform, model, edge
protocol, history and controller. Several editors can live side by side.
"""

from typing import Iterable, Optional
import logging

from config import EditorConfig
from edge_creation import EdgeCreationProtocol
from geometry import CoordinateTransform, fit_view
from graph_model import GraphModel
from interaction import InteractionController, RenderSurface
from models import NodeData, EdgeData, ViewState
from undo import HistoryLog
from workflow import graph_from_workflow


logger = logging.getLogger(__name__)


class GraphEditor:
    """Owns the editing engine for one canvas."""

    def __init__(self, surface: Optional[RenderSurface] = None, config: EditorConfig = None):
        self.config = config or EditorConfig()
        self.transform = CoordinateTransform(self.config)
        self.model = GraphModel(self.config)
        self.edge_creation = EdgeCreationProtocol(self.model)
        self.history = HistoryLog(self.config.max_history)
        self.controller = InteractionController(
            self.transform, self.model, self.edge_creation, self.history,
            surface=surface, config=self.config
        )
        # Base entry so the first action can be undone.
        self.controller.record("init", "Empty workflow")

        signals = self.model.signals
        signals.node_link_changed.connect(self._on_node_linked)
        signals.edge_link_changed.connect(self._on_edge_linked)
        signals.node_rolled_back.connect(self._on_node_rolled_back)

    def _on_node_linked(self, node_id: str) -> None:
        node = self.model.get_node(node_id)
        if node is not None:
            self.history.patch_node(node_id, pending=False, backend_module_id=node.backend_module_id)

    def _on_edge_linked(self, edge_id: str) -> None:
        edge = self.model.get_edge(edge_id)
        if edge is not None:
            self.history.patch_edge(edge_id, backend_connection_id=edge.backend_connection_id)

    def _on_node_rolled_back(self, node_id: str) -> None:
        self.history.purge_node(node_id)
        self.controller.signals.history_changed.emit()
        self.controller.signals.repaint_requested.emit()

    @property
    def surface(self) -> Optional[RenderSurface]:
        return self.controller.surface

    @surface.setter
    def surface(self, surface: Optional[RenderSurface]) -> None:
        self.controller.surface = surface

    def undo(self) -> bool:
        return self.controller.undo()

    def redo(self) -> bool:
        return self.controller.redo()

    def jump_to_entry(self, entry_id: str) -> bool:
        return self.controller.jump_to_entry(entry_id)

    def fitted_view(self, nodes: Iterable[NodeData]) -> ViewState:
        if self.surface is None:
            return ViewState()
        return fit_view(nodes, self.surface.width(), self.surface.height(), self.config)

    def load_graph(self, nodes: Iterable[NodeData], edges: Iterable[EdgeData],
                   description: str = "Loaded workflow") -> None:
        """Replace the graph, fit it into the canvas and start a fresh history."""
        self.controller.reset_gesture()
        self.model.load_graph(nodes, edges)
        self.transform.set_view(self.fitted_view(self.model.nodes))
        self.history.clear()
        self.controller.record("load-workflow", description)
        self.controller.signals.view_changed.emit()
        logger.info("Loaded %d nodes and %d edges", len(self.model.nodes), len(self.model.edges))

    def load_workflow(self, data: dict) -> None:
        nodes, edges = graph_from_workflow(data)
        version = data.get("version_id")
        description = f"Loaded workflow version {version}" if version is not None else "Loaded workflow"
        self.load_graph(nodes, edges, description)

    def clear(self) -> None:
        self.controller.reset_gesture()
        self.model.clear()
        self.transform.reset()
        self.history.clear()
        self.controller.record("init", "Empty workflow")
        self.controller.signals.view_changed.emit()

    def clear_history(self) -> None:
        """Drop every entry and keep the current graph as the new base."""
        self.controller.reset_gesture()
        self.history.clear()
        self.controller.record("init", "Cleared history")

    def update_node(self, node_id: str, fields: dict) -> bool:
        return self.controller.update_node(node_id, fields)
