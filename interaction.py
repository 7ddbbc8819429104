"""
FlowCanvas - Interaction Controller
State machine that turns pointer, keyboard, wheel and drop input into graph
mutations and history entries.

Pointer and drop coordinates arrive in screen space (the same space the render
surface reports its bounding rectangle in) and are made canvas-local before
the view transform is applied.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol
import logging

from PyQt6.QtCore import QObject, pyqtSignal

from config import EditorConfig
from edge_creation import EdgeCreationProtocol
from geometry import (
    CoordinateTransform, Rect, Point, is_finite,
    node_rect, port_rect, port_center, edge_path, distance_to_path
)
from graph_model import GraphModel
from models import EdgeData, NodeData, GraphSnapshot, HistoryEntry, INPUT, OUTPUT
from undo import HistoryLog


logger = logging.getLogger(__name__)

LEFT_BUTTON = 0
MODULE_MIME_PREFIX = "module:"


class InteractionState(Enum):
    IDLE = "idle"
    PANNING = "panning"
    BOX_SELECTING = "box-selecting"
    DRAGGING_NODES = "dragging-nodes"
    DRAGGING_PORT = "dragging-port"


@dataclass(frozen=True)
class Hit:
    """What lies under a world point."""
    kind: str  # "background", "node", "port" or "edge"
    node_id: Optional[str] = None
    port_id: Optional[str] = None
    direction: Optional[str] = None
    data_type: str = "table"
    edge_id: Optional[str] = None

    @classmethod
    def background(cls) -> "Hit":
        return cls("background")


class RenderSurface(Protocol):
    """What the controller needs from whatever draws the canvas."""

    def width(self) -> float: ...

    def height(self) -> float: ...

    def screen_rect(self) -> Rect:
        """On-screen bounding rectangle of the canvas."""
        ...


class ControllerSignals(QObject):
    """Signals emitted by the interaction controller."""
    state_changed = pyqtSignal(str)  # InteractionState value
    history_changed = pyqtSignal()
    view_changed = pyqtSignal()
    draft_cancelled = pyqtSignal()
    repaint_requested = pyqtSignal()


class InteractionController:
    """
    Idle -> Panning | BoxSelecting | DraggingNodes | DraggingPort -> Idle.
    One gesture at a time; each completed gesture that changed the graph
    appends exactly one history entry.
    """

    def __init__(self, transform: CoordinateTransform, model: GraphModel,
                 edge_creation: EdgeCreationProtocol, history: HistoryLog,
                 surface: Optional[RenderSurface] = None, config: EditorConfig = None):
        self.transform = transform
        self.model = model
        self.edge_creation = edge_creation
        self.history = history
        self.surface = surface
        self.config = config or transform.config
        self.signals = ControllerSignals()

        # Dropped nodes wait for a backend module id before taking edges.
        self.link_new_nodes = False

        self._state = InteractionState.IDLE
        self._shift_pressed = False
        self._last_point: Point = (0.0, 0.0)
        self._box_start: Point = (0.0, 0.0)
        self._box_end: Point = (0.0, 0.0)
        self._drag_start_positions: dict[str, tuple[float, float]] = {}
        self._pointer_world: Optional[Point] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def shift_pressed(self) -> bool:
        return self._shift_pressed

    @property
    def dragged_node_ids(self) -> tuple[str, ...]:
        return tuple(self._drag_start_positions)

    @property
    def pointer_world(self) -> Optional[Point]:
        """Current pointer in world space while a port is dragged."""
        return self._pointer_world

    @property
    def select_box(self) -> Optional[Rect]:
        """Canvas-local selection rectangle while box selecting."""
        if self._state != InteractionState.BOX_SELECTING:
            return None
        return Rect.from_points(self._box_start, self._box_end)

    def _set_state(self, state: InteractionState) -> None:
        if state != self._state:
            logger.debug("Interaction %s -> %s", self._state.value, state.value)
            self._state = state
            self.signals.state_changed.emit(state.value)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def capture_snapshot(self) -> GraphSnapshot:
        return self.model.snapshot(self.transform.offset_x, self.transform.offset_y)

    def record(self, action: str, description: str) -> HistoryEntry:
        entry = self.history.add_entry(action, description, self.capture_snapshot())
        self.signals.history_changed.emit()
        return entry

    def restore_snapshot(self, snapshot: GraphSnapshot) -> None:
        self.model.restore(snapshot)
        self.transform.set_pan(snapshot.offset_x, snapshot.offset_y)
        self.signals.view_changed.emit()
        self.signals.repaint_requested.emit()

    def undo(self) -> bool:
        if self._state != InteractionState.IDLE:
            return False
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self.restore_snapshot(snapshot)
        self.signals.history_changed.emit()
        return True

    def redo(self) -> bool:
        if self._state != InteractionState.IDLE:
            return False
        snapshot = self.history.redo()
        if snapshot is None:
            return False
        self.restore_snapshot(snapshot)
        self.signals.history_changed.emit()
        return True

    def jump_to_entry(self, entry_id: str) -> bool:
        if self._state != InteractionState.IDLE:
            return False
        snapshot = self.history.jump_to_entry(entry_id)
        if snapshot is None:
            return False
        self.restore_snapshot(snapshot)
        self.signals.history_changed.emit()
        return True

    # ------------------------------------------------------------------
    # Geometry helpers
    # ------------------------------------------------------------------
    def _to_local(self, x: float, y: float) -> Optional[Point]:
        if not is_finite(x, y):
            return None
        if self.surface is None:
            return (x, y)
        rect = self.surface.screen_rect()
        return (x - rect.x, y - rect.y)

    def edge_geometry(self, edge: EdgeData):
        """Bezier control points for an edge in world space, or None."""
        source = self.model.get_node(edge.source_node_id)
        target = self.model.get_node(edge.target_node_id)
        if source is None or target is None:
            return None
        start = port_center(source, edge.source_port_id, OUTPUT, self.config)
        end = port_center(target, edge.target_port_id, INPUT, self.config)
        if start is None or end is None:
            return None
        return edge_path(start, end, self.config)

    def preview_path(self):
        """Bezier for the edge being drawn, from the anchor port to the pointer."""
        draft = self.edge_creation.draft
        if draft is None or self._pointer_world is None:
            return None
        anchor = self.model.get_node(draft.anchor_node_id)
        if anchor is None:
            return None
        anchor_point = port_center(anchor, draft.anchor_port_id, draft.anchor_direction, self.config)
        if anchor_point is None:
            return None
        if draft.anchor_direction == OUTPUT:
            return edge_path(anchor_point, self._pointer_world, self.config)
        return edge_path(self._pointer_world, anchor_point, self.config)

    def pick(self, wx: float, wy: float) -> Hit:
        """Ports first, then node bodies topmost first, then edges."""
        nodes = list(reversed(self.model.nodes))
        for node in nodes:
            for direction, ports in ((INPUT, node.inputs), (OUTPUT, node.outputs)):
                for index, port in enumerate(ports):
                    if port_rect(node, index, direction, self.config).contains(wx, wy):
                        return Hit("port", node_id=node.id, port_id=port.id,
                                   direction=direction, data_type=port.type)
        for node in nodes:
            if node_rect(node, self.config).contains(wx, wy):
                return Hit("node", node_id=node.id)

        tolerance = self.config.edge_hit_tolerance / self.transform.zoom
        for edge in reversed(self.model.edges):
            path = self.edge_geometry(edge)
            if path and distance_to_path(path, wx, wy, self.config.edge_samples) <= tolerance:
                return Hit("edge", edge_id=edge.id)
        return Hit.background()

    # ------------------------------------------------------------------
    # Pointer
    # ------------------------------------------------------------------
    def pointer_down(self, x: float, y: float, button: int = LEFT_BUTTON,
                     shift: Optional[bool] = None, hit: Optional[Hit] = None) -> None:
        if self._state != InteractionState.IDLE or button != LEFT_BUTTON:
            return
        local = self._to_local(x, y)
        if local is None:
            return
        world = self.transform.screen_to_world(*local)
        if world is None:
            return
        hit = hit or self.pick(*world)

        if hit.kind == "port":
            self._begin_port_drag(hit, world)
        elif hit.kind == "node":
            self._begin_node_drag(hit.node_id, local)
        elif hit.kind == "edge":
            self.model.select_edge(hit.edge_id)
        else:
            shift = self._shift_pressed if shift is None else shift
            self._last_point = local
            if shift:
                self._box_start = self._box_end = local
                self._set_state(InteractionState.BOX_SELECTING)
            else:
                self.model.select_node(None)
                self._set_state(InteractionState.PANNING)
        self.signals.repaint_requested.emit()

    def _begin_port_drag(self, hit: Hit, world: Point) -> None:
        if not self.edge_creation.start(hit.node_id, hit.port_id, hit.direction, hit.data_type):
            return
        self._pointer_world = world
        self._set_state(InteractionState.DRAGGING_PORT)

    def _begin_node_drag(self, node_id: str, local: Point) -> None:
        if node_id not in self.model.selected_node_ids:
            self.model.select_node(node_id)
        self._drag_start_positions = {}
        for dragged_id in self.model.selected_node_ids:
            node = self.model.get_node(dragged_id)
            self._drag_start_positions[dragged_id] = (node.position.x, node.position.y)
        self._last_point = local
        self._set_state(InteractionState.DRAGGING_NODES)

    def pointer_move(self, x: float, y: float) -> None:
        local = self._to_local(x, y)
        if local is None or self._state == InteractionState.IDLE:
            return
        dx = local[0] - self._last_point[0]
        dy = local[1] - self._last_point[1]

        if self._state == InteractionState.PANNING:
            self.transform.pan(dx, dy)
            self._last_point = local
            self.signals.view_changed.emit()
        elif self._state == InteractionState.DRAGGING_NODES:
            zoom = self.transform.zoom
            self.model.move_nodes(self._drag_start_positions, dx / zoom, dy / zoom)
            self._last_point = local
        elif self._state == InteractionState.BOX_SELECTING:
            self._box_end = local
        elif self._state == InteractionState.DRAGGING_PORT:
            self._pointer_world = self.transform.screen_to_world(*local)
        self.signals.repaint_requested.emit()

    def pointer_up(self, x: float, y: float, button: int = LEFT_BUTTON,
                   hit: Optional[Hit] = None) -> None:
        if self._state == InteractionState.IDLE or button != LEFT_BUTTON:
            return
        local = self._to_local(x, y)

        if self._state == InteractionState.BOX_SELECTING:
            if local is not None:
                self._box_end = local
            self._finish_box_select()
        elif self._state == InteractionState.DRAGGING_NODES:
            self._finish_node_drag()
        elif self._state == InteractionState.DRAGGING_PORT:
            self._finish_port_drag(local, hit)

        self._drag_start_positions = {}
        self._pointer_world = None
        self._set_state(InteractionState.IDLE)
        self.signals.repaint_requested.emit()

    def _finish_box_select(self) -> None:
        corner_a = self.transform.screen_to_world(*self._box_start)
        corner_b = self.transform.screen_to_world(*self._box_end)
        box = Rect.from_points(corner_a, corner_b)
        hits = [n.id for n in self.model.nodes if node_rect(n, self.config).intersects(box)]
        logger.debug("Box selected %d nodes", len(hits))
        self.model.select_nodes(hits)

    def _finish_node_drag(self) -> None:
        moved = 0
        for node_id, (start_x, start_y) in self._drag_start_positions.items():
            node = self.model.get_node(node_id)
            if node and (node.position.x, node.position.y) != (start_x, start_y):
                moved += 1
        if moved:
            self.record("move-node", f"Moved {moved} node{'s' if moved != 1 else ''}")

    def _finish_port_drag(self, local: Optional[Point], hit: Optional[Hit]) -> None:
        if hit is None and local is not None:
            world = self.transform.screen_to_world(*local)
            hit = self.pick(*world)

        edge = None
        if hit is not None and hit.kind == "port":
            edge = self.edge_creation.complete(hit.node_id, hit.port_id, hit.direction)
        else:
            self.edge_creation.cancel()

        if edge is None:
            self.signals.draft_cancelled.emit()
            return
        self.record("create-edge", f"Connected {self._describe_port(edge.source_node_id, edge.source_port_id)}"
                                   f" to {self._describe_port(edge.target_node_id, edge.target_port_id)}")

    def reset_gesture(self) -> None:
        """Abandon whatever gesture is in flight without recording anything."""
        self.edge_creation.cancel()
        self._drag_start_positions = {}
        self._pointer_world = None
        self._set_state(InteractionState.IDLE)

    def cancel_port_drag(self) -> bool:
        if self._state != InteractionState.DRAGGING_PORT:
            return False
        self.edge_creation.cancel()
        self._pointer_world = None
        self._set_state(InteractionState.IDLE)
        self.signals.draft_cancelled.emit()
        self.signals.repaint_requested.emit()
        return True

    # ------------------------------------------------------------------
    # Wheel
    # ------------------------------------------------------------------
    def wheel(self, delta: float, x: float, y: float) -> None:
        """Zoom in for positive delta, out for negative, about the pointer."""
        local = self._to_local(x, y)
        if local is None or not is_finite(delta) or delta == 0:
            return
        factor = self.config.wheel_zoom_factor if delta > 0 else 1 / self.config.wheel_zoom_factor
        self.transform.zoom_toward(self.transform.zoom * factor, *local)
        self.signals.view_changed.emit()
        self.signals.repaint_requested.emit()

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------
    def key_down(self, key: str, ctrl: bool = False, meta: bool = False, shift: bool = False) -> bool:
        """Returns True when the key was handled."""
        if key == "Shift":
            self._shift_pressed = True
            return True
        if key == "Escape":
            return self.cancel_port_drag()
        if key in ("Delete", "Backspace"):
            if self._state != InteractionState.IDLE:
                return False
            return self.delete_selection() > 0

        if not (ctrl or meta):
            return False
        letter = key.lower()
        if letter == "z" and not shift:
            self.undo()
            return True
        if letter == "y" or (letter == "z" and shift):
            self.redo()
            return True
        return False

    def key_up(self, key: str) -> bool:
        if key == "Shift":
            self._shift_pressed = False
            return True
        return False

    def delete_selection(self) -> int:
        """Remove the selected edge, or every selected node. Returns removals."""
        edge_id = self.model.selected_edge_id
        if edge_id is not None:
            edge = self.model.get_edge(edge_id)
            if edge and self.model.remove_edge(edge_id):
                self.record("delete-edge", f"Deleted connection {self._describe_port(edge.source_node_id, edge.source_port_id)}"
                                           f" to {self._describe_port(edge.target_node_id, edge.target_port_id)}")
                return 1
            return 0

        removed = 0
        for node_id in self.model.selected_node_ids:
            node = self.model.get_node(node_id)
            if node and self.model.remove_node(node_id):
                removed += 1
                self.record("delete-node", f"Deleted {node.label or node.type}")
        return removed

    def update_node(self, node_id: str, fields: dict) -> bool:
        """Apply option edits to one node as a single history entry."""
        if self._state != InteractionState.IDLE:
            return False
        node = self.model.get_node(node_id)
        if node is None:
            return False
        changes = {name: value for name, value in fields.items()
                   if name in GraphModel.UPDATABLE_FIELDS and getattr(node, name) != value}
        if not changes:
            return False
        self.model.update_node(node_id, changes)
        self.record("update-node", f"Updated {node.label or node.type}")
        self.signals.repaint_requested.emit()
        return True

    # ------------------------------------------------------------------
    # Drag and drop
    # ------------------------------------------------------------------
    def drop(self, payload: str, x: float, y: float) -> Optional[NodeData]:
        """Create a node from a 'module:<type>' payload dropped at a screen point."""
        if not payload or not payload.startswith(MODULE_MIME_PREFIX):
            logger.debug("Ignored drop payload %r", payload)
            return None
        module_type = payload[len(MODULE_MIME_PREFIX):].strip()
        if not module_type:
            return None
        local = self._to_local(x, y)
        if local is None:
            return None
        world = self.transform.screen_to_world(*local)
        node = self.model.create_node(module_type, world[0], world[1], pending=self.link_new_nodes)
        if node is None:
            return None
        self.record("create-node", f"Created {node.label or module_type}")
        self.signals.repaint_requested.emit()
        return node

    def _describe_port(self, node_id: str, port_id: str) -> str:
        node = self.model.get_node(node_id)
        name = (node.label or node.type) if node else node_id
        return f"{name}.{port_id}"
