"""
FlowCanvas - Geometry
Screen/world transform, node and port layout, edge curves and view fitting.
Everything here is a pure function of model state; nothing reads a rendered widget.
"""

from dataclasses import dataclass
from typing import Iterable, Optional
import logging
import math

from config import EditorConfig
from models import NodeData, ViewState, INPUT


logger = logging.getLogger(__name__)

Point = tuple[float, float]


def is_finite(*values: float) -> bool:
    """True when every value is a real, finite number."""
    try:
        return all(math.isfinite(v) for v in values)
    except TypeError:
        return False


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle."""
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_points(cls, a: Point, b: Point) -> "Rect":
        """The box spanning two corners, whichever way the drag went."""
        left, right = min(a[0], b[0]), max(a[0], b[0])
        top, bottom = min(a[1], b[1]), max(a[1], b[1])
        return cls(left, top, right - left, bottom - top)

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, px: float, py: float) -> bool:
        return self.left <= px <= self.right and self.top <= py <= self.bottom

    def intersects(self, other: "Rect") -> bool:
        return (self.left <= other.right and other.left <= self.right and
                self.top <= other.bottom and other.top <= self.bottom)

    def united(self, other: "Rect") -> "Rect":
        left = min(self.left, other.left)
        top = min(self.top, other.top)
        return Rect(left, top,
                    max(self.right, other.right) - left,
                    max(self.bottom, other.bottom) - top)


# ============================================================================
# Coordinate Transform
# ============================================================================
class CoordinateTransform:
    """
    Maps between screen (canvas-local pointer) and world (graph) coordinates.
    screen = world * zoom + offset
    """

    def __init__(self, config: EditorConfig = None):
        self.config = config or EditorConfig()
        self.offset_x = 0.0
        self.offset_y = 0.0
        self.zoom = 1.0

    @property
    def state(self) -> ViewState:
        return ViewState(self.offset_x, self.offset_y, self.zoom)

    def screen_to_world(self, sx: float, sy: float) -> Optional[Point]:
        if not is_finite(sx, sy):
            logger.debug("Rejected non-finite screen point (%r, %r)", sx, sy)
            return None
        return ((sx - self.offset_x) / self.zoom, (sy - self.offset_y) / self.zoom)

    def world_to_screen(self, wx: float, wy: float) -> Optional[Point]:
        if not is_finite(wx, wy):
            logger.debug("Rejected non-finite world point (%r, %r)", wx, wy)
            return None
        return (wx * self.zoom + self.offset_x, wy * self.zoom + self.offset_y)

    def pan(self, dx: float, dy: float) -> None:
        """Shift the view by an unscaled screen-space delta."""
        if not is_finite(dx, dy):
            logger.debug("Ignored non-finite pan (%r, %r)", dx, dy)
            return
        self.offset_x += dx
        self.offset_y += dy

    def set_pan(self, offset_x: float, offset_y: float) -> None:
        if not is_finite(offset_x, offset_y):
            return
        self.offset_x = offset_x
        self.offset_y = offset_y

    def zoom_toward(self, new_zoom: float, pivot_x: float = None, pivot_y: float = None) -> None:
        """
        Change zoom keeping the world point under the pivot fixed on screen.
        Without a pivot only the scale changes. Finite values outside the
        configured range, zero and negatives included, are clamped.
        """
        if not is_finite(new_zoom):
            logger.debug("Ignored non-finite zoom %r", new_zoom)
            return
        new_zoom = self.config.clamp_zoom(new_zoom)

        if pivot_x is None or pivot_y is None or not is_finite(pivot_x, pivot_y):
            self.zoom = new_zoom
            return

        wx, wy = self.screen_to_world(pivot_x, pivot_y)
        self.zoom = new_zoom
        self.offset_x = pivot_x - wx * new_zoom
        self.offset_y = pivot_y - wy * new_zoom

    def set_view(self, view: ViewState) -> None:
        if not is_finite(view.offset_x, view.offset_y, view.zoom):
            return
        self.offset_x = view.offset_x
        self.offset_y = view.offset_y
        self.zoom = self.config.clamp_zoom(view.zoom)

    def reset(self) -> None:
        self.offset_x = 0.0
        self.offset_y = 0.0
        self.zoom = 1.0


# ============================================================================
# Node / Port Layout
# ============================================================================
def node_size(node: NodeData, config: EditorConfig) -> tuple[float, float]:
    """Rendered size in world units."""
    if node.is_iconized:
        return (config.iconized_size, config.iconized_size)
    if node.width:
        width = node.width
    else:
        label_width = len(node.label) * config.label_char_width + config.label_padding
        width = max(config.default_node_width, label_width)
    height = node.height or config.default_node_height
    return (width, height)


def node_rect(node: NodeData, config: EditorConfig) -> Rect:
    width, height = node_size(node, config)
    return Rect(node.position.x, node.position.y, width, height)


def port_rect(node: NodeData, index: int, direction: str, config: EditorConfig) -> Rect:
    """
    Inputs sit just outside the left edge, outputs just outside the right edge,
    stacked and vertically centred on the node.
    """
    width, height = node_size(node, config)
    ports = node.inputs if direction == INPUT else node.outputs
    count = len(ports)
    step = config.port_size + config.port_margin
    total = count * config.port_size + max(count - 1, 0) * config.port_margin
    top = node.position.y + height / 2 - total / 2 + index * step
    if direction == INPUT:
        left = node.position.x - config.port_size
    else:
        left = node.position.x + width
    return Rect(left, top, config.port_size, config.port_size)


def port_center(node: NodeData, port_id: str, direction: str, config: EditorConfig) -> Optional[Point]:
    ports = node.inputs if direction == INPUT else node.outputs
    for index, port in enumerate(ports):
        if port.id == port_id:
            return port_rect(node, index, direction, config).center
    return None


def bounding_rect(nodes: Iterable[NodeData], config: EditorConfig) -> Optional[Rect]:
    box = None
    for node in nodes:
        rect = node_rect(node, config)
        box = rect if box is None else box.united(rect)
    return box


# ============================================================================
# Edge Curves
# ============================================================================
def edge_path(source: Point, target: Point, config: EditorConfig) -> tuple[Point, Point, Point, Point]:
    """Cubic bezier (start, ctrl1, ctrl2, end) leaving and entering horizontally."""
    sx, sy = source
    tx, ty = target
    offset = min(abs(tx - sx) * 0.5, config.edge_control_offset)
    return ((sx, sy), (sx + offset, sy), (tx - offset, ty), (tx, ty))


def bezier_point(path: tuple[Point, Point, Point, Point], t: float) -> Point:
    (x0, y0), (x1, y1), (x2, y2), (x3, y3) = path
    u = 1 - t
    a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
    return (a * x0 + b * x1 + c * x2 + d * x3,
            a * y0 + b * y1 + c * y2 + d * y3)


def distance_to_path(path: tuple[Point, Point, Point, Point], px: float, py: float, samples: int) -> float:
    """Approximate distance from a point to a bezier using its sampled polyline."""
    points = [bezier_point(path, i / samples) for i in range(samples + 1)]
    best = math.inf
    for (ax, ay), (bx, by) in zip(points, points[1:]):
        best = min(best, _segment_distance(px, py, ax, ay, bx, by))
    return best


def _segment_distance(px, py, ax, ay, bx, by) -> float:
    dx, dy = bx - ax, by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(px - ax, py - ay)
    t = max(0.0, min(1.0, ((px - ax) * dx + (py - ay) * dy) / length_sq))
    return math.hypot(px - (ax + t * dx), py - (ay + t * dy))


# ============================================================================
# Fit To View
# ============================================================================
def fit_view(nodes: Iterable[NodeData], width: float, height: float, config: EditorConfig) -> ViewState:
    """
    Pan/zoom that centres every node in a width x height viewport.
    Scales down to fit, never up, and stays inside the zoom range.
    """
    box = bounding_rect(nodes, config)
    if box is None or width <= 0 or height <= 0:
        return ViewState()

    avail_w = max(width - 2 * config.fit_padding, 1.0)
    avail_h = max(height - 2 * config.fit_padding, 1.0)
    zoom = 1.0
    if box.width > 0:
        zoom = min(zoom, avail_w / box.width)
    if box.height > 0:
        zoom = min(zoom, avail_h / box.height)
    zoom = config.clamp_zoom(zoom)

    cx, cy = box.center
    return ViewState(
        offset_x=width / 2 - cx * zoom,
        offset_y=height / 2 - cy * zoom,
        zoom=zoom
    )
