"""
FlowCanvas - Dataflow Canvas Widget
Qt render surface: forwards Qt input to the interaction controller and paints
the graph from model geometry.
"""

from typing import Optional

from PyQt6.QtWidgets import QWidget
from PyQt6.QtCore import Qt, QPoint, QPointF, QRectF
from PyQt6.QtGui import (
    QPainter, QPen, QBrush, QColor, QFont, QPainterPath,
    QMouseEvent, QKeyEvent, QWheelEvent, QDragEnterEvent, QDropEvent
)

from config import EditorConfig
from editor import GraphEditor
from geometry import Rect, node_rect, port_rect
from interaction import LEFT_BUTTON, MODULE_MIME_PREFIX
from models import INPUT, OUTPUT


# ============================================================================
# Color Palette
# ============================================================================
class Colors:
    """Canvas color palette."""
    BACKGROUND = QColor("#FAFAFA")
    GRID = QColor("#E0E0E0")
    NODE_BG = QColor("#FFFFFF")
    NODE_PENDING_BG = QColor("#ECEFF1")
    NODE_BORDER = QColor("#455A64")
    TEXT = QColor("#212121")
    SELECTION = QColor("#00BCD4")
    PORT = QColor("#607D8B")
    EDGE = QColor("#6C757D")
    EDGE_SELECTED = QColor("#0D6EFD")
    EDGE_PREVIEW = QColor("#FF5722")
    SELECT_BOX = QColor(0, 188, 212, 40)


# Qt key -> controller key name
KEY_NAMES = {
    Qt.Key.Key_Shift: "Shift",
    Qt.Key.Key_Delete: "Delete",
    Qt.Key.Key_Backspace: "Backspace",
    Qt.Key.Key_Escape: "Escape",
    Qt.Key.Key_Z: "z",
    Qt.Key.Key_Y: "y",
}


class DataflowCanvas(QWidget):
    """
    Canvas widget hosting a GraphEditor.
    Event positions are mapped to global coordinates so the controller can
    subtract screen_rect() the same way for pointer and drop events.
    """

    GRID_SIZE = 25

    def __init__(self, config: EditorConfig = None, parent=None):
        super().__init__(parent)
        self.editor = GraphEditor(surface=self, config=config)
        self.controller = self.editor.controller

        self.setAcceptDrops(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMouseTracking(True)
        self.setMinimumSize(400, 300)

        self.controller.signals.repaint_requested.connect(self.update)
        self.controller.signals.view_changed.connect(self.update)
        self.editor.model.signals.graph_reset.connect(self.update)

    # ------------------------------------------------------------------
    # Render surface
    # ------------------------------------------------------------------
    def screen_rect(self) -> Rect:
        origin = self.mapToGlobal(QPoint(0, 0))
        return Rect(origin.x(), origin.y(), self.width(), self.height())

    def _global(self, local: QPointF) -> tuple[float, float]:
        origin = self.mapToGlobal(QPoint(0, 0))
        return (origin.x() + local.x(), origin.y() + local.y())

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------
    @staticmethod
    def _button(event: QMouseEvent) -> Optional[int]:
        if event.button() == Qt.MouseButton.LeftButton:
            return LEFT_BUTTON
        return None

    def mousePressEvent(self, event: QMouseEvent) -> None:
        button = self._button(event)
        if button is None:
            super().mousePressEvent(event)
            return
        shift = bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)
        self.controller.pointer_down(*self._global(event.position()), button=button,
                                     shift=shift or self.controller.shift_pressed)
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        self.controller.pointer_move(*self._global(event.position()))

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        button = self._button(event)
        if button is None:
            super().mouseReleaseEvent(event)
            return
        self.controller.pointer_up(*self._global(event.position()), button=button)
        event.accept()

    def wheelEvent(self, event: QWheelEvent) -> None:
        self.controller.wheel(event.angleDelta().y(), *self._global(event.position()))
        event.accept()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        key = KEY_NAMES.get(event.key())
        modifiers = event.modifiers()
        handled = key is not None and self.controller.key_down(
            key,
            ctrl=bool(modifiers & Qt.KeyboardModifier.ControlModifier),
            meta=bool(modifiers & Qt.KeyboardModifier.MetaModifier),
            shift=bool(modifiers & Qt.KeyboardModifier.ShiftModifier)
        )
        if handled:
            event.accept()
        else:
            super().keyPressEvent(event)

    def keyReleaseEvent(self, event: QKeyEvent) -> None:
        key = KEY_NAMES.get(event.key())
        if key is not None and self.controller.key_up(key):
            event.accept()
        else:
            super().keyReleaseEvent(event)

    def dragEnterEvent(self, event: QDragEnterEvent) -> None:
        """Accept module drops from the palette."""
        if event.mimeData().hasText() and event.mimeData().text().startswith(MODULE_MIME_PREFIX):
            event.acceptProposedAction()

    def dragMoveEvent(self, event) -> None:
        event.acceptProposedAction()

    def dropEvent(self, event: QDropEvent) -> None:
        mime = event.mimeData()
        if mime.hasText() and self.controller.drop(mime.text(), *self._global(event.position())):
            event.acceptProposedAction()
            return
        super().dropEvent(event)

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------
    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), Colors.BACKGROUND)
        self._draw_grid(painter)

        transform = self.editor.transform
        painter.save()
        painter.translate(transform.offset_x, transform.offset_y)
        painter.scale(transform.zoom, transform.zoom)
        self._draw_edges(painter)
        self._draw_nodes(painter)
        self._draw_preview(painter)
        painter.restore()

        box = self.controller.select_box
        if box is not None:
            painter.setPen(QPen(Colors.SELECTION, 1, Qt.PenStyle.DashLine))
            painter.setBrush(QBrush(Colors.SELECT_BOX))
            painter.drawRect(QRectF(box.x, box.y, box.width, box.height))
        painter.end()

    def _draw_grid(self, painter: QPainter) -> None:
        transform = self.editor.transform
        step = self.GRID_SIZE * transform.zoom
        if step < 6:
            return
        painter.setPen(QPen(Colors.GRID, 1))
        x = transform.offset_x % step
        while x < self.width():
            painter.drawLine(QPointF(x, 0), QPointF(x, self.height()))
            x += step
        y = transform.offset_y % step
        while y < self.height():
            painter.drawLine(QPointF(0, y), QPointF(self.width(), y))
            y += step

    @staticmethod
    def _bezier(path) -> QPainterPath:
        start, ctrl1, ctrl2, end = (QPointF(*p) for p in path)
        result = QPainterPath()
        result.moveTo(start)
        result.cubicTo(ctrl1, ctrl2, end)
        return result

    def _draw_edges(self, painter: QPainter) -> None:
        model = self.editor.model
        painter.setBrush(Qt.BrushStyle.NoBrush)
        for edge in model.edges:
            path = self.controller.edge_geometry(edge)
            if path is None:
                continue
            color = Colors.EDGE_SELECTED if model.is_edge_selected(edge.id) else Colors.EDGE
            painter.setPen(QPen(color, 2))
            painter.drawPath(self._bezier(path))

    def _draw_nodes(self, painter: QPainter) -> None:
        config = self.editor.config
        font = QFont("Segoe UI", 9)
        painter.setFont(font)
        for node in self.editor.model.nodes:
            rect = node_rect(node, config)
            qrect = QRectF(rect.x, rect.y, rect.width, rect.height)
            painter.setBrush(Colors.NODE_PENDING_BG if node.pending else Colors.NODE_BG)
            if node.is_selected:
                painter.setPen(QPen(Colors.SELECTION, 2))
            else:
                painter.setPen(QPen(Colors.NODE_BORDER, 1))
            painter.drawRoundedRect(qrect, 4, 4)

            if node.is_label_visible and not node.is_iconized:
                painter.setPen(Colors.TEXT)
                painter.drawText(qrect, Qt.AlignmentFlag.AlignCenter, node.label or node.type)

            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(Colors.PORT)
            for direction, ports in ((INPUT, node.inputs), (OUTPUT, node.outputs)):
                for index in range(len(ports)):
                    port = port_rect(node, index, direction, config)
                    painter.drawRect(QRectF(port.x, port.y, port.width, port.height))

    def _draw_preview(self, painter: QPainter) -> None:
        path = self.controller.preview_path()
        if path is None:
            return
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.setPen(QPen(Colors.EDGE_PREVIEW, 2, Qt.PenStyle.DashLine))
        painter.drawPath(self._bezier(path))
