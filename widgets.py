"""
FlowCanvas - Widgets
Module palette, history dock and node options dock.
"""

from datetime import datetime
from typing import Iterable, Optional

from PyQt6.QtWidgets import (
    QWidget, QLabel, QHBoxLayout, QVBoxLayout, QDockWidget, QListWidget,
    QListWidgetItem, QPushButton, QGroupBox, QFormLayout, QLineEdit, QCheckBox
)
from PyQt6.QtCore import Qt, QMimeData, pyqtSignal
from PyQt6.QtGui import QColor, QDrag, QFont

from interaction import MODULE_MIME_PREFIX
from models import HistoryEntry, NodeData
from node_types import NODE_TYPES


class ModulePaletteItem(QLabel):
    """A draggable module chip; the drag carries 'module:<type>' as text."""

    def __init__(self, module_type: str, label: str, color: QColor, parent=None):
        super().__init__(label, parent)
        self.module_type = module_type

        self.setFont(QFont("Segoe UI", 9, QFont.Weight.Bold))
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setCursor(Qt.CursorShape.OpenHandCursor)
        self.setFixedHeight(28)
        self.setMinimumWidth(70)
        self.setStyleSheet(f"""
            QLabel {{
                background-color: {color.name()};
                color: white;
                border-radius: 6px;
                padding: 5px;
            }}
            QLabel:hover {{
                background-color: {color.darker(110).name()};
            }}
        """)

    def mime_text(self) -> str:
        return f"{MODULE_MIME_PREFIX}{self.module_type}"

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:
        if event.buttons() & Qt.MouseButton.LeftButton:
            drag = QDrag(self)
            mime = QMimeData()
            mime.setText(self.mime_text())
            drag.setMimeData(mime)
            drag.exec(Qt.DropAction.CopyAction)
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:
        self.setCursor(Qt.CursorShape.OpenHandCursor)
        super().mouseReleaseEvent(event)


class ModulePalette(QWidget):
    """Palette listing every registered module type."""

    DEFAULT_COLORS = {
        "data-source": "#4CAF50",
        "script-editor": "#9C27B0",
        "filter": "#FF9800",
        "visualization": "#2196F3"
    }

    def __init__(self, parent=None):
        super().__init__(parent)
        self._items: dict[str, ModulePaletteItem] = {}

        layout = QHBoxLayout(self)
        layout.setContentsMargins(10, 5, 10, 5)
        layout.setSpacing(10)

        label = QLabel("Modules:")
        label.setFont(QFont("Segoe UI", 10, QFont.Weight.Bold))
        layout.addWidget(label)

        for node_type in NODE_TYPES:
            color = QColor(self.DEFAULT_COLORS.get(node_type.id, "#607D8B"))
            item = ModulePaletteItem(node_type.id, node_type.title, color)
            self._items[node_type.id] = item
            layout.addWidget(item)

        layout.addStretch()

        help_label = QLabel("Drag modules to canvas | Shift+drag to select | Drag ports to connect")
        help_label.setStyleSheet("color: #999; font-style: italic;")
        layout.addWidget(help_label)

    def item(self, module_type: str) -> ModulePaletteItem:
        return self._items[module_type]


# ============================================================================
# History Dock
# ============================================================================
class HistoryDockWidget(QDockWidget):
    """
    Lists every history entry with its time and description.
    Clicking an entry requests a jump to it; the current entry is bold.
    """

    jump_requested = pyqtSignal(str)  # entry id
    clear_requested = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__("History", parent)
        self.setAllowedAreas(Qt.DockWidgetArea.LeftDockWidgetArea | Qt.DockWidgetArea.RightDockWidgetArea)
        self.setMinimumWidth(220)
        self._setup_ui()

    def _setup_ui(self) -> None:
        wrapper = QWidget()
        layout = QVBoxLayout(wrapper)
        layout.setContentsMargins(10, 10, 10, 10)

        self.entry_list = QListWidget()
        self.entry_list.setWordWrap(True)
        self.entry_list.itemClicked.connect(self._on_item_clicked)
        layout.addWidget(self.entry_list)

        clear_btn = QPushButton("Clear History")
        clear_btn.clicked.connect(self.clear_requested.emit)
        layout.addWidget(clear_btn)

        self.setWidget(wrapper)

    def set_entries(self, entries: Iterable[HistoryEntry], cursor: int) -> None:
        self.entry_list.clear()
        for index, entry in enumerate(entries):
            time_text = datetime.fromtimestamp(entry.timestamp).strftime("%H:%M:%S")
            item = QListWidgetItem(f"{time_text}  {entry.description}")
            item.setData(Qt.ItemDataRole.UserRole, entry.id)
            if index == cursor:
                font = item.font()
                font.setBold(True)
                item.setFont(font)
            self.entry_list.addItem(item)
        if cursor >= 0:
            self.entry_list.setCurrentRow(cursor)

    def entry_id_at(self, row: int) -> Optional[str]:
        item = self.entry_list.item(row)
        return item.data(Qt.ItemDataRole.UserRole) if item else None

    def _on_item_clicked(self, item: QListWidgetItem) -> None:
        self.jump_requested.emit(item.data(Qt.ItemDataRole.UserRole))


# ============================================================================
# Node Options Dock
# ============================================================================
class NodeOptionsDockWidget(QDockWidget):
    """Label and display flags of the single selected node."""

    update_requested = pyqtSignal(str, dict)  # node_id, fields

    def __init__(self, parent=None):
        super().__init__("Node Options", parent)
        self.setAllowedAreas(Qt.DockWidgetArea.LeftDockWidgetArea | Qt.DockWidgetArea.RightDockWidgetArea)
        self.setMinimumWidth(220)
        self._node_id: Optional[str] = None
        self._setup_ui()
        self.set_node(None)

    def _setup_ui(self) -> None:
        wrapper = QWidget()
        layout = QVBoxLayout(wrapper)
        layout.setContentsMargins(10, 10, 10, 10)

        self.group = QGroupBox("Node")
        form = QFormLayout(self.group)
        form.setContentsMargins(10, 15, 10, 10)

        self.type_label = QLabel()
        form.addRow("Type:", self.type_label)

        self.label_edit = QLineEdit()
        self.label_edit.setPlaceholderText("Label...")
        self.label_edit.editingFinished.connect(self._on_label_edited)
        form.addRow("Label:", self.label_edit)

        self.iconized_check = QCheckBox("Iconized")
        self.iconized_check.clicked.connect(
            lambda checked: self._request({"is_iconized": checked}))
        form.addRow(self.iconized_check)

        self.label_visible_check = QCheckBox("Show label")
        self.label_visible_check.clicked.connect(
            lambda checked: self._request({"is_label_visible": checked}))
        form.addRow(self.label_visible_check)

        layout.addWidget(self.group)

        self.empty_label = QLabel("Select a single node to edit its options")
        self.empty_label.setStyleSheet("color: #999; font-style: italic;")
        self.empty_label.setWordWrap(True)
        layout.addWidget(self.empty_label)
        layout.addStretch()

        self.setWidget(wrapper)

    @property
    def node_id(self) -> Optional[str]:
        return self._node_id

    def set_node(self, node: Optional[NodeData]) -> None:
        """Show a node's options, or disable the form when node is None."""
        self._node_id = node.id if node else None
        self.group.setEnabled(node is not None)
        self.empty_label.setVisible(node is None)
        self.type_label.setText(node.type if node else "")
        self.label_edit.setText(node.label if node else "")
        self.iconized_check.setChecked(bool(node and node.is_iconized))
        self.label_visible_check.setChecked(bool(node and node.is_label_visible))

    def _on_label_edited(self) -> None:
        self._request({"label": self.label_edit.text().strip()})

    def _request(self, fields: dict) -> None:
        if self._node_id is not None:
            self.update_requested.emit(self._node_id, fields)
