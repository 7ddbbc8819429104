"""
FlowCanvas - Main Application
Desktop window hosting the dataflow canvas, its module palette and the
history and node option docks.
"""

import json
import logging
import os
import sys

from PyQt6.QtWidgets import QApplication, QMainWindow, QToolBar, QStatusBar, QFileDialog, QMessageBox
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence
from pydantic import ValidationError

from canvas import DataflowCanvas
from config import EditorConfig
from widgets import ModulePalette, HistoryDockWidget, NodeOptionsDockWidget


logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """
    Main application window.
    """

    def __init__(self, config: EditorConfig = None):
        super().__init__()
        self.setWindowTitle("FlowCanvas")
        self.setMinimumSize(1000, 700)
        self.resize(1280, 800)

        self.canvas = DataflowCanvas(config, self)
        self.editor = self.canvas.editor
        self.setCentralWidget(self.canvas)

        self._setup_docks()
        self._setup_menu()
        self._setup_toolbar()
        self._setup_statusbar()

        signals = self.editor.controller.signals
        signals.history_changed.connect(self._update_history_actions)
        signals.state_changed.connect(self._on_state_changed)
        signals.draft_cancelled.connect(lambda: self.statusbar.showMessage("Connection cancelled", 2000))

        model_signals = self.editor.model.signals
        model_signals.selection_changed.connect(self._refresh_node_options)
        model_signals.graph_reset.connect(self._refresh_node_options)
        model_signals.node_changed.connect(self._refresh_node_options)
        model_signals.node_removed.connect(self._refresh_node_options)
        self._update_history_actions()
        self._refresh_node_options()

    def _setup_docks(self) -> None:
        """Setup the history and node options docks."""
        self.history_dock = HistoryDockWidget(self)
        self.history_dock.jump_requested.connect(self.editor.jump_to_entry)
        self.history_dock.clear_requested.connect(self.editor.clear_history)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, self.history_dock)

        self.node_dock = NodeOptionsDockWidget(self)
        self.node_dock.update_requested.connect(self.editor.update_node)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, self.node_dock)

    def _setup_menu(self) -> None:
        """Setup the menu bar."""
        menubar = self.menuBar()

        # File menu
        file_menu = menubar.addMenu("&File")

        open_action = QAction("&Open Workflow...", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._open_workflow)
        file_menu.addAction(open_action)

        clear_action = QAction("&New Workflow", self)
        clear_action.setShortcut(QKeySequence.StandardKey.New)
        clear_action.triggered.connect(self.editor.clear)
        file_menu.addAction(clear_action)

        file_menu.addSeparator()

        exit_action = QAction("E&xit", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        # Edit menu; the canvas handles the shortcuts itself
        edit_menu = menubar.addMenu("&Edit")

        self.undo_action = QAction("&Undo", self)
        self.undo_action.triggered.connect(self.editor.undo)
        edit_menu.addAction(self.undo_action)

        self.redo_action = QAction("&Redo", self)
        self.redo_action.triggered.connect(self.editor.redo)
        edit_menu.addAction(self.redo_action)

        edit_menu.addSeparator()

        delete_action = QAction("&Delete Selection", self)
        delete_action.triggered.connect(self.editor.controller.delete_selection)
        edit_menu.addAction(delete_action)

        # View menu
        view_menu = menubar.addMenu("&View")

        zoom_in_action = QAction("Zoom &In", self)
        zoom_in_action.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zoom_in_action.triggered.connect(lambda: self._zoom_by(self.editor.config.wheel_zoom_factor))
        view_menu.addAction(zoom_in_action)

        zoom_out_action = QAction("Zoom &Out", self)
        zoom_out_action.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zoom_out_action.triggered.connect(lambda: self._zoom_by(1 / self.editor.config.wheel_zoom_factor))
        view_menu.addAction(zoom_out_action)

        fit_action = QAction("&Fit to View", self)
        fit_action.triggered.connect(self._fit_to_view)
        view_menu.addAction(fit_action)

        view_menu.addSeparator()
        view_menu.addAction(self.history_dock.toggleViewAction())
        view_menu.addAction(self.node_dock.toggleViewAction())

    def _setup_toolbar(self) -> None:
        """Setup the toolbar with module palette."""
        toolbar = QToolBar("Modules")
        toolbar.setMovable(False)
        self.addToolBar(Qt.ToolBarArea.TopToolBarArea, toolbar)

        self.palette = ModulePalette()
        toolbar.addWidget(self.palette)

    def _setup_statusbar(self) -> None:
        """Setup the status bar."""
        self.statusbar = QStatusBar()
        self.setStatusBar(self.statusbar)

    def _update_history_actions(self) -> None:
        history = self.editor.history
        self.undo_action.setEnabled(history.can_undo())
        self.redo_action.setEnabled(history.can_redo())
        self.history_dock.set_entries(history.entries, history.cursor)
        entry = history.current_entry
        if entry is not None:
            self.statusbar.showMessage(entry.description, 3000)

    def _refresh_node_options(self, *args) -> None:
        selected = self.editor.model.selected_node_ids
        node = self.editor.model.get_node(selected[0]) if len(selected) == 1 else None
        self.node_dock.set_node(node)

    def _on_state_changed(self, state: str) -> None:
        logger.debug("Canvas state: %s", state)

    def _zoom_by(self, factor: float) -> None:
        transform = self.editor.transform
        transform.zoom_toward(transform.zoom * factor, self.canvas.width() / 2, self.canvas.height() / 2)
        self.canvas.update()

    def _fit_to_view(self) -> None:
        self.editor.transform.set_view(self.editor.fitted_view(self.editor.model.nodes))
        self.canvas.update()

    def _open_workflow(self) -> None:
        """Load a workflow version exported by the backend as JSON."""
        path, _ = QFileDialog.getOpenFileName(self, "Open Workflow", "", "Workflow JSON (*.json)")
        if not path:
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not open workflow %s: %s", path, e)
            QMessageBox.warning(self, "Open Failed", f"Could not open workflow: {path}")
            return
        if not isinstance(data, dict):
            QMessageBox.warning(self, "Open Failed", f"Not a workflow file: {path}")
            return
        self.editor.load_workflow(data)


def main():
    logging.basicConfig(
        level=os.environ.get("FLOWCANVAS_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    try:
        config = EditorConfig.from_env()
    except ValidationError as e:
        logger.error("Invalid FLOWCANVAS_* setting:\n%s", e)
        sys.exit(2)

    app = QApplication(sys.argv)
    window = MainWindow(config)
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
