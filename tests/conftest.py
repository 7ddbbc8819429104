import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtWidgets import QApplication

from config import EditorConfig
from editor import GraphEditor
from geometry import Rect
from models import PortSpec


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


class FakeSurface:
    """Canvas stand-in placed at an arbitrary spot on screen."""

    def __init__(self, x=0.0, y=0.0, width=800.0, height=600.0):
        self._rect = Rect(x, y, width, height)

    def width(self):
        return self._rect.width

    def height(self):
        return self._rect.height

    def screen_rect(self):
        return self._rect


@pytest.fixture
def config():
    return EditorConfig()


@pytest.fixture
def editor():
    return GraphEditor()


@pytest.fixture
def two_nodes(editor):
    """A (output 'out') at (100, 100) and B (input 'in') at (300, 100)."""
    model = editor.model
    a = model.create_node("data-source", 100, 100, inputs=[], outputs=[PortSpec("out")])
    b = model.create_node("filter", 300, 100, inputs=[PortSpec("in")], outputs=[])
    return a, b


@pytest.fixture
def make_surface():
    return FakeSurface
