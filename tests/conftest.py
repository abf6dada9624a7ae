"""
Shared test fixtures for widget board tests.

Provides reusable layout items, engines, drag controllers and board
managers for testing the layout core and the backend.
"""

import pytest

from board_core.models import LayoutItem, LayoutMode, Point, Size
from board_core.layout import FreeLayoutEngine, GridLayoutEngine
from board_core.drag import DragController
from board_backend.board_manager import BoardManager


def make_item(item_id: str, x: float, y: float, w: float = 100, h: float = 100, locked: bool = False) -> LayoutItem:
    """Build a layout item from plain numbers."""
    return LayoutItem(id=item_id, position=Point(x=x, y=y), size=Size(w=w, h=h), locked=locked)


@pytest.fixture
def free_engine() -> FreeLayoutEngine:
    """A free-placement engine holding one unlocked and one locked item."""
    engine = FreeLayoutEngine()
    engine.load([
        make_item("a", 10, 10),
        make_item("pinned", 300, 300, locked=True),
    ])
    return engine


@pytest.fixture
def grid_engine() -> GridLayoutEngine:
    """A grid engine with step 10 and one item at the origin."""
    engine = GridLayoutEngine(step=10)
    engine.load([make_item("a", 0, 0, 10, 10)])
    return engine


@pytest.fixture
def drag(free_engine) -> DragController:
    return DragController(free_engine)


@pytest.fixture
def manager() -> BoardManager:
    """A fresh manager with a free-mode board active."""
    manager = BoardManager()
    manager.initialize()
    manager.create_board(name="Test Board", layout_mode=LayoutMode.FREE)
    return manager
