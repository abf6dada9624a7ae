"""
Core data models for widget boards.

These models define the canonical schema for the layout subsystem:
- Geometry primitives (Point, Size, Delta) in board-local pixels
- LayoutItem, the geometry-only view of a widget the layout engine works on
- Board and WidgetInstance as stored by the widget store

Widget content lives in `WidgetInstance.state`, an opaque mapping the
layout code never inspects.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field
import uuid


class LayoutMode(str, Enum):
    """Placement policy for a board."""
    GRID = "grid"  # Positions snap to a fixed step
    FREE = "free"  # Unconstrained placement


class BackgroundType(str, Enum):
    """Board background kinds."""
    COLOR = "color"
    IMAGE = "image"


def generate_board_id() -> str:
    """Generate a unique board ID."""
    return f"board_{uuid.uuid4().hex[:8]}"


def generate_widget_id() -> str:
    """Generate a unique widget instance ID."""
    return f"wi_{uuid.uuid4().hex[:8]}"


class Point(BaseModel):
    """A point in board-local coordinates."""
    x: float = 0
    y: float = 0


class Size(BaseModel):
    """Width and height of an item."""
    w: float
    h: float


class Delta(BaseModel):
    """An incremental displacement."""
    dx: float = 0
    dy: float = 0


class LayoutItem(BaseModel):
    """The geometry of one widget, as seen by the layout engine."""
    id: str
    position: Point
    size: Size
    locked: bool = False

    def center(self) -> tuple[float, float]:
        """Get the center point of the item."""
        return (self.position.x + self.size.w / 2, self.position.y + self.size.h / 2)

    def bounds(self) -> tuple[float, float, float, float]:
        """Get the bounding box (x, y, right, bottom)."""
        return (
            self.position.x,
            self.position.y,
            self.position.x + self.size.w,
            self.position.y + self.size.h,
        )

    def contains(self, point: Point) -> bool:
        """Check whether a point lies inside the item (edges inclusive)."""
        left, top, right, bottom = self.bounds()
        return left <= point.x <= right and top <= point.y <= bottom


class BoardBackground(BaseModel):
    type: str = BackgroundType.COLOR.value
    value: str = "#e8ebf0"


class Board(BaseModel):
    """
    A board: the 2-D canvas holding one set of widget instances.

    `layout_mode` selects the layout engine policy; `locked` disables
    dragging board-wide regardless of per-widget locks.
    """
    id: str = Field(default_factory=generate_board_id)
    name: str = "Default Board"
    layout_mode: LayoutMode = LayoutMode.GRID
    zoom: float = 1.0
    locked: bool = False
    background: BoardBackground = Field(default_factory=BoardBackground)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return self.model_dump(mode="json")


class WidgetInstance(BaseModel):
    """A placed, stateful widget on a board."""
    id: str = Field(default_factory=generate_widget_id)
    board_id: str
    definition_id: str
    state: dict[str, Any] = Field(default_factory=dict)
    position: Point = Field(default_factory=Point)
    size: Size = Field(default_factory=lambda: Size(w=240, h=180))
    z_index: int = 0
    locked: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_layout_item(self) -> LayoutItem:
        """Reduce the widget to its geometry."""
        return LayoutItem(
            id=self.id,
            position=self.position.model_copy(),
            size=self.size.model_copy(),
            locked=self.locked,
        )

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return self.model_dump(mode="json")


# --- API Request/Response Models ---

class CreateBoardRequest(BaseModel):
    """Request to create a new board."""
    name: str = "New Board"
    layout_mode: LayoutMode = LayoutMode.GRID


class UpdateBoardRequest(BaseModel):
    """Request to update the active board (partial update)."""
    name: Optional[str] = None
    layout_mode: Optional[LayoutMode] = None
    locked: Optional[bool] = None


class CreateWidgetRequest(BaseModel):
    """Request to place a new widget on the active board."""
    definition_id: str
    state: dict[str, Any] = Field(default_factory=dict)
    position: Optional[Point] = None
    size: Optional[Size] = None


class UpdateWidgetRequest(BaseModel):
    """Request to update a widget's content or lock flag."""
    state: Optional[dict[str, Any]] = None
    locked: Optional[bool] = None


class MoveRequest(BaseModel):
    dx: float
    dy: float


class ResizeRequest(BaseModel):
    w: float
    h: float


class PointerDownRequest(BaseModel):
    """Pointer pressed on a widget."""
    item_id: str
    pointer_id: int
    x: float
    y: float


class PointerMoveRequest(BaseModel):
    pointer_id: int
    x: float
    y: float


class PointerReleaseRequest(BaseModel):
    pointer_id: int


class AutoAlignRequest(BaseModel):
    """Request to tidy the board; heights are rendered heights by widget ID."""
    heights: dict[str, float] = Field(default_factory=dict)
