"""
Layout engine for widget boards.

Holds the authoritative in-memory geometry of one board and applies
incremental moves and resizes to it. Two placement policies are provided:
- Free: positions follow the pointer, floored to whole pixels
- Grid: positions snap to a fixed step

Both policies share load/resize/hit_test/serialize and the no-op rules
(unknown id, locked item, locked board) through BaseLayoutEngine; a policy
only overrides the position transform used by `move`.

All public methods return copies, never the stored items.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Iterable, TYPE_CHECKING

from .models import Delta, LayoutItem, LayoutMode, Point, Size

if TYPE_CHECKING:
    from .models import WidgetInstance


logger = logging.getLogger(__name__)

# Layout parameters
MIN_ITEM_SIZE = 1
DEFAULT_GRID_STEP = 8


def _finite_or(value: float, default: float) -> float:
    """Return value if it is a finite number, otherwise default."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def _clamp_size(size: Size) -> Size:
    return Size(
        w=max(MIN_ITEM_SIZE, _finite_or(size.w, MIN_ITEM_SIZE)),
        h=max(MIN_ITEM_SIZE, _finite_or(size.h, MIN_ITEM_SIZE)),
    )


def sanitize_item(item: LayoutItem) -> LayoutItem:
    """Copy an externally supplied item, repairing corrupted geometry."""
    return LayoutItem(
        id=item.id,
        position=Point(
            x=max(0.0, _finite_or(item.position.x, 0.0)),
            y=max(0.0, _finite_or(item.position.y, 0.0)),
        ),
        size=_clamp_size(item.size),
        locked=bool(item.locked),
    )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity."""
    return math.floor(value + 0.5)


class BaseLayoutEngine(ABC):
    """
    Policy-agnostic layout engine.

    The engine owns a snapshot of one board's items, keyed by ID. It is
    reloaded with `load` whenever the board's widget set changes; moves and
    resizes are applied to the snapshot only and the updated item is handed
    back to the caller, who is responsible for persisting it.

    Attributes:
        board_locked: When True, every move/resize is a no-op.
    """

    mode: LayoutMode

    def __init__(self, board_locked: bool = False):
        self._items: dict[str, LayoutItem] = {}
        self.board_locked = board_locked

    # --- Loading ---

    def load(self, items: Iterable[LayoutItem]):
        """Replace the entire working set."""
        self._items = {item.id: sanitize_item(item) for item in items}
        logger.debug("Loaded %d items into %s engine", len(self._items), self.mode.value)

    # --- Read access ---

    def get(self, item_id: str) -> LayoutItem | None:
        """Get a copy of an item by ID."""
        item = self._items.get(item_id)
        return item.model_copy(deep=True) if item else None

    def is_movable(self, item_id: str) -> bool:
        """Check whether move/resize would be accepted for this item."""
        item = self._items.get(item_id)
        return item is not None and not item.locked and not self.board_locked

    @property
    def item_ids(self) -> list[str]:
        return sorted(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    # --- Mutations ---

    def move(self, item_id: str, delta: Delta) -> LayoutItem | None:
        """
        Displace an item by delta.

        Args:
            item_id: ID of the item to move
            delta: Displacement to apply to the item's current position

        Returns:
            The updated item, or None if the ID is unknown or the item
            (or board) is locked
        """
        if not self.is_movable(item_id):
            return None

        item = self._items[item_id]
        dx = _finite_or(delta.dx, 0.0)
        dy = _finite_or(delta.dy, 0.0)
        x, y = self._transform_position(item.position, dx, dy)
        item.position = Point(x=max(0, x), y=max(0, y))

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Moved %s by (%s, %s) to (%s, %s)",
                item_id, dx, dy, item.position.x, item.position.y,
            )
        return item.model_copy(deep=True)

    def resize(self, item_id: str, size: Size) -> LayoutItem | None:
        """
        Set an item's size, clamped to MIN_ITEM_SIZE on each axis.

        Returns:
            The updated item, or None under the same rules as `move`
        """
        if not self.is_movable(item_id):
            return None

        item = self._items[item_id]
        item.size = _clamp_size(size)
        return item.model_copy(deep=True)

    # --- Queries ---

    def hit_test(self, point: Point) -> LayoutItem | None:
        """Find the first item whose bounding box contains the point."""
        for item in self._items.values():
            if item.contains(point):
                return item.model_copy(deep=True)
        return None

    def serialize(self) -> list[LayoutItem]:
        """All items sorted by ID, so unchanged state always serializes identically."""
        return [self._items[item_id].model_copy(deep=True) for item_id in sorted(self._items)]

    @abstractmethod
    def _transform_position(self, current: Point, dx: float, dy: float) -> tuple[float, float]:
        """Compute the policy-specific next position (before clamping)."""


class FreeLayoutEngine(BaseLayoutEngine):
    """Unconstrained placement; positions are floored to whole pixels."""

    mode = LayoutMode.FREE

    def _transform_position(self, current: Point, dx: float, dy: float) -> tuple[float, float]:
        return (math.floor(current.x + dx), math.floor(current.y + dy))


class GridLayoutEngine(BaseLayoutEngine):
    """Grid-snapped placement with a fixed step."""

    mode = LayoutMode.GRID

    def __init__(self, step: float = DEFAULT_GRID_STEP, board_locked: bool = False):
        if not math.isfinite(step) or step <= 0:
            raise ValueError(f"Grid step must be a positive number, got {step!r}")
        super().__init__(board_locked=board_locked)
        self.step = step

    def _transform_position(self, current: Point, dx: float, dy: float) -> tuple[float, float]:
        return (
            round_half_up((current.x + dx) / self.step) * self.step,
            round_half_up((current.y + dy) / self.step) * self.step,
        )


def create_layout_engine(
    mode: LayoutMode | str,
    grid_step: float = DEFAULT_GRID_STEP,
    board_locked: bool = False
) -> BaseLayoutEngine:
    """Construct the engine for a board's layout mode."""
    if LayoutMode(mode) == LayoutMode.GRID:
        return GridLayoutEngine(step=grid_step, board_locked=board_locked)
    return FreeLayoutEngine(board_locked=board_locked)


def from_widget_instances(widgets: Iterable["WidgetInstance"]) -> list[LayoutItem]:
    """Reduce stored widgets to layout items."""
    return [widget.to_layout_item() for widget in widgets]
