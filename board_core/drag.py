"""
Drag controller - one exclusive pointer-driven move at a time.

The controller is a small state machine (idle / dragging) sitting between
raw pointer events and the layout engine. Pointer positions only ever cross
into the engine as deltas, so the pointer's coordinate space (scroll, zoom)
does not need to match the board's.

Listeners:
- on_move(item): called with the updated LayoutItem after each accepted move
- on_commit(item_id, position): called with the committed position when the
  pointer is released or the drag is cancelled
"""

import logging
from dataclasses import dataclass
from typing import Callable, TYPE_CHECKING

from .models import Delta, LayoutItem, Point

if TYPE_CHECKING:
    from .layout import BaseLayoutEngine


logger = logging.getLogger(__name__)

MoveListener = Callable[[LayoutItem], None]
CommitListener = Callable[[str, Point], None]


@dataclass
class DragSession:
    """Ownership record for one in-progress drag."""
    item_id: str
    pointer_id: int
    last_pointer_position: Point
    committed_position: Point


class DragController:
    """
    Mediates pointer drags against a layout engine.

    At most one session exists at a time; a pointer-down while a session is
    active is ignored, as are events from any pointer other than the one that
    started the session. Cancelling does not roll back: the item stays where
    the last accepted move left it.
    """

    def __init__(self, engine: "BaseLayoutEngine"):
        self._engine = engine
        self._session: DragSession | None = None
        self._on_move_callbacks: list[MoveListener] = []
        self._on_commit_callbacks: list[CommitListener] = []

    # --- Properties ---

    @property
    def engine(self) -> "BaseLayoutEngine":
        return self._engine

    @property
    def session(self) -> DragSession | None:
        """A copy of the active session, if any."""
        if self._session is None:
            return None
        return DragSession(
            item_id=self._session.item_id,
            pointer_id=self._session.pointer_id,
            last_pointer_position=self._session.last_pointer_position.model_copy(),
            committed_position=self._session.committed_position.model_copy(),
        )

    @property
    def is_dragging(self) -> bool:
        return self._session is not None

    @property
    def captured_pointer(self) -> int | None:
        """The pointer ID bound to the active drag."""
        return self._session.pointer_id if self._session else None

    # --- Listeners ---

    def on_move(self, callback: MoveListener):
        """Register a callback for accepted moves."""
        self._on_move_callbacks.append(callback)

    def on_commit(self, callback: CommitListener):
        """Register a callback for committed (released) positions."""
        self._on_commit_callbacks.append(callback)

    # --- Pointer events ---

    def pointer_down(self, item_id: str, pointer_id: int, point: Point) -> bool:
        """
        Start dragging an item.

        Returns:
            True if the drag started, False if it was rejected (board or item
            locked, unknown item, or another drag already active)
        """
        if self._session is not None:
            logger.debug(
                "Rejected pointer %s on %s: drag of %s already active",
                pointer_id, item_id, self._session.item_id,
            )
            return False

        item = self._engine.get(item_id)
        if item is None or item.locked or self._engine.board_locked:
            logger.debug("Rejected pointer %s on %s: not draggable", pointer_id, item_id)
            return False

        self._session = DragSession(
            item_id=item_id,
            pointer_id=pointer_id,
            last_pointer_position=point.model_copy(),
            committed_position=item.position.model_copy(),
        )
        logger.debug("Pointer %s captured for %s", pointer_id, item_id)
        return True

    def pointer_move(self, pointer_id: int, point: Point) -> LayoutItem | None:
        """
        Forward pointer motion to the engine.

        Returns:
            The moved item, or None if the event was ignored or the engine
            refused the move
        """
        session = self._session
        if session is None or pointer_id != session.pointer_id:
            return None

        dx = point.x - session.last_pointer_position.x
        dy = point.y - session.last_pointer_position.y
        if dx == 0 and dy == 0:
            return None

        moved = self._engine.move(session.item_id, Delta(dx=dx, dy=dy))
        if moved is None:
            # Item vanished or became locked mid-drag; keep the session
            return None

        session.committed_position = moved.position.model_copy()
        session.last_pointer_position = point.model_copy()

        for callback in self._on_move_callbacks:
            callback(moved)
        return moved

    def pointer_up(self, pointer_id: int) -> Point | None:
        """Finish the drag; returns the committed position."""
        return self._release(pointer_id, "released")

    def pointer_cancel(self, pointer_id: int) -> Point | None:
        """Abort the drag without rolling back; returns the committed position."""
        return self._release(pointer_id, "cancelled")

    def reset(self):
        """Discard any active session without emitting a commit."""
        if self._session is not None:
            logger.debug("Discarding drag of %s", self._session.item_id)
        self._session = None

    def _release(self, pointer_id: int, reason: str) -> Point | None:
        session = self._session
        if session is None or pointer_id != session.pointer_id:
            return None

        self._session = None
        position = session.committed_position.model_copy()
        logger.debug(
            "Drag of %s %s at (%s, %s)",
            session.item_id, reason, position.x, position.y,
        )

        for callback in self._on_commit_callbacks:
            callback(session.item_id, position.model_copy())
        return position
