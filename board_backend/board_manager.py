"""
Board Manager - Board session state on top of the widget store.

This module implements:
- Board lifecycle (create, activate, rename, delete, layout mode, lock)
- Widget placement and content updates (content stays opaque)
- One layout engine and drag controller per active board session
- Write-back of engine results to the store (the engine never writes itself)
- Auto-align, validation and summary delegated to board_core
"""

import logging
import os
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from board_core.models import Board, LayoutItem, LayoutMode, Point, Size, Delta, WidgetInstance
from board_core.layout import (
    BaseLayoutEngine, DEFAULT_GRID_STEP,
    create_layout_engine, from_widget_instances, sanitize_item
)
from board_core.drag import DragController
from board_core.auto_align import AlignOptions, auto_align as core_auto_align
from board_core.validation import validate_layout, ValidationIssue
from board_core.analysis import summarize_board, BoardSummary

from board_backend.repository import InMemoryRepository


logger = logging.getLogger(__name__)

DEFAULT_BOARD_NAME = "Default Board"
DEFAULT_WIDGET_SIZE = (240, 180)
NEW_WIDGET_OFFSET = 20


class BoardManager:
    """
    Manages the active board's layout session.

    Features:
    - Engine reloaded fresh whenever the active board or its policy changes
    - Drag moves written back to the store optimistically, commits on release
    - Change callbacks for real-time sync

    A session is the pair (layout engine, drag controller) built for the
    active board. Widget adds, removals and lock changes reload the same
    engine so an in-flight drag keeps its controller; switching boards or
    layout modes builds a new session and discards any drag.
    """

    def __init__(
        self,
        repository: Optional[InMemoryRepository] = None,
        grid_step: float = DEFAULT_GRID_STEP,
        align_options: Optional[AlignOptions] = None
    ):
        self._repository = repository or InMemoryRepository()
        self._grid_step = grid_step
        self._align_options = align_options or AlignOptions()
        self._active_board_id: Optional[str] = None
        self._engine: Optional[BaseLayoutEngine] = None
        self._drag: Optional[DragController] = None
        self._on_change_callbacks: list[Callable] = []

    # --- Session Management ---

    def _start_session(self, board: Board):
        """Build a fresh engine and drag controller for a board."""
        if self._drag is not None:
            self._drag.reset()

        self._active_board_id = board.id
        self._engine = create_layout_engine(
            board.layout_mode,
            grid_step=self._grid_step,
            board_locked=board.locked
        )
        self._engine.load(from_widget_instances(self._repository.list_by_board(board.id)))

        self._drag = DragController(self._engine)
        self._drag.on_move(self._on_drag_move)
        self._drag.on_commit(self._on_drag_commit)
        logger.info(
            "Opened board %s (%s mode, %d widgets)",
            board.id, board.layout_mode.value, len(self._engine)
        )

    def _reload_items(self):
        """Reload the active board's widgets into the current engine."""
        if self._engine is None or self._active_board_id is None:
            return
        self._engine.load(from_widget_instances(
            self._repository.list_by_board(self._active_board_id)
        ))

    def _require_board(self) -> Board:
        if self._active_board_id is None:
            raise ValueError("No board open")
        board = self._repository.get_board(self._active_board_id)
        if board is None:
            raise ValueError(f"Board not found: {self._active_board_id}")
        return board

    def _require_session(self) -> tuple[BaseLayoutEngine, DragController]:
        self._require_board()
        return self._engine, self._drag

    def initialize(self) -> Board:
        """Make sure a board exists and open the first one."""
        boards = self._repository.list_boards()
        if not boards:
            board = Board(name=DEFAULT_BOARD_NAME)
            self._repository.upsert_board(board)
            boards = [board]
        self._start_session(boards[0])
        self._notify_change()
        return boards[0]

    def reset(self) -> Board:
        """Drop all boards and widgets and start over with a default board."""
        if self._drag is not None:
            self._drag.reset()
        self._repository.clear()
        self._active_board_id = None
        self._engine = None
        self._drag = None
        return self.initialize()

    # --- Properties ---

    @property
    def board(self) -> Optional[Board]:
        """Get the active board."""
        if self._active_board_id is None:
            return None
        return self._repository.get_board(self._active_board_id)

    @property
    def engine(self) -> Optional[BaseLayoutEngine]:
        return self._engine

    @property
    def drag(self) -> Optional[DragController]:
        return self._drag

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None and self._drag.is_dragging

    # --- Change Callbacks ---

    def on_change(self, callback: Callable):
        """Register a callback for board changes."""
        if callback not in self._on_change_callbacks:
            self._on_change_callbacks.append(callback)

    def _notify_change(self):
        """Notify all registered callbacks of a change."""
        for callback in self._on_change_callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Change callback failed")

    # --- Store Write-back ---

    def _write_geometry(
        self,
        item_id: str,
        position: Optional[Point] = None,
        size: Optional[Size] = None
    ) -> Optional[WidgetInstance]:
        """Upsert engine results into the store; missing widgets are skipped."""
        instance = self._repository.get_instance(item_id)
        if instance is None:
            logger.debug("Skipping write-back for removed widget %s", item_id)
            return None

        if position is not None:
            instance.position = position.model_copy()
        if size is not None:
            instance.size = size.model_copy()
        instance.updated_at = datetime.utcnow()
        self._repository.upsert_instance(instance)
        return instance

    def _on_drag_move(self, item: LayoutItem):
        self._write_geometry(item.id, position=item.position)
        self._notify_change()

    def _on_drag_commit(self, item_id: str, position: Point):
        self._write_geometry(item_id, position=position)
        self._notify_change()

    # --- Board Operations ---

    def list_boards(self) -> list[Board]:
        return self._repository.list_boards()

    def create_board(
        self,
        name: str = "New Board",
        layout_mode: LayoutMode = LayoutMode.GRID
    ) -> Board:
        """Create a new board and make it active."""
        board = Board(name=name, layout_mode=layout_mode)
        self._repository.upsert_board(board)
        self._start_session(board)
        self._notify_change()
        return board

    def set_active_board(self, board_id: str) -> Board:
        """Switch to another board, reloading the engine from the store."""
        board = self._repository.get_board(board_id)
        if board is None:
            raise ValueError(f"Board not found: {board_id}")
        self._start_session(board)
        self._notify_change()
        return board

    def rename_board(self, board_id: str, name: str) -> Optional[Board]:
        board = self._repository.get_board(board_id)
        if board is None:
            return None
        board.name = name
        board.updated_at = datetime.utcnow()
        self._repository.upsert_board(board)
        self._notify_change()
        return board

    def delete_board(self, board_id: str) -> bool:
        """Delete a board; the active board falls back to another one."""
        if not self._repository.delete_board(board_id):
            return False

        if board_id == self._active_board_id:
            remaining = self._repository.list_boards()
            if remaining:
                self._start_session(remaining[0])
            else:
                board = Board(name=DEFAULT_BOARD_NAME)
                self._repository.upsert_board(board)
                self._start_session(board)

        self._notify_change()
        return True

    def update_board(
        self,
        name: Optional[str] = None,
        layout_mode: Optional[LayoutMode] = None,
        locked: Optional[bool] = None
    ) -> Board:
        """Update the active board's name, layout mode or lock."""
        board = self._require_board()
        mode_changed = layout_mode is not None and LayoutMode(layout_mode) != board.layout_mode

        if name is not None:
            board.name = name
        if layout_mode is not None:
            board.layout_mode = LayoutMode(layout_mode)
        if locked is not None:
            board.locked = locked
        board.updated_at = datetime.utcnow()
        self._repository.upsert_board(board)

        if mode_changed:
            self._start_session(board)
        elif locked is not None:
            self._engine.board_locked = locked

        self._notify_change()
        return board

    def toggle_layout_mode(self) -> Board:
        """Flip the active board between grid and free placement."""
        board = self._require_board()
        next_mode = LayoutMode.FREE if board.layout_mode == LayoutMode.GRID else LayoutMode.GRID
        return self.update_board(layout_mode=next_mode)

    def set_board_locked(self, locked: bool) -> Board:
        return self.update_board(locked=locked)

    # --- Widget Operations ---

    def add_widget(
        self,
        definition_id: str,
        state: Optional[dict[str, Any]] = None,
        position: Optional[Point] = None,
        size: Optional[Size] = None
    ) -> WidgetInstance:
        """Place a new widget on the active board, cascading default positions."""
        board = self._require_board()
        count = len(self._repository.list_by_board(board.id))
        offset = NEW_WIDGET_OFFSET + count * NEW_WIDGET_OFFSET

        instance = WidgetInstance(
            board_id=board.id,
            definition_id=definition_id,
            state=dict(state or {}),
            position=position or Point(x=offset, y=offset),
            size=size or Size(w=DEFAULT_WIDGET_SIZE[0], h=DEFAULT_WIDGET_SIZE[1]),
            z_index=count + 1,
        )
        # Store the same repaired geometry the engine will hold
        repaired = sanitize_item(instance.to_layout_item())
        instance.position = repaired.position
        instance.size = repaired.size
        self._repository.upsert_instance(instance)
        self._reload_items()
        self._notify_change()
        return instance

    def get_widget(self, widget_id: str) -> Optional[WidgetInstance]:
        return self._repository.get_instance(widget_id)

    def list_widgets(self) -> list[WidgetInstance]:
        board = self._require_board()
        return self._repository.list_by_board(board.id)

    def update_widget(
        self,
        widget_id: str,
        state: Optional[dict[str, Any]] = None,
        locked: Optional[bool] = None
    ) -> Optional[WidgetInstance]:
        """Replace a widget's content state and/or lock flag."""
        instance = self._repository.get_instance(widget_id)
        if instance is None:
            return None

        if state is not None:
            instance.state = dict(state)
        if locked is not None:
            instance.locked = locked
        instance.updated_at = datetime.utcnow()
        self._repository.upsert_instance(instance)

        if locked is not None and instance.board_id == self._active_board_id:
            self._reload_items()

        self._notify_change()
        return instance

    def remove_widget(self, widget_id: str) -> bool:
        """Remove a widget; an in-flight drag of it becomes a no-op."""
        instance = self._repository.get_instance(widget_id)
        if instance is None:
            return False

        self._repository.delete_instance(widget_id)
        if instance.board_id == self._active_board_id:
            self._reload_items()
        self._notify_change()
        return True

    # --- Layout Operations ---

    def move_widget(self, widget_id: str, dx: float, dy: float) -> Optional[LayoutItem]:
        """Displace a widget; None when the engine refuses."""
        engine, _ = self._require_session()
        moved = engine.move(widget_id, Delta(dx=dx, dy=dy))
        if moved is None:
            return None
        self._write_geometry(moved.id, position=moved.position)
        self._notify_change()
        return moved

    def resize_widget(self, widget_id: str, w: float, h: float) -> Optional[LayoutItem]:
        engine, _ = self._require_session()
        resized = engine.resize(widget_id, Size(w=w, h=h))
        if resized is None:
            return None
        self._write_geometry(resized.id, size=resized.size)
        self._notify_change()
        return resized

    def hit_test(self, x: float, y: float) -> Optional[LayoutItem]:
        engine, _ = self._require_session()
        return engine.hit_test(Point(x=x, y=y))

    def get_layout(self) -> list[LayoutItem]:
        engine, _ = self._require_session()
        return engine.serialize()

    # --- Pointer Events (delegated to the drag controller) ---

    def pointer_down(self, item_id: str, pointer_id: int, x: float, y: float) -> bool:
        _, drag = self._require_session()
        return drag.pointer_down(item_id, pointer_id, Point(x=x, y=y))

    def pointer_move(self, pointer_id: int, x: float, y: float) -> Optional[LayoutItem]:
        _, drag = self._require_session()
        return drag.pointer_move(pointer_id, Point(x=x, y=y))

    def pointer_up(self, pointer_id: int) -> Optional[Point]:
        _, drag = self._require_session()
        return drag.pointer_up(pointer_id)

    def pointer_cancel(self, pointer_id: int) -> Optional[Point]:
        _, drag = self._require_session()
        return drag.pointer_cancel(pointer_id)

    # --- Auto-align ---

    def auto_align(self, measured_heights: Optional[Mapping[str, float]] = None) -> list[LayoutItem]:
        """
        Reflow the active board into columns and persist the result.

        Args:
            measured_heights: Rendered heights by widget ID, if known

        Returns:
            The board's full layout after alignment (empty if the board is
            locked, since nothing may move)

        Raises:
            ValueError: If a drag is in progress
        """
        board = self._require_board()
        if self.is_dragging:
            logger.warning("Refusing auto-align on board %s during a drag", board.id)
            raise ValueError("Cannot auto-align while a drag is in progress")
        if board.locked:
            logger.info("Board %s is locked; auto-align skipped", board.id)
            return []

        aligned = core_auto_align(
            self._engine.serialize(),
            measured_heights,
            self._align_options
        )
        for item in aligned:
            if not item.locked:
                self._write_geometry(item.id, position=item.position, size=item.size)

        self._reload_items()
        self._notify_change()
        return aligned

    # --- Validation & Analysis ---

    def validate(self) -> list[ValidationIssue]:
        """Validate the active board as stored (before engine sanitizing)."""
        return validate_layout(from_widget_instances(self.list_widgets()))

    def summarize(self) -> BoardSummary:
        board = self._require_board()
        return summarize_board(board, self._repository.list_by_board(board.id))

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        board = self.board
        if board is None:
            return {
                "board": None,
                "boards": [],
                "widgets": [],
                "layout": [],
                "drag": None
            }

        session = self._drag.session if self._drag else None
        return {
            "board": board.to_json_dict(),
            "boards": [b.to_json_dict() for b in self._repository.list_boards()],
            "widgets": [w.to_json_dict() for w in self._repository.list_by_board(board.id)],
            "layout": [item.model_dump() for item in self._engine.serialize()],
            "drag": {
                "item_id": session.item_id,
                "pointer_id": session.pointer_id,
                "committed_position": session.committed_position.model_dump()
            } if session else None
        }


# Global instance for the application
board_manager = BoardManager(
    grid_step=float(os.environ.get("WIDGET_BOARD_GRID_STEP", DEFAULT_GRID_STEP))
)
