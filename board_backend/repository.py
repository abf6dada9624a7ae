"""
In-memory widget store.

Stands in for the board/widget persistence collaborator: it accepts
idempotent upserts keyed by ID and hands out copies, so nothing outside the
store can change a stored row without going through `upsert_*`.
"""

import logging
from typing import Optional

from board_core.models import Board, WidgetInstance


logger = logging.getLogger(__name__)


class InMemoryRepository:
    """Boards and widget instances kept in dictionaries."""

    def __init__(self):
        self._boards: dict[str, Board] = {}
        self._instances: dict[str, WidgetInstance] = {}

    # --- Boards ---

    def list_boards(self) -> list[Board]:
        """All boards in creation order."""
        return [b.model_copy(deep=True) for b in self._boards.values()]

    def get_board(self, board_id: str) -> Optional[Board]:
        board = self._boards.get(board_id)
        return board.model_copy(deep=True) if board else None

    def upsert_board(self, board: Board):
        self._boards[board.id] = board.model_copy(deep=True)

    def delete_board(self, board_id: str) -> bool:
        """Delete a board and every widget placed on it."""
        if self._boards.pop(board_id, None) is None:
            return False
        doomed = [i.id for i in self._instances.values() if i.board_id == board_id]
        for instance_id in doomed:
            del self._instances[instance_id]
        logger.debug("Deleted board %s with %d widgets", board_id, len(doomed))
        return True

    # --- Widget instances ---

    def list_by_board(self, board_id: str) -> list[WidgetInstance]:
        """Widgets on a board, ordered by z-index then insertion."""
        instances = [i for i in self._instances.values() if i.board_id == board_id]
        instances.sort(key=lambda i: i.z_index)
        return [i.model_copy(deep=True) for i in instances]

    def get_instance(self, instance_id: str) -> Optional[WidgetInstance]:
        instance = self._instances.get(instance_id)
        return instance.model_copy(deep=True) if instance else None

    def upsert_instance(self, instance: WidgetInstance):
        self._instances[instance.id] = instance.model_copy(deep=True)

    def delete_instance(self, instance_id: str) -> bool:
        return self._instances.pop(instance_id, None) is not None

    def clear(self):
        self._boards.clear()
        self._instances.clear()
