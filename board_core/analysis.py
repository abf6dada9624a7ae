"""
Board analysis - Layout summarization utilities.

Provides analysis functions that can be used by both the backend and MCP tools
to understand how a board's widgets are arranged.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Sequence, TYPE_CHECKING

from .auto_align import cluster_columns

if TYPE_CHECKING:
    from .models import Board, LayoutItem, WidgetInstance


@dataclass
class OverlapCluster:
    """A group of widgets connected by pairwise overlaps."""
    item_ids: list[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.item_ids)


@dataclass
class BoardSummary:
    """Complete summary of a board's layout."""
    name: str
    layout_mode: str
    locked: bool
    total_widgets: int
    locked_widgets: int
    widgets_by_definition: dict[str, int]
    extent: tuple[float, float, float, float] | None
    column_count: int
    overlap_clusters: list[OverlapCluster]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "layout_mode": self.layout_mode,
            "locked": self.locked,
            "total_widgets": self.total_widgets,
            "locked_widgets": self.locked_widgets,
            "widgets_by_definition": self.widgets_by_definition,
            "extent": list(self.extent) if self.extent else None,
            "column_count": self.column_count,
            "overlap_clusters": [c.item_ids for c in self.overlap_clusters],
        }


def layout_extent(items: Sequence["LayoutItem"]) -> tuple[float, float, float, float] | None:
    """Bounding box (x, y, right, bottom) of all items, or None when empty."""
    if not items:
        return None
    boxes = [item.bounds() for item in items]
    return (
        min(b[0] for b in boxes),
        min(b[1] for b in boxes),
        max(b[2] for b in boxes),
        max(b[3] for b in boxes),
    )


def find_overlap_clusters(items: Sequence["LayoutItem"]) -> list[OverlapCluster]:
    """
    Find groups of overlapping widgets using BFS.

    Two widgets are adjacent when their boxes intersect with positive area;
    only groups of two or more widgets are reported.

    Args:
        items: The board's layout items

    Returns:
        List of OverlapCluster objects, each with sorted IDs
    """
    ordered = sorted(items, key=lambda i: i.id)
    adjacency: dict[str, set[str]] = {item.id: set() for item in ordered}

    for i, a in enumerate(ordered):
        ax, ay, ar, ab = a.bounds()
        for b in ordered[i + 1:]:
            bx, by, br, bb = b.bounds()
            if ax < br and bx < ar and ay < bb and by < ab:
                adjacency[a.id].add(b.id)
                adjacency[b.id].add(a.id)

    visited: set[str] = set()
    clusters: list[OverlapCluster] = []

    for start in adjacency:
        if start in visited or not adjacency[start]:
            continue

        members: list[str] = []
        queue = [start]
        while queue:
            current = queue.pop(0)
            if current in visited:
                continue
            visited.add(current)
            members.append(current)
            queue.extend(n for n in adjacency[current] if n not in visited)

        clusters.append(OverlapCluster(item_ids=sorted(members)))

    return clusters


def summarize_board(
    board: "Board",
    widgets: Sequence["WidgetInstance"]
) -> BoardSummary:
    """
    Generate a summary of a board's layout.

    Args:
        board: The board to summarize
        widgets: The widgets placed on it

    Returns:
        BoardSummary object with all analysis results
    """
    items = [w.to_layout_item() for w in widgets]

    definition_counts: dict[str, int] = defaultdict(int)
    for widget in widgets:
        definition_counts[widget.definition_id] += 1

    return BoardSummary(
        name=board.name,
        layout_mode=board.layout_mode.value,
        locked=board.locked,
        total_widgets=len(widgets),
        locked_widgets=sum(1 for w in widgets if w.locked),
        widgets_by_definition=dict(definition_counts),
        extent=layout_extent(items),
        column_count=len(cluster_columns(items)),
        overlap_clusters=find_overlap_clusters(items),
    )
