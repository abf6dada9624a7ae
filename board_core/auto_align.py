"""
Auto-align - reflow a board's widgets into tidy columns.

The algorithm works in three passes:
1. Cluster items into columns by horizontal center, tolerating the x-jitter
   of columns the user was already roughly forming
2. Lay columns out left to right with a fixed gap, removing horizontal
   overlaps while keeping their order
3. Stack each column's items top to bottom by their current y order

Locked items are excluded from reflow and keep their geometry. Heights can
be overridden with externally measured rendered heights, since content
inside a widget may reflow to a height different from the stored one.

The operation never fails: invalid numbers degrade to floors and defaults.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from .models import LayoutItem, Point, Size


logger = logging.getLogger(__name__)

# Default align parameters
MIN_WIDTH = 120
MIN_HEIGHT = 90
DEFAULT_WIDTH = 240
DEFAULT_HEIGHT = 180
DEFAULT_MARGIN = 24
DEFAULT_GAP = 24


@dataclass
class AlignOptions:
    """
    Tuning parameters for auto-align.

    vertical_gap defaults to a third of horizontal_gap.
    """
    margin_left: float = DEFAULT_MARGIN
    margin_top: float = DEFAULT_MARGIN
    horizontal_gap: float = DEFAULT_GAP
    vertical_gap: Optional[float] = None
    min_width: float = MIN_WIDTH
    min_height: float = MIN_HEIGHT
    default_width: float = DEFAULT_WIDTH
    default_height: float = DEFAULT_HEIGHT

    def __post_init__(self):
        if self.vertical_gap is None:
            self.vertical_gap = self.horizontal_gap / 3


@dataclass
class _Entry:
    """An item prepared for alignment, with normalized geometry."""
    item: LayoutItem
    x: float
    y: float
    width: float
    height: float

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2


@dataclass
class Column:
    """A cluster of items laid out as one vertical stack."""
    center: float
    width: float
    entries: list[_Entry] = field(default_factory=list)

    @property
    def item_ids(self) -> list[str]:
        return [entry.item.id for entry in self.entries]


def _coerce(value, default: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def _normalize(
    item: LayoutItem,
    measured_height: float | None,
    options: AlignOptions
) -> _Entry:
    width = _coerce(item.size.w, options.default_width)
    height = _coerce(item.size.h, options.default_height)
    if measured_height is not None:
        measured = _coerce(measured_height, 0)
        if measured > 0:
            height = measured

    return _Entry(
        item=item,
        x=_coerce(item.position.x, 0),
        y=_coerce(item.position.y, 0),
        width=max(options.min_width, width),
        height=max(options.min_height, height),
    )


def _cluster(entries: list[_Entry], gap: float) -> list[Column]:
    columns: list[Column] = []

    for entry in sorted(entries, key=lambda e: (e.x, e.item.id)):
        center = entry.center_x
        nearest: Column | None = None
        nearest_distance = math.inf

        for column in columns:
            distance = abs(column.center - center)
            if distance < nearest_distance:
                nearest = column
                nearest_distance = distance

        if nearest is not None:
            threshold = (nearest.width + entry.width + gap) / 4
            if nearest_distance <= threshold:
                nearest.entries.append(entry)
                nearest.width = max(nearest.width, entry.width)
                continue

        columns.append(Column(center=center, width=entry.width, entries=[entry]))

    return columns


def cluster_columns(
    items: Sequence[LayoutItem],
    measured_heights: Mapping[str, float] | None = None,
    options: AlignOptions | None = None
) -> list[Column]:
    """
    Group unlocked items into columns, ordered left to right.

    Args:
        items: Items to cluster (locked items are skipped)
        measured_heights: Optional rendered heights by item ID
        options: Align parameters

    Returns:
        Columns sorted by center, each holding its items in x order
    """
    options = options or AlignOptions()
    heights = measured_heights or {}
    entries = [
        _normalize(item, heights.get(item.id), options)
        for item in items
        if not item.locked
    ]
    columns = _cluster(entries, options.horizontal_gap)
    columns.sort(key=lambda c: c.center)
    return columns


def auto_align(
    items: Sequence[LayoutItem],
    measured_heights: Mapping[str, float] | None = None,
    options: AlignOptions | None = None
) -> list[LayoutItem]:
    """
    Compute a column arrangement for a board.

    Args:
        items: All items on the board
        measured_heights: Optional rendered heights by item ID; missing or
            invalid entries fall back to the stored height
        options: Align parameters

    Returns:
        Every input item, sorted by ID. Locked items are returned unchanged;
        the rest carry their new position and normalized size.
    """
    if not items:
        return []

    options = options or AlignOptions()
    columns = cluster_columns(items, measured_heights, options)

    placed: dict[str, LayoutItem] = {}
    cursor = options.margin_left

    for column in columns:
        column_center = cursor + column.width / 2
        top = options.margin_top

        for entry in sorted(column.entries, key=lambda e: (e.y, e.item.id)):
            placed[entry.item.id] = LayoutItem(
                id=entry.item.id,
                position=Point(x=column_center - entry.width / 2, y=top),
                size=Size(w=entry.width, h=entry.height),
                locked=False,
            )
            top = top + entry.height + options.vertical_gap

        cursor += column.width + options.horizontal_gap

    logger.debug("Auto-aligned %d items into %d columns", len(placed), len(columns))

    result = [placed.get(item.id) or item.model_copy(deep=True) for item in items]
    result.sort(key=lambda item: item.id)
    return result
