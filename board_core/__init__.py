"""
Widget Board Core - Shared models, layout engine, drag handling and auto-align.

This module provides the core functionality used by both the backend API
and the MCP tools, ensuring a single source of truth for all layout logic.
"""

from .models import (
    # Enums
    LayoutMode,
    BackgroundType,
    # Core models
    Point,
    Size,
    Delta,
    LayoutItem,
    Board,
    BoardBackground,
    WidgetInstance,
    # Request models (for API)
    CreateBoardRequest,
    UpdateBoardRequest,
    CreateWidgetRequest,
    UpdateWidgetRequest,
    MoveRequest,
    ResizeRequest,
    PointerDownRequest,
    PointerMoveRequest,
    PointerReleaseRequest,
    AutoAlignRequest,
)

from .layout import (
    BaseLayoutEngine,
    FreeLayoutEngine,
    GridLayoutEngine,
    create_layout_engine,
    from_widget_instances,
    sanitize_item,
)
from .drag import DragController, DragSession
from .auto_align import AlignOptions, auto_align, cluster_columns
from .validation import validate_layout, validation_summary, ValidationIssue, IssueSeverity
from .analysis import summarize_board, find_overlap_clusters

__all__ = [
    # Enums
    "LayoutMode",
    "BackgroundType",
    # Models
    "Point",
    "Size",
    "Delta",
    "LayoutItem",
    "Board",
    "BoardBackground",
    "WidgetInstance",
    # Request models
    "CreateBoardRequest",
    "UpdateBoardRequest",
    "CreateWidgetRequest",
    "UpdateWidgetRequest",
    "MoveRequest",
    "ResizeRequest",
    "PointerDownRequest",
    "PointerMoveRequest",
    "PointerReleaseRequest",
    "AutoAlignRequest",
    # Layout engine
    "BaseLayoutEngine",
    "FreeLayoutEngine",
    "GridLayoutEngine",
    "create_layout_engine",
    "from_widget_instances",
    "sanitize_item",
    # Drag
    "DragController",
    "DragSession",
    # Auto-align
    "AlignOptions",
    "auto_align",
    "cluster_columns",
    # Validation
    "validate_layout",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
    # Analysis
    "summarize_board",
    "find_overlap_clusters",
]
