#!/usr/bin/env python3
"""
Widget Board MCP Server

Provides MCP tools for AI agents to inspect and rearrange the widget board.
All changes are immediately reflected in connected views via WebSocket updates.
"""

import httpx
from mcp.server.fastmcp import FastMCP
from typing import Optional
import json
import os

# Backend API URL
API_BASE = os.environ.get("WIDGET_BOARD_API", "http://127.0.0.1:8765/api")

# Create MCP server
mcp = FastMCP("widget-board")


# --- HTTP Client Helper ---

def api_request(method: str, endpoint: str, **kwargs) -> dict:
    """Make a request to the widget board backend."""
    url = f"{API_BASE}{endpoint}"
    with httpx.Client(timeout=30.0) as client:
        if method == "GET":
            response = client.get(url, params=kwargs.get("params"))
        elif method == "POST":
            response = client.post(url, json=kwargs.get("json"), params=kwargs.get("params"))
        elif method == "PATCH":
            response = client.patch(url, json=kwargs.get("json"), params=kwargs.get("params"))
        elif method == "DELETE":
            response = client.delete(url)
        else:
            raise ValueError(f"Unknown method: {method}")

        if response.status_code >= 400:
            error = response.json().get("detail", "Unknown error")
            raise Exception(f"API error: {error}")

        return response.json()


# ============================================================================
# INSPECTION TOOLS
# ============================================================================

@mcp.tool()
def board_get_current() -> str:
    """
    Get the full state of the active board.

    Returns the board, its widgets (with opaque content state), the
    serialized layout and any drag in progress.
    """
    result = api_request("GET", "/board")
    return json.dumps(result, indent=2)


@mcp.tool()
def board_list() -> str:
    """List all boards."""
    result = api_request("GET", "/boards")
    return json.dumps(result, indent=2)


@mcp.tool()
def board_hit_test(x: float, y: float) -> str:
    """
    Find the widget under a point.

    Args:
        x: Board-local X coordinate
        y: Board-local Y coordinate

    Returns the widget's layout item, or null if the point is empty.
    """
    result = api_request("GET", "/layout/hit-test", params={"x": x, "y": y})
    return json.dumps(result, indent=2)


# ============================================================================
# BOARD TOOLS
# ============================================================================

@mcp.tool()
def board_create(name: str = "New Board", layout_mode: str = "grid") -> str:
    """
    Create a new board and make it active.

    Args:
        name: Board name
        layout_mode: "grid" (snapped) or "free" (unconstrained)
    """
    result = api_request("POST", "/boards", json={"name": name, "layout_mode": layout_mode})
    return json.dumps(result, indent=2)


@mcp.tool()
def board_activate(board_id: str) -> str:
    """Switch the active board."""
    result = api_request("POST", f"/boards/{board_id}/activate")
    return json.dumps(result, indent=2)


@mcp.tool()
def board_update(
    name: Optional[str] = None,
    layout_mode: Optional[str] = None,
    locked: Optional[bool] = None
) -> str:
    """
    Update the active board.

    Args:
        name: New name (optional)
        layout_mode: "grid" or "free" (optional)
        locked: Lock or unlock dragging board-wide (optional)
    """
    updates = {}
    if name is not None:
        updates["name"] = name
    if layout_mode is not None:
        updates["layout_mode"] = layout_mode
    if locked is not None:
        updates["locked"] = locked
    result = api_request("PATCH", "/board", json=updates)
    return json.dumps(result, indent=2)


# ============================================================================
# WIDGET TOOLS
# ============================================================================

@mcp.tool()
def board_add_widget(
    definition_id: str,
    x: Optional[float] = None,
    y: Optional[float] = None,
    width: Optional[float] = None,
    height: Optional[float] = None
) -> str:
    """
    Place a widget on the active board.

    Args:
        definition_id: Widget definition to instantiate (e.g. a note or timer)
        x, y: Position (optional; new widgets cascade from the top-left)
        width, height: Size (optional; defaults to 240x180)
    """
    data: dict = {"definition_id": definition_id}
    if x is not None and y is not None:
        data["position"] = {"x": x, "y": y}
    if width is not None and height is not None:
        data["size"] = {"w": width, "h": height}
    result = api_request("POST", "/widgets", json=data)
    return json.dumps(result, indent=2)


@mcp.tool()
def board_move_widget(widget_id: str, dx: float, dy: float) -> str:
    """
    Move a widget by a displacement.

    Grid boards snap the result; locked widgets and locked boards do not move.
    """
    result = api_request("POST", f"/widgets/{widget_id}/move", json={"dx": dx, "dy": dy})
    return json.dumps(result, indent=2)


@mcp.tool()
def board_resize_widget(widget_id: str, width: float, height: float) -> str:
    """Resize a widget (sizes below 1 are clamped)."""
    result = api_request("POST", f"/widgets/{widget_id}/resize", json={"w": width, "h": height})
    return json.dumps(result, indent=2)


@mcp.tool()
def board_lock_widget(widget_id: str, locked: bool = True) -> str:
    """Lock or unlock a single widget."""
    result = api_request("PATCH", f"/widgets/{widget_id}", json={"locked": locked})
    return json.dumps(result, indent=2)


@mcp.tool()
def board_remove_widget(widget_id: str) -> str:
    """Remove a widget from the board."""
    result = api_request("DELETE", f"/widgets/{widget_id}")
    return json.dumps(result, indent=2)


# ============================================================================
# LAYOUT TOOLS
# ============================================================================

@mcp.tool()
def board_auto_align(heights: Optional[dict[str, float]] = None) -> str:
    """
    Tidy the board into columns.

    Widgets are grouped into the columns they already roughly form, columns
    are packed left to right and each column is stacked top to bottom.
    Locked widgets keep their place.

    Args:
        heights: Rendered heights by widget ID, when they differ from stored heights
    """
    result = api_request("POST", "/layout/auto-align", json={"heights": heights or {}})
    return json.dumps(result, indent=2)


@mcp.tool()
def board_validate() -> str:
    """
    Check the active board for layout problems.

    Reports duplicate IDs, corrupted geometry, off-board widgets and overlaps.
    """
    result = api_request("GET", "/board/validate")
    return json.dumps(result, indent=2)


@mcp.tool()
def board_summarize() -> str:
    """Summarize the board: counts, extent, column count and overlapping groups."""
    result = api_request("GET", "/board/summary")
    return json.dumps(result, indent=2)


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    mcp.run()
