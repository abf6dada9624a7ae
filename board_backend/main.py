"""
Widget Board Backend - FastAPI Application

This is the main entry point for the widget board backend.
It provides:
- REST API for board operations (boards, widgets, move/resize, hit-test)
- Pointer event endpoints driving the drag controller
- Auto-align, validation and summary endpoints
- WebSocket endpoint for real-time updates
- CORS configuration for local frontend development

Layout no-ops (unknown widget, locked widget or board, rejected drag) are
not errors: they answer 200 with "success": false.
"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from board_core import (
    LayoutMode,
    CreateBoardRequest, UpdateBoardRequest,
    CreateWidgetRequest, UpdateWidgetRequest,
    MoveRequest, ResizeRequest,
    PointerDownRequest, PointerMoveRequest, PointerReleaseRequest,
    AutoAlignRequest,
    validation_summary,
)
from board_backend.board_manager import board_manager
from board_backend.websocket_manager import ws_manager


logger = logging.getLogger(__name__)

HOST = os.environ.get("WIDGET_BOARD_HOST", "127.0.0.1")
PORT = int(os.environ.get("WIDGET_BOARD_PORT", "8765"))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "WIDGET_BOARD_CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"
    ).split(",")
    if origin.strip()
]


# --- Async change notification ---
# Bridge between sync BoardManager callbacks and async WebSocket broadcasts

_change_event: asyncio.Event | None = None


def on_board_change():
    """Callback for board changes - sets event for async handler."""
    if _change_event is not None:
        _change_event.set()


async def change_broadcaster(event: asyncio.Event):
    """Background task that broadcasts changes to WebSocket clients."""
    while True:
        await event.wait()
        event.clear()

        board = board_manager.board
        await ws_manager.notify_board_updated(board.id if board else None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    global _change_event
    _change_event = asyncio.Event()

    board_manager.on_change(on_board_change)
    if board_manager.board is None:
        board_manager.initialize()

    broadcaster_task = asyncio.create_task(change_broadcaster(_change_event))

    yield

    broadcaster_task.cancel()
    try:
        await broadcaster_task
    except asyncio.CancelledError:
        pass
    _change_event = None


# --- FastAPI App ---

app = FastAPI(
    title="Widget Board API",
    description="Backend API for the widget board layout engine",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "connections": ws_manager.connection_count}


# --- Board State ---

@app.get("/api/board")
async def get_board():
    """Get the active board, its widgets and layout."""
    return board_manager.get_state()


@app.patch("/api/board")
async def update_board(request: UpdateBoardRequest):
    """Update the active board (name, layout mode, lock)."""
    try:
        board = board_manager.update_board(
            name=request.name,
            layout_mode=request.layout_mode,
            locked=request.locked
        )
        return {"success": True, "board": board.to_json_dict()}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/board/toggle-mode")
async def toggle_layout_mode():
    """Flip the active board between grid and free placement."""
    try:
        board = board_manager.toggle_layout_mode()
        return {"success": True, "board": board.to_json_dict()}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# --- Boards ---

@app.get("/api/boards")
async def list_boards():
    """List all boards."""
    return {"success": True, "boards": [b.to_json_dict() for b in board_manager.list_boards()]}


@app.post("/api/boards")
async def create_board(request: CreateBoardRequest):
    """Create a board and make it active."""
    board = board_manager.create_board(name=request.name, layout_mode=request.layout_mode)
    return {"success": True, "board": board.to_json_dict()}


@app.post("/api/boards/{board_id}/activate")
async def activate_board(board_id: str):
    """Switch the active board."""
    try:
        board = board_manager.set_active_board(board_id)
        return {"success": True, "board": board.to_json_dict()}
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.patch("/api/boards/{board_id}")
async def rename_board(board_id: str, name: str = Query(...)):
    """Rename a board."""
    board = board_manager.rename_board(board_id, name)
    if board:
        return {"success": True, "board": board.to_json_dict()}
    raise HTTPException(status_code=404, detail="Board not found")


@app.delete("/api/boards/{board_id}")
async def delete_board(board_id: str):
    """Delete a board and its widgets."""
    if board_manager.delete_board(board_id):
        return {"success": True}
    raise HTTPException(status_code=404, detail="Board not found")


# --- Widgets ---

@app.post("/api/widgets")
async def create_widget(request: CreateWidgetRequest):
    """Place a widget on the active board."""
    try:
        widget = board_manager.add_widget(
            definition_id=request.definition_id,
            state=request.state,
            position=request.position,
            size=request.size
        )
        return {"success": True, "widget": widget.to_json_dict()}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/widgets/{widget_id}")
async def get_widget(widget_id: str):
    """Get a specific widget."""
    widget = board_manager.get_widget(widget_id)
    if widget:
        return {"success": True, "widget": widget.to_json_dict()}
    raise HTTPException(status_code=404, detail="Widget not found")


@app.patch("/api/widgets/{widget_id}")
async def update_widget(widget_id: str, request: UpdateWidgetRequest):
    """Update a widget's content state or lock flag."""
    widget = board_manager.update_widget(widget_id, state=request.state, locked=request.locked)
    if widget:
        return {"success": True, "widget": widget.to_json_dict()}
    raise HTTPException(status_code=404, detail="Widget not found")


@app.delete("/api/widgets/{widget_id}")
async def delete_widget(widget_id: str):
    """Remove a widget from its board."""
    if board_manager.remove_widget(widget_id):
        return {"success": True}
    raise HTTPException(status_code=404, detail="Widget not found")


@app.post("/api/widgets/{widget_id}/move")
async def move_widget(widget_id: str, request: MoveRequest):
    """Displace a widget by (dx, dy) under the board's layout policy."""
    try:
        item = board_manager.move_widget(widget_id, request.dx, request.dy)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if item:
        return {"success": True, "item": item.model_dump()}
    return {"success": False, "item": None, "message": "Widget is missing or locked"}


@app.post("/api/widgets/{widget_id}/resize")
async def resize_widget(widget_id: str, request: ResizeRequest):
    """Resize a widget."""
    try:
        item = board_manager.resize_widget(widget_id, request.w, request.h)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if item:
        return {"success": True, "item": item.model_dump()}
    return {"success": False, "item": None, "message": "Widget is missing or locked"}


# --- Layout ---

@app.get("/api/layout")
async def get_layout():
    """Serialized layout of the active board, sorted by widget ID."""
    try:
        return {"success": True, "items": [i.model_dump() for i in board_manager.get_layout()]}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/layout/hit-test")
async def hit_test(x: float = Query(...), y: float = Query(...)):
    """Find the widget under a board-local point."""
    try:
        item = board_manager.hit_test(x, y)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "item": item.model_dump() if item else None}


@app.post("/api/layout/auto-align")
async def auto_align(request: AutoAlignRequest):
    """Reflow the active board into tidy columns."""
    try:
        items = board_manager.auto_align(request.heights)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"success": True, "items": [i.model_dump() for i in items]}


# --- Pointer Events ---

@app.post("/api/pointer/down")
async def pointer_down(request: PointerDownRequest):
    """Start a drag; rejected drags answer success=false."""
    try:
        started = board_manager.pointer_down(request.item_id, request.pointer_id, request.x, request.y)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": started}


@app.post("/api/pointer/move")
async def pointer_move(request: PointerMoveRequest):
    """Forward pointer motion to the active drag."""
    try:
        item = board_manager.pointer_move(request.pointer_id, request.x, request.y)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": item is not None, "item": item.model_dump() if item else None}


@app.post("/api/pointer/up")
async def pointer_up(request: PointerReleaseRequest):
    """Finish the active drag."""
    try:
        position = board_manager.pointer_up(request.pointer_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": position is not None, "position": position.model_dump() if position else None}


@app.post("/api/pointer/cancel")
async def pointer_cancel(request: PointerReleaseRequest):
    """Cancel the active drag; the widget stays where it was last moved."""
    try:
        position = board_manager.pointer_cancel(request.pointer_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": position is not None, "position": position.model_dump() if position else None}


# --- Enums for Frontend ---

@app.get("/api/enums/layout-modes")
async def get_layout_modes():
    """Get available layout modes."""
    return {"layout_modes": [m.value for m in LayoutMode]}


# --- Analysis & Validation ---

@app.get("/api/board/validate")
async def validate_current_board():
    """
    Validate the active board's geometry.

    Returns a list of issues (errors, warnings, info) and a summary.
    """
    try:
        issues = board_manager.validate()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    }


@app.get("/api/board/summary")
async def summarize_current_board():
    """
    Get a layout summary of the active board.

    Returns widget counts, extent, column count and overlapping groups.
    """
    try:
        summary = board_manager.summarize()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, "summary": summary.to_dict()}


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Clients connect here to receive board_updated events, optionally
    narrowed to one board with a "subscribe:<board_id>" message.
    """
    await ws_manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            await ws_manager.handle_message(websocket, data)
    except WebSocketDisconnect:
        await ws_manager.disconnect(websocket)
    except Exception:
        logger.exception("WebSocket error")
        await ws_manager.disconnect(websocket)


# --- Run with uvicorn ---

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=HOST, port=PORT)
