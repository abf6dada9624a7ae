"""
WebSocket Manager - Board view connections and change fan-out.

Each connected view may narrow its feed to a single board by sending
``subscribe:<board_id>`` (``subscribe:`` with no ID widens it again).
Unsubscribed views receive every board_updated event.

In-band text protocol:
- "ping"                  -> {"type": "pong"}
- "subscribe:<board_id>"  -> {"type": "subscribed", "board_id": ...}
"""
from fastapi import WebSocket
import asyncio
import json
import logging


logger = logging.getLogger(__name__)

SUBSCRIBE_PREFIX = "subscribe:"


class WebSocketManager:
    """
    Tracks connected board views and the board each one follows.

    Sends that fail mark the socket as gone; it is dropped from the
    registry after the broadcast completes.
    """

    def __init__(self):
        self._subscriptions: dict[WebSocket, str | None] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self._subscriptions[websocket] = None
        logger.info("Board view connected (%d open)", len(self._subscriptions))

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self._subscriptions.pop(websocket, None)
        logger.info("Board view disconnected (%d open)", len(self._subscriptions))

    async def subscribe(self, websocket: WebSocket, board_id: str | None):
        """Follow one board, or every board when board_id is None."""
        async with self._lock:
            if websocket in self._subscriptions:
                self._subscriptions[websocket] = board_id
        logger.debug("Board view now following %s", board_id or "all boards")

    async def handle_message(self, websocket: WebSocket, text: str):
        """Answer one in-band client message; unknown messages are ignored."""
        if text == "ping":
            await websocket.send_json({"type": "pong"})
        elif text.startswith(SUBSCRIBE_PREFIX):
            board_id = text[len(SUBSCRIBE_PREFIX):].strip() or None
            await self.subscribe(websocket, board_id)
            await websocket.send_json({"type": "subscribed", "board_id": board_id})

    def _wants(self, subscription: str | None, board_id: str | None) -> bool:
        return subscription is None or board_id is None or subscription == board_id

    async def broadcast(self, message: dict, board_id: str | None = None):
        """Send a message to every view following board_id."""
        if not self._subscriptions:
            return

        message_text = json.dumps(message)

        async with self._lock:
            targets = [
                websocket for websocket, subscription in self._subscriptions.items()
                if self._wants(subscription, board_id)
            ]
            gone = []
            for websocket in targets:
                try:
                    await websocket.send_text(message_text)
                except Exception:
                    logger.debug("Dropping board view after failed send", exc_info=True)
                    gone.append(websocket)

            for websocket in gone:
                self._subscriptions.pop(websocket, None)

    async def notify_board_updated(self, board_id: str | None = None):
        """
        Tell views that a board changed.

        Views should fetch the latest state via GET /api/board.
        """
        await self.broadcast({"type": "board_updated", "board_id": board_id}, board_id=board_id)

    @property
    def connection_count(self) -> int:
        return len(self._subscriptions)


# Global instance
ws_manager = WebSocketManager()
