import asyncio
import json
import uuid
from typing import Optional, Protocol

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from logging_config import get_logger

logger = get_logger(__name__)


class Connection(Protocol):
    """Outbound side of a client connection as seen by the registry."""

    def is_open(self) -> bool:
        ...

    def send(self, message: dict) -> bool:
        ...


class WebSocketConnection:
    """Fire-and-forget sender wrapping a FastAPI WebSocket.

    ``send`` only enqueues; the ``run`` task writes frames in order, so
    callers never wait on a slow or dead peer. Must be used from the event
    loop that serves the websocket.
    """

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.connection_id = connection_id or uuid.uuid4().hex
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def is_open(self) -> bool:
        if self._closed:
            return False
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def send(self, message: dict) -> bool:
        if not self.is_open():
            return False
        self._queue.put_nowait(message)
        return True

    async def run(self):
        """Drain the outbound queue until closed."""
        while True:
            message = await self._queue.get()
            if message is None:
                break
            try:
                await self.websocket.send_text(json.dumps(message))
            except Exception as e:
                logger.debug(f"Send failed on connection {self.connection_id}, marking closed: {e}")
                self._closed = True
                break
        logger.debug(f"Writer stopped for connection {self.connection_id}")

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)
