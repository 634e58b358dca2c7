from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from routers.rooms import rooms_router
from registry import RoomRegistry
from connection import WebSocketConnection
from session import SignalingSession
from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL, STATIC_DIR
from logging_config import get_logger, setup_logging
from typing import Optional
import asyncio
import os

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def create_app(registry: Optional[RoomRegistry] = None, static_dir: Optional[str] = STATIC_DIR) -> FastAPI:
    """Build the relay app around its own RoomRegistry, injectable for tests."""
    app = FastAPI(title="Signaling Relay")

    # One registry per application; every connection handler reaches it via app.state
    app.state.registry = registry if registry is not None else RoomRegistry()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router)

    @app.websocket("/")
    @app.websocket("/ws")
    async def signaling_endpoint(websocket: WebSocket):
        """Relay signaling messages between participants of the same room."""
        await websocket.accept()
        connection = WebSocketConnection(websocket)
        session = SignalingSession(websocket.app.state.registry, connection)
        writer_task = asyncio.create_task(connection.run())
        client = websocket.client
        logger.info(f"WebSocket connection {connection.connection_id} accepted from {client.host if client else 'unknown'}")

        message_count = 0
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info(f"WebSocket disconnected normally for connection {connection.connection_id}")
                    break

                message_count += 1
                text = message.get("text")
                if text is None:
                    logger.warning(f"Discarding binary frame #{message_count} from connection {connection.connection_id}")
                    continue
                logger.debug(f"Received message #{message_count} from connection {connection.connection_id}")
                session.handle_text(text)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected for connection {connection.connection_id}")
        except Exception as e:
            logger.error(f"Error receiving message from connection {connection.connection_id}: {e}", exc_info=True)
        finally:
            # Cleanup on disconnect
            session.close()
            connection.close()
            writer_task.cancel()
            try:
                await writer_task
            except asyncio.CancelledError:
                pass

            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")

    if static_dir and os.path.isdir(static_dir):
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        logger.info(f"Serving static files from {static_dir}")
    else:
        logger.info(f"Static directory {static_dir} not found, static file serving disabled")

    logger.info("FastAPI application initialized")
    return app


app = create_app()
