"""
WebSocket connection manager for real-time updates

ARCHITECTURE NOTE: Non-blocking broadcast design
- Each connection has a dedicated send queue and sender task
- Broadcasts are non-blocking - messages are queued per-client
- Slow clients won't block fast clients or the download loop
- Full queues result in dropped messages (logged) rather than blocking
"""
from fastapi import WebSocket, WebSocketDisconnect
from typing import Dict, Optional, Set
import asyncio
import json
import logging
from datetime import datetime, timezone

from constants import ErrorKind, WebSocketConfig
from domain.entities import Entry
from domain.value_objects import TransferProgress
from dtos.response.entry_response import EntryResponse
from services.interfaces import IEntryEventListener

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConnectionManager:
    """
    Manages WebSocket connections and broadcasts messages to all connected clients.

    Message format:
    {
        "type": "entry_created" | "entry_progress" | "entry_updated" | "entry_removed" | "operation_failed",
        "data": {...},
        "timestamp": "..."
    }
    """

    def __init__(self, queue_size: int = WebSocketConfig.SEND_QUEUE_SIZE):
        self.queue_size = queue_size
        self.active_connections: Set[WebSocket] = set()
        self.connection_metadata: Dict[WebSocket, dict] = {}
        self.send_queues: Dict[WebSocket, asyncio.Queue] = {}
        self.sender_tasks: Dict[WebSocket, asyncio.Task] = {}

    async def connect(self, websocket: WebSocket, client_id: Optional[str] = None):
        """
        Register a new WebSocket connection with non-blocking sender

        Args:
            websocket: FastAPI WebSocket connection
            client_id: Optional client identifier
        """
        await websocket.accept()
        self.active_connections.add(websocket)
        self.connection_metadata[websocket] = {
            'client_id': client_id or f"client-{id(websocket)}",
            'connected_at': _timestamp()
        }

        self.send_queues[websocket] = asyncio.Queue(maxsize=self.queue_size)
        self.sender_tasks[websocket] = asyncio.create_task(self._sender_loop(websocket))

        logger.info(
            f"WebSocket client connected (ID: {self.connection_metadata[websocket]['client_id']}). "
            f"Total connections: {len(self.active_connections)}"
        )

        await websocket.send_json({
            "type": "connection",
            "status": "connected",
            "message": "Connected to MediaForge WebSocket"
        })

    def disconnect(self, websocket: WebSocket):
        """
        Unregister a WebSocket connection and cleanup resources

        Args:
            websocket: FastAPI WebSocket connection
        """
        client_id = self.connection_metadata.get(websocket, {}).get('client_id')

        task = self.sender_tasks.pop(websocket, None)
        if task is not None:
            task.cancel()

        self.active_connections.discard(websocket)
        self.connection_metadata.pop(websocket, None)
        self.send_queues.pop(websocket, None)

        logger.info(f"WebSocket client disconnected (ID: {client_id}). Total connections: {len(self.active_connections)}")

    async def _sender_loop(self, websocket: WebSocket):
        """
        Dedicated sender task for each connection.
        Pulls messages from queue and sends without blocking other connections.
        """
        queue = self.send_queues[websocket]

        try:
            while True:
                message = await queue.get()
                try:
                    await websocket.send_text(message)
                except Exception as e:
                    logger.warning(f"Failed to send to client: {e}")
                    # Connection is dead, will be cleaned up by disconnect()
                    break
        except asyncio.CancelledError:
            pass

    async def broadcast(self, message: dict):
        """
        Non-blocking broadcast to all connections.
        Messages are queued per-connection and sent asynchronously.

        Args:
            message: Dictionary to be sent as JSON to all clients
        """
        if not self.active_connections:
            logger.debug(f"No active connections to broadcast message type: {message.get('type')}")
            return

        message.setdefault('timestamp', _timestamp())
        json_message = json.dumps(message)

        full_queues = 0
        for connection in list(self.active_connections):
            queue = self.send_queues.get(connection)
            if queue is None:
                continue
            try:
                queue.put_nowait(json_message)
            except asyncio.QueueFull:
                full_queues += 1

        if full_queues > 0:
            logger.warning(f"Dropped {message.get('type')} message to {full_queues} clients (full queues)")


class WebSocketEventListener(IEntryEventListener):
    """Bridges registry events onto the WebSocket broadcast channel."""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def on_entry_created(self, entry: Entry) -> None:
        await self.manager.broadcast({
            "type": "entry_created",
            "data": EntryResponse.from_entry(entry).model_dump(mode="json")
        })

    async def on_progress(self, entry_id: str, progress: TransferProgress) -> None:
        await self.manager.broadcast({
            "type": "entry_progress",
            "data": {
                "entry_id": entry_id,
                "bytes_received": progress.bytes_received,
                "total_bytes": progress.total_bytes,
                "fraction": progress.fraction,
            }
        })

    async def on_entry_updated(self, entry: Entry) -> None:
        await self.manager.broadcast({
            "type": "entry_updated",
            "data": EntryResponse.from_entry(entry).model_dump(mode="json")
        })

    async def on_entry_removed(self, entry_id: str) -> None:
        await self.manager.broadcast({
            "type": "entry_removed",
            "data": {"entry_id": entry_id}
        })

    async def on_operation_failed(self, entry_id: Optional[str], error_kind: ErrorKind, detail: str) -> None:
        if not ErrorKind.is_user_facing(error_kind):
            return
        await self.manager.broadcast({
            "type": "operation_failed",
            "data": {
                "entry_id": entry_id,
                "error_kind": error_kind.value,
                "label": ErrorKind.get_ui_label(error_kind),
                "detail": detail
            }
        })


async def websocket_endpoint(websocket: WebSocket, manager: ConnectionManager):
    """
    WebSocket endpoint handler

    Maintains connection and handles incoming messages (keepalive)
    """
    await manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON from client: {data}")
                continue

            message_type = message.get("type") if isinstance(message, dict) else None
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                logger.debug("Received ping, sent pong")
            else:
                logger.warning(f"Unknown message type: {message_type}")

    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected normally")
    finally:
        manager.disconnect(websocket)
