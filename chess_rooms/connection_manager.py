"""WebSocket connection manager for chess rooms."""

import asyncio
import logging
import uuid
from typing import Any, Dict, Iterable, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)

DEFAULT_USERNAME = "Anonymous"


class ConnectionManager:
    """
    Manages WebSocket connections.

    Tracks active connections with their display names and delivers
    messages to single connections or groups of connections.
    """

    def __init__(self) -> None:
        """Initialize the connection manager."""
        self.active_connections: Dict[str, WebSocket] = {}
        self.connection_metadata: Dict[str, Dict[str, Any]] = {}
        self.lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accept and register a new WebSocket connection.

        :param websocket: WebSocket instance to register
        :type websocket: WebSocket
        :return: Unique connection ID
        :rtype: str
        """
        await websocket.accept()
        connection_id = str(uuid.uuid4())

        async with self.lock:
            self.active_connections[connection_id] = websocket
            self.connection_metadata[connection_id] = {
                "connected_at": asyncio.get_running_loop().time(),
                "username": None,
            }

        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        """
        Unregister a WebSocket connection.

        :param connection_id: Connection identifier to remove
        :type connection_id: str
        """
        async with self.lock:
            self.active_connections.pop(connection_id, None)
            self.connection_metadata.pop(connection_id, None)

    async def send_message(self, connection_id: str, message: Dict[str, Any]) -> bool:
        """
        Send a message to a specific connection.

        :param connection_id: Target connection ID
        :type connection_id: str
        :param message: Message dictionary to send
        :type message: Dict[str, Any]
        :return: True if sent successfully, False if connection not found
        :rtype: bool
        """
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return False

        try:
            await websocket.send_json(message)
            return True
        except Exception as exc:
            logger.debug(f"[WS:{connection_id}] Send failed, dropping connection: {exc}")
            await self.disconnect(connection_id)
            return False

    async def send_to_connections(
        self, connection_ids: Iterable[str], message: Dict[str, Any], exclude_connection: Optional[str] = None
    ) -> int:
        """
        Send a message to a group of connections, in the given order.

        :param connection_ids: Target connection IDs
        :type connection_ids: Iterable[str]
        :param message: Message dictionary to send
        :type message: Dict[str, Any]
        :param exclude_connection: Optional connection ID to skip
        :type exclude_connection: Optional[str]
        :return: Number of connections the message was delivered to
        :rtype: int
        """
        delivered = 0
        for connection_id in list(connection_ids):
            if connection_id == exclude_connection:
                continue
            if await self.send_message(connection_id, message):
                delivered += 1
        return delivered

    def set_username(self, connection_id: str, username: str) -> None:
        """
        Set the display name of a connection.

        :param connection_id: Connection identifier
        :type connection_id: str
        :param username: Self-declared display name
        :type username: str
        """
        metadata = self.connection_metadata.get(connection_id)
        if metadata is not None:
            metadata["username"] = username

    def get_username(self, connection_id: str) -> str:
        """
        Get the display name of a connection.

        :param connection_id: Connection identifier
        :type connection_id: str
        :return: Display name, 'Anonymous' if none was set
        :rtype: str
        """
        metadata = self.connection_metadata.get(connection_id) or {}
        return metadata.get("username") or DEFAULT_USERNAME

    def is_connected(self, connection_id: str) -> bool:
        """
        Check if a connection is still active.

        :param connection_id: Connection identifier
        :type connection_id: str
        :return: True if connection is active
        :rtype: bool
        """
        return connection_id in self.active_connections

    def count(self) -> int:
        return len(self.active_connections)
