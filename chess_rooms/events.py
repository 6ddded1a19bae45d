"""Inbound event dispatch for the real-time channel."""

import logging
from typing import Any, Awaitable, Callable, Dict

from chess_rooms.broadcast import BroadcastRouter
from chess_rooms.connection_lifecycle import ConnectionLifecycleHandler
from chess_rooms.connection_manager import ConnectionManager
from chess_rooms.errors import InternalError, InvalidPayload, SessionError
from chess_rooms.lifecycle import RoomLifecycleManager
from chess_rooms.protocol import (
    ClientMessage,
    JoinRoomPayload,
    MovePayload,
    ResetPayload,
    RoomSnapshot,
    UsernamePayload,
    ack_message,
    parse_payload,
)
from chess_rooms.turns import TurnCoordinator

logger = logging.getLogger(__name__)

Handler = Callable[[str, Any], Awaitable[Any]]

# Events answered with an acknowledgement when the client sends an ack id
ACK_EVENTS = frozenset({"createRoom", "joinRoom", "ping"})

PONG = "pong"

FAILURE_MESSAGES = {
    "createRoom": "Failed to create room",
    "joinRoom": "Failed to join room",
    "move": "Failed to process move",
    "gameReset": "Failed to reset game",
}


class EventDispatcher:
    """
    Routes inbound frames to session operations and replies to the sender.

    This is the error boundary of the channel: every failure ends up as a
    reply to the requesting connection only, never as a broadcast and never
    as a closed connection.

    :param connections: Connection manager holding display names
    :type connections: ConnectionManager
    :param lifecycle: Room lifecycle manager
    :type lifecycle: RoomLifecycleManager
    :param coordinator: Turn coordinator
    :type coordinator: TurnCoordinator
    :param disconnects: Connection lifecycle handler
    :type disconnects: ConnectionLifecycleHandler
    :param router: Broadcast router used for replies and errors
    :type router: BroadcastRouter
    """

    def __init__(
        self,
        connections: ConnectionManager,
        lifecycle: RoomLifecycleManager,
        coordinator: TurnCoordinator,
        disconnects: ConnectionLifecycleHandler,
        router: BroadcastRouter,
    ) -> None:
        self.connections = connections
        self.lifecycle = lifecycle
        self.coordinator = coordinator
        self.disconnects = disconnects
        self.router = router
        self.handlers: Dict[str, Handler] = {
            "username": self.on_username,
            "createRoom": self.on_create_room,
            "joinRoom": self.on_join_room,
            "move": self.on_move,
            "gameReset": self.on_game_reset,
            "ping": self.on_ping,
        }

    async def dispatch(self, connection_id: str, frame: Any) -> None:
        """
        Handle one inbound frame.

        :param connection_id: Sending connection
        :type connection_id: str
        :param frame: Decoded JSON frame
        :type frame: Any
        """
        try:
            message = parse_payload(ClientMessage, frame)
        except InvalidPayload as exc:
            await self.router.send_error(connection_id, exc)
            return

        handler = self.handlers.get(message.event)
        if handler is None:
            await self.router.send_error(connection_id, InvalidPayload(f"Unknown event: {message.event}"))
            return

        try:
            reply = await handler(connection_id, message.data)
        except SessionError as exc:
            logger.debug(f"[WS:{connection_id}] {message.event} rejected: {exc.message}")
            await self._reply_error(connection_id, message, exc)
            return
        except Exception:
            logger.exception(f"[WS:{connection_id}] Error handling {message.event}")
            await self._reply_error(connection_id, message, InternalError(FAILURE_MESSAGES.get(message.event)))
            return

        if message.event in ACK_EVENTS and message.ack is not None:
            await self.router.reply(connection_id, ack_message(message.ack, reply))

    async def _reply_error(self, connection_id: str, message: ClientMessage, error: SessionError) -> None:
        if message.event in ACK_EVENTS and message.ack is not None:
            await self.router.reply(connection_id, ack_message(message.ack, error.to_payload()))
        else:
            await self.router.send_error(connection_id, error)

    async def on_username(self, connection_id: str, data: Any) -> None:
        payload = parse_payload(UsernamePayload, {"username": data})
        self.connections.set_username(connection_id, payload.username)
        logger.info(f"[WS:{connection_id}] Username set: {payload.username}")

    async def on_create_room(self, connection_id: str, data: Any) -> str:
        room = await self.lifecycle.open_room(connection_id, self.connections.get_username(connection_id))
        return room.room_id

    async def on_join_room(self, connection_id: str, data: Any) -> Dict[str, Any]:
        payload = parse_payload(JoinRoomPayload, data)
        room = await self.lifecycle.join_room(
            payload.room_id, connection_id, self.connections.get_username(connection_id)
        )
        return RoomSnapshot.from_room(room).model_dump(mode="json")

    async def on_move(self, connection_id: str, data: Any) -> None:
        payload = parse_payload(MovePayload, data)
        await self.coordinator.submit_move(payload.room, connection_id, payload.move_input(), raw_move=data["move"])

    async def on_game_reset(self, connection_id: str, data: Any) -> None:
        payload = parse_payload(ResetPayload, data)
        await self.coordinator.reset_game(payload.room)

    async def on_ping(self, connection_id: str, data: Any) -> str:
        return PONG

    async def handle_disconnect(self, connection_id: str) -> None:
        """
        Run disconnect cleanup for a connection; never raises.

        :param connection_id: Connection that went away
        :type connection_id: str
        """
        try:
            await self.disconnects.handle_disconnect(connection_id)
        except Exception:
            logger.exception(f"[WS:{connection_id}] Disconnect cleanup failed")
