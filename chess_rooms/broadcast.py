"""Room-scoped fan-out of state changes."""

import logging
from typing import Any, Dict, List

from chess_rooms.connection_manager import ConnectionManager
from chess_rooms.errors import SessionError
from chess_rooms.models import Participant, Room
from chess_rooms.protocol import (
    ErrorNotice,
    GameUpdate,
    ParticipantView,
    PlayerDisconnectedNotice,
    RoomSnapshot,
    event_message,
)

logger = logging.getLogger(__name__)


def room_connections(room: Room) -> List[str]:
    return [participant.connection_id for participant in room.participants]


class BroadcastRouter:
    """
    Maps session events to messages for the right audience.

    Successful state changes go to the room; errors only ever go to the
    connection that caused them. Callers hold the room's lock while
    broadcasting so the messages of one room leave in mutation order.

    :param connections: Connection manager used for delivery
    :type connections: ConnectionManager
    """

    def __init__(self, connections: ConnectionManager) -> None:
        self.connections = connections

    async def move_accepted(self, room: Room, submitter_id: str, raw_move: Any, update: GameUpdate) -> None:
        """
        Fan out an accepted move.

        The raw move is echoed to everyone but the submitter, then the
        authoritative game update goes to every participant.

        :param room: Room the move was played in
        :type room: Room
        :param submitter_id: Connection that submitted the move
        :type submitter_id: str
        :param raw_move: Move input as received
        :type raw_move: Any
        :param update: Post-move game state
        :type update: GameUpdate
        """
        targets = room_connections(room)
        await self.connections.send_to_connections(
            targets, event_message("move", raw_move), exclude_connection=submitter_id
        )
        await self.connections.send_to_connections(targets, event_message("gameUpdate", update))
        logger.debug(f"[Room:{room.room_id}] Move broadcast to {len(targets)} connection(s)")

    async def opponent_joined(self, room: Room, joiner_id: str) -> None:
        await self.connections.send_to_connections(
            room_connections(room),
            event_message("opponentJoined", RoomSnapshot.from_room(room)),
            exclude_connection=joiner_id,
        )

    async def game_reset(self, room: Room, update: GameUpdate) -> None:
        targets = room_connections(room)
        await self.connections.send_to_connections(targets, event_message("gameReset"))
        await self.connections.send_to_connections(targets, event_message("gameUpdate", update))
        logger.debug(f"[Room:{room.room_id}] Reset broadcast to {len(targets)} connection(s)")

    async def player_disconnected(self, room: Room, departed: Participant) -> None:
        """
        Tell the remaining participants that someone left.

        :param room: Room after the participant was removed
        :type room: Room
        :param departed: Participant that disconnected
        :type departed: Participant
        """
        if room.is_empty:
            return
        notice = PlayerDisconnectedNotice(
            player=ParticipantView.from_participant(departed),
            remainingPlayers=len(room.participants),
        )
        await self.connections.send_to_connections(
            room_connections(room),
            event_message("playerDisconnected", notice),
            exclude_connection=departed.connection_id,
        )

    async def send_error(self, connection_id: str, error: SessionError) -> None:
        notice = ErrorNotice(message=error.message, kind=error.kind.value)
        await self.connections.send_message(connection_id, event_message("error", notice))

    async def reply(self, connection_id: str, message: Dict[str, Any]) -> bool:
        return await self.connections.send_message(connection_id, message)
