"""Cleanup after a transport-level disconnect."""

import logging
from datetime import datetime
from typing import Callable, Optional

from chess_rooms.broadcast import BroadcastRouter
from chess_rooms.errors import RoomNotFound
from chess_rooms.lifecycle import RoomLifecycleManager
from chess_rooms.models import Participant, utcnow
from chess_rooms.registry import SessionRegistry

logger = logging.getLogger(__name__)


class ConnectionLifecycleHandler:
    """
    Removes a departed connection from its room.

    Disconnect handling is best-effort: a room that vanished while being
    handled counts as not found and is skipped.

    :param registry: Session registry owning the rooms
    :type registry: SessionRegistry
    :param lifecycle: Lifecycle manager used for empty-room cleanup
    :type lifecycle: RoomLifecycleManager
    :param router: Broadcast router for the disconnect notice, None to skip it
    :type router: Optional[BroadcastRouter]
    :param clock: Source of the current time
    :type clock: Callable[[], datetime]
    """

    def __init__(
        self,
        registry: SessionRegistry,
        lifecycle: RoomLifecycleManager,
        router: Optional[BroadcastRouter] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.registry = registry
        self.lifecycle = lifecycle
        self.router = router
        self.clock = clock

    async def handle_disconnect(self, connection_id: str) -> Optional[Participant]:
        """
        Unseat a disconnected connection, notify the opponent and clean up.

        Only the first room holding the connection is handled; a connection
        is seated in at most one room.

        :param connection_id: Connection that went away
        :type connection_id: str
        :return: The removed participant, or None if the connection was not seated
        :rtype: Optional[Participant]
        """
        room = self.registry.find_by_connection(connection_id)
        if room is None:
            return None

        room_id = room.room_id
        try:
            async with self.registry.locked(room_id) as locked_room:
                departed = locked_room.remove_participant(connection_id)
                if departed is None:
                    return None
                locked_room.touch(self.clock())
                logger.info(f"[Room:{room_id}] {departed.display_name} left, {len(locked_room.participants)} remaining")

                if not locked_room.is_empty and self.router is not None:
                    await self.router.player_disconnected(locked_room, departed)
                await self.lifecycle.cleanup_if_empty(room_id)
                return departed
        except RoomNotFound:
            logger.debug(f"[Room:{room_id}] Gone before disconnect of {connection_id} was handled")
            return None
