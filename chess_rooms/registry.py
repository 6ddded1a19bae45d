"""Session registry: the single keyed store of rooms and their game sessions."""

import asyncio
import logging
import secrets
import string
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional

from chess_rooms.errors import RoomIdExhausted, RoomNotFound
from chess_rooms.models import Room, RoomSummary

logger = logging.getLogger(__name__)

ROOM_ID_ALPHABET = string.ascii_uppercase + string.digits
ROOM_ID_LENGTH = 8
MAX_ID_ATTEMPTS = 16


def generate_room_id() -> str:
    """
    Generate a random room token.

    :return: 8 uppercase alphanumeric characters
    :rtype: str
    """
    return "".join(secrets.choice(ROOM_ID_ALPHABET) for _ in range(ROOM_ID_LENGTH))


class SessionRegistry:
    """
    Owns the room id -> room mapping for the lifetime of the process.

    Structural changes (insert/delete) are serialized by a registry-wide lock
    held only for the change itself. Operations on one room are serialized by
    that room's lock, see :meth:`locked`. Lock order is room lock first,
    registry lock second.

    :param id_factory: Room id generator, defaults to :func:`generate_room_id`
    :type id_factory: Optional[Callable[[], str]]
    :param max_attempts: Id generation attempts before giving up
    :type max_attempts: int
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None, max_attempts: int = MAX_ID_ATTEMPTS) -> None:
        self.id_factory = id_factory or generate_room_id
        self.max_attempts = max_attempts
        self.rooms: Dict[str, Room] = {}
        self.room_locks: Dict[str, asyncio.Lock] = {}
        self.lock = asyncio.Lock()

    async def create(self) -> Room:
        """
        Create a room (with its game session) under a fresh unique id.

        :return: The new, empty room
        :rtype: Room
        :raises RoomIdExhausted: If no unused id was generated within the attempt bound
        """
        async with self.lock:
            for attempt in range(1, self.max_attempts + 1):
                room_id = self.id_factory()
                if room_id not in self.rooms:
                    room = Room(room_id=room_id)
                    self.rooms[room_id] = room
                    self.room_locks[room_id] = asyncio.Lock()
                    return room
                logger.debug(f"[Registry] Room id collision on {room_id} (attempt {attempt})")

        logger.error(f"[Registry] Could not generate a unique room id after {self.max_attempts} attempts")
        raise RoomIdExhausted()

    def get(self, room_id: str) -> Room:
        """
        Look up a room.

        :param room_id: Room identifier
        :type room_id: str
        :return: The room
        :rtype: Room
        :raises RoomNotFound: If the room does not exist
        """
        room = self.rooms.get(room_id)
        if room is None:
            raise RoomNotFound()
        return room

    def find(self, room_id: str) -> Optional[Room]:
        return self.rooms.get(room_id)

    def find_by_connection(self, connection_id: str) -> Optional[Room]:
        """
        Find the first room in which the connection holds a seat.

        :param connection_id: Connection identifier
        :type connection_id: str
        :return: Room, or None if the connection is not seated anywhere
        :rtype: Optional[Room]
        """
        for room in list(self.rooms.values()):
            if room.find_participant(connection_id) is not None:
                return room
        return None

    async def remove(self, room_id: str, only_if: Optional[Callable[[Room], bool]] = None) -> Optional[Room]:
        """
        Delete a room and its game session.

        :param room_id: Room identifier
        :type room_id: str
        :param only_if: Predicate evaluated under the registry lock; the room is kept if it returns False
        :type only_if: Optional[Callable[[Room], bool]]
        :return: The removed room, or None if nothing was removed
        :rtype: Optional[Room]
        """
        async with self.lock:
            room = self.rooms.get(room_id)
            if room is None:
                return None
            if only_if is not None and not only_if(room):
                return None
            del self.rooms[room_id]
            self.room_locks.pop(room_id, None)
            return room

    def room_lock(self, room_id: str) -> Optional[asyncio.Lock]:
        return self.room_locks.get(room_id)

    @asynccontextmanager
    async def locked(self, room_id: str) -> AsyncIterator[Room]:
        """
        Hold a room's lock for the duration of an operation.

        The room is looked up again once the lock is acquired, so an operation
        queued behind a removal sees the room as gone.

        :param room_id: Room identifier
        :type room_id: str
        :return: Async context manager yielding the locked room
        :rtype: AsyncIterator[Room]
        :raises RoomNotFound: If the room does not exist or was removed while waiting
        """
        lock = self.room_locks.get(room_id)
        if lock is None:
            raise RoomNotFound()
        async with lock:
            room = self.find(room_id)
            if room is None or self.room_locks.get(room_id) is not lock:
                raise RoomNotFound()
            yield room

    def list_summaries(self) -> List[RoomSummary]:
        return [room.summary() for room in self.rooms.values()]

    def room_ids(self) -> List[str]:
        return list(self.rooms.keys())

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self.rooms
