"""Room lifecycle: opening, joining, cleanup and idle reclamation."""

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from chess_rooms.broadcast import BroadcastRouter
from chess_rooms.errors import AlreadyInRoom, AlreadyJoined, RoomFull, RoomNotFound
from chess_rooms.models import GameState, Participant, Room, Side, utcnow
from chess_rooms.registry import SessionRegistry

logger = logging.getLogger(__name__)


class RoomLifecycleManager:
    """
    Creates rooms, seats the second participant and removes rooms that are
    empty or idle.

    :param registry: Session registry owning the rooms
    :type registry: SessionRegistry
    :param router: Broadcast router for join notifications, None to skip fan-out
    :type router: Optional[BroadcastRouter]
    :param clock: Source of the current time
    :type clock: Callable[[], datetime]
    """

    def __init__(
        self,
        registry: SessionRegistry,
        router: Optional[BroadcastRouter] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.registry = registry
        self.router = router
        self.clock = clock

    async def open_room(self, connection_id: str, display_name: str) -> Room:
        """
        Open a room with the requester seated on the first side.

        :param connection_id: Requesting connection
        :type connection_id: str
        :param display_name: Requester's display name
        :type display_name: str
        :return: The new room, status waiting
        :rtype: Room
        :raises AlreadyInRoom: If the connection is already seated in a room
        :raises RoomIdExhausted: If no unique room id could be generated
        """
        if self.registry.find_by_connection(connection_id) is not None:
            raise AlreadyInRoom()
        created = await self.registry.create()
        async with self.registry.locked(created.room_id) as room:
            now = self.clock()
            room.created_at = now
            room.add_participant(Participant(connection_id=connection_id, display_name=display_name, side=Side.FIRST))
            room.game.state = GameState.WAITING
            room.touch(now)

        logger.info(f"[Room:{room.room_id}] Created by {display_name}")
        return room

    async def join_room(self, room_id: str, connection_id: str, display_name: str) -> Room:
        """
        Seat a second participant and activate the game.

        The existing participant is notified through the broadcast router;
        the joining connection gets the returned room as its reply.

        :param room_id: Room to join
        :type room_id: str
        :param connection_id: Requesting connection
        :type connection_id: str
        :param display_name: Requester's display name
        :type display_name: str
        :return: The updated room
        :rtype: Room
        :raises RoomNotFound: If the room does not exist
        :raises RoomFull: If the room already has two participants
        :raises AlreadyJoined: If the connection is already seated in the room
        :raises AlreadyInRoom: If the connection is seated in another room
        """
        async with self.registry.locked(room_id) as room:
            if room.is_full:
                raise RoomFull()
            if room.find_participant(connection_id) is not None:
                raise AlreadyJoined()
            if self.registry.find_by_connection(connection_id) is not None:
                raise AlreadyInRoom()

            side = room.vacant_side() or Side.SECOND
            room.add_participant(Participant(connection_id=connection_id, display_name=display_name, side=side))
            room.game.state = GameState.ACTIVE
            room.touch(self.clock())
            logger.info(f"[Room:{room_id}] {display_name} joined as {side.value}")

            if self.router is not None:
                await self.router.opponent_joined(room, connection_id)
            return room

    async def cleanup_if_empty(self, room_id: str) -> bool:
        """
        Delete the room and its game session if nobody is seated.

        :param room_id: Room identifier
        :type room_id: str
        :return: True if the room was removed
        :rtype: bool
        """
        removed = await self.registry.remove(room_id, only_if=lambda room: room.is_empty)
        if removed is not None:
            logger.info(f"[Room:{room_id}] Cleaned up")
        return removed is not None

    async def reclaim_idle(self, now: datetime, max_idle: float) -> List[str]:
        """
        Remove every room inactive for longer than ``max_idle`` seconds.

        Rooms are handled one at a time; a room whose lock is held is skipped
        until the next sweep and a failure on one room does not stop the rest.

        :param now: Reference time of the sweep
        :type now: datetime
        :param max_idle: Maximum inactivity in seconds
        :type max_idle: float
        :return: Ids of the reclaimed rooms
        :rtype: List[str]
        """
        reclaimed: List[str] = []
        for room_id in self.registry.room_ids():
            lock = self.registry.room_lock(room_id)
            if lock is None:
                continue
            if lock.locked():
                logger.debug(f"[Reaper] Room {room_id} busy, skipping")
                continue
            try:
                async with self.registry.locked(room_id) as room:
                    idle_for = (now - room.last_activity_at).total_seconds()
                    if idle_for <= max_idle:
                        continue
                    await self.registry.remove(room_id)
                    reclaimed.append(room_id)
                    logger.info(f"[Reaper] Reclaimed inactive room {room_id} (idle {idle_for:.0f}s)")
            except RoomNotFound:
                continue
            except Exception:
                logger.exception(f"[Reaper] Failed to check room {room_id}")

        logger.debug(f"[Reaper] Sweep done, {len(reclaimed)} room(s) reclaimed, {len(self.registry)} left")
        return reclaimed


class IdleRoomReaper:
    """
    Background task running :meth:`RoomLifecycleManager.reclaim_idle` periodically.

    :param lifecycle: Lifecycle manager doing the actual reclamation
    :type lifecycle: RoomLifecycleManager
    :param interval: Seconds between sweeps
    :type interval: float
    :param max_idle: Maximum inactivity in seconds
    :type max_idle: float
    :param clock: Source of the current time
    :type clock: Callable[[], datetime]
    """

    def __init__(
        self,
        lifecycle: RoomLifecycleManager,
        interval: float,
        max_idle: float,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.lifecycle = lifecycle
        self.interval = interval
        self.max_idle = max_idle
        self.clock = clock
        self.task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    def start(self) -> None:
        if self.running:
            return
        self.task = asyncio.create_task(self._run())
        logger.info(f"[Reaper] Sweeping every {self.interval:.0f}s, max idle {self.max_idle:.0f}s")

    async def stop(self) -> None:
        if self.task is None:
            return
        self.task.cancel()
        try:
            await self.task
        except asyncio.CancelledError:
            pass
        self.task = None

    async def run_once(self) -> List[str]:
        return await self.lifecycle.reclaim_idle(self.clock(), self.max_idle)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except Exception:
                logger.exception("[Reaper] Sweep failed")
