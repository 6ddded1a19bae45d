"""Room and game session state."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from chess_rooms.board import ChessBoard


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Side(str, Enum):
    """Seat of a participant; the first side moves first and plays white."""

    FIRST = "first"
    SECOND = "second"

    @property
    def color(self) -> str:
        return "white" if self is Side.FIRST else "black"

    @property
    def opposite(self) -> "Side":
        return Side.SECOND if self is Side.FIRST else Side.FIRST

    @classmethod
    def from_color(cls, color: str) -> "Side":
        """
        Map a board color to the side playing it.

        :param color: 'white' or 'black'
        :type color: str
        :return: Matching side
        :rtype: Side
        :raises ValueError: If the color is unknown
        """
        if color == "white":
            return cls.FIRST
        if color == "black":
            return cls.SECOND
        raise ValueError(f"Unknown color: {color}")


class RoomStatus(str, Enum):
    WAITING = "waiting"
    READY = "ready"


class GameState(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass
class Participant:
    """
    A connection seated in a room.

    :param connection_id: Transport connection identifier (not owned by the room)
    :type connection_id: str
    :param display_name: Self-declared username
    :type display_name: str
    :param side: Seat in the room
    :type side: Side
    :param ready: Readiness flag reported to clients
    :type ready: bool
    """

    connection_id: str
    display_name: str
    side: Side
    ready: bool = False


@dataclass
class MoveRecord:
    """One accepted move kept for observability."""

    move: Dict[str, Any]
    fen: str
    timestamp: datetime
    player: str


@dataclass
class GameSession:
    """
    Mutable game state of a room.

    The board is owned by this session and never shared with another room.
    """

    board: ChessBoard = field(default_factory=ChessBoard)
    state: GameState = GameState.WAITING
    current_turn: Side = Side.FIRST
    move_count: int = 0
    history: List[MoveRecord] = field(default_factory=list)

    def restart(self) -> None:
        """Put the session back at the initial position with an active game."""
        self.board.reset()
        self.state = GameState.ACTIVE
        self.current_turn = Side.FIRST
        self.move_count = 0
        self.history = []


@dataclass
class RoomSummary:
    room_id: str
    participant_count: int
    status: RoomStatus
    created_at: datetime


@dataclass
class Room:
    """
    A match container holding at most two participants and its game session.

    :param room_id: Short unique room token
    :type room_id: str
    :param participants: Seated participants, ordered by side
    :type participants: List[Participant]
    :param status: Room status derived from the number of participants
    :type status: RoomStatus
    :param created_at: Creation time
    :type created_at: datetime
    :param last_activity_at: Time of the last state-changing event
    :type last_activity_at: datetime
    :param game: Game session sharing the room's lifecycle
    :type game: GameSession
    """

    room_id: str
    participants: List[Participant] = field(default_factory=list)
    status: RoomStatus = RoomStatus.WAITING
    created_at: datetime = field(default_factory=utcnow)
    last_activity_at: datetime = field(default_factory=utcnow)
    game: GameSession = field(default_factory=GameSession)

    MAX_PARTICIPANTS = 2

    def find_participant(self, connection_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.connection_id == connection_id:
                return participant
        return None

    def participant_for_side(self, side: Side) -> Optional[Participant]:
        for participant in self.participants:
            if participant.side is side:
                return participant
        return None

    def vacant_side(self) -> Optional[Side]:
        """
        Get the first unoccupied side.

        :return: Free side, or None if the room is full
        :rtype: Optional[Side]
        """
        for side in Side:
            if self.participant_for_side(side) is None:
                return side
        return None

    def add_participant(self, participant: Participant) -> None:
        self.participants.append(participant)
        self.participants.sort(key=lambda p: list(Side).index(p.side))
        self._refresh_status()

    def remove_participant(self, connection_id: str) -> Optional[Participant]:
        """
        Remove the participant seated with the given connection.

        :param connection_id: Connection identifier
        :type connection_id: str
        :return: Removed participant, or None if the connection was not seated
        :rtype: Optional[Participant]
        """
        participant = self.find_participant(connection_id)
        if participant is not None:
            self.participants.remove(participant)
            self._refresh_status()
        return participant

    def _refresh_status(self) -> None:
        if len(self.participants) >= self.MAX_PARTICIPANTS:
            self.status = RoomStatus.READY
        else:
            self.status = RoomStatus.WAITING

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= self.MAX_PARTICIPANTS

    @property
    def is_empty(self) -> bool:
        return not self.participants

    def touch(self, now: Optional[datetime] = None) -> None:
        self.last_activity_at = now or utcnow()

    def summary(self) -> RoomSummary:
        return RoomSummary(
            room_id=self.room_id,
            participant_count=len(self.participants),
            status=self.status,
            created_at=self.created_at,
        )
