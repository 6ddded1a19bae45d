"""Wire contracts for the real-time event channel."""

from typing import Any, Dict, List, Literal, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

from chess_rooms.errors import InvalidPayload
from chess_rooms.models import Participant, Room, RoomSummary

ModelT = TypeVar("ModelT", bound=BaseModel)

ACK_EVENT = "ack"


class ClientMessage(BaseModel):
    """
    Envelope of every inbound frame.

    :param event: Event name
    :type event: str
    :param data: Event payload, shape depends on the event
    :type data: Any
    :param ack: Request id for events answered with an acknowledgement
    :type ack: Optional[int]
    """

    event: StrictStr = Field(min_length=1)
    data: Any = None
    ack: Optional[int] = None


class UsernamePayload(BaseModel):
    username: StrictStr = Field(min_length=1, max_length=64)

    model_config = ConfigDict(str_strip_whitespace=True)


class JoinRoomPayload(BaseModel):
    room_id: StrictStr = Field(alias="roomId", min_length=1)

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class SquareMove(BaseModel):
    """Move given as origin and destination squares."""

    from_square: StrictStr = Field(alias="from", pattern=r"^[a-h][1-8]$")
    to_square: StrictStr = Field(alias="to", pattern=r"^[a-h][1-8]$")
    promotion: Optional[Literal["q", "r", "b", "n"]] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("promotion", mode="before")
    @classmethod
    def lowercase_promotion(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class MovePayload(BaseModel):
    """
    Inbound move request.

    :param move: SAN/UCI string or a from/to/promotion object
    :type move: Union[str, SquareMove]
    :param room: Target room id
    :type room: str
    """

    move: Union[StrictStr, SquareMove]
    room: StrictStr = Field(min_length=1)

    def move_input(self) -> Union[str, Dict[str, Any]]:
        """
        Move in the form handed to the board and echoed to the opponent.

        :return: Move string or from/to/promotion mapping
        :rtype: Union[str, Dict[str, Any]]
        """
        if isinstance(self.move, SquareMove):
            return self.move.model_dump(by_alias=True, exclude_none=True)
        return self.move


class ResetPayload(BaseModel):
    room: StrictStr = Field(min_length=1)


class ParticipantView(BaseModel):
    connectionId: str
    username: str
    side: str
    color: str
    ready: bool

    @classmethod
    def from_participant(cls, participant: Participant) -> "ParticipantView":
        return cls(
            connectionId=participant.connection_id,
            username=participant.display_name,
            side=participant.side.value,
            color=participant.side.color,
            ready=participant.ready,
        )


class RoomSnapshot(BaseModel):
    roomId: str
    players: List[ParticipantView]
    status: str
    created: str
    lastActivity: str

    @classmethod
    def from_room(cls, room: Room) -> "RoomSnapshot":
        return cls(
            roomId=room.room_id,
            players=[ParticipantView.from_participant(p) for p in room.participants],
            status=room.status.value,
            created=room.created_at.isoformat(),
            lastActivity=room.last_activity_at.isoformat(),
        )


class RoomSummaryView(BaseModel):
    roomId: str
    playerCount: int
    status: str
    created: str

    @classmethod
    def from_summary(cls, summary: RoomSummary) -> "RoomSummaryView":
        return cls(
            roomId=summary.room_id,
            playerCount=summary.participant_count,
            status=summary.status.value,
            created=summary.created_at.isoformat(),
        )


class GameOverInfo(BaseModel):
    """
    Terminal state of a game.

    :param type: 'checkmate' or 'draw'
    :type type: str
    :param winner: Winning side for a checkmate
    :type winner: Optional[str]
    :param message: Human readable summary
    :type message: str
    """

    type: Literal["checkmate", "draw"]
    winner: Optional[str] = None
    message: str


class GameUpdate(BaseModel):
    """Authoritative game state sent to every participant."""

    fen: str
    currentTurn: str
    moveCount: int
    gameOver: Optional[GameOverInfo] = None
    lastMove: Optional[Dict[str, Any]] = None


class PlayerDisconnectedNotice(BaseModel):
    player: ParticipantView
    remainingPlayers: int


class ErrorNotice(BaseModel):
    message: str
    kind: str


def parse_payload(model: Type[ModelT], data: Any) -> ModelT:
    """
    Validate an inbound payload against its contract.

    :param model: Pydantic model describing the payload
    :type model: Type[ModelT]
    :param data: Raw payload
    :type data: Any
    :return: Validated payload
    :rtype: ModelT
    :raises InvalidPayload: If the payload does not match the contract
    """
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(part) for part in error["loc"]) or "payload" for error in exc.errors())
        raise InvalidPayload(f"Malformed {model.__name__}: {fields}") from exc


def event_message(event: str, data: Any = None) -> Dict[str, Any]:
    """
    Build an outbound event frame.

    :param event: Event name
    :type event: str
    :param data: Payload, pydantic models are dumped to plain JSON types
    :type data: Any
    :return: Frame ready to be sent as JSON
    :rtype: Dict[str, Any]
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return {"event": event, "data": data}


def ack_message(ack: int, data: Any) -> Dict[str, Any]:
    message = event_message(ACK_EVENT, data)
    message["ack"] = ack
    return message
