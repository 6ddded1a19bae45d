"""Error taxonomy for room and game operations."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Broad category of a failed operation."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PERMISSION_DENIED = "permission_denied"
    INVALID_INPUT = "invalid_input"
    INTERNAL = "internal"


class SessionError(Exception):
    """
    Base class for every error reported back to a requesting connection.

    :param message: Client-facing message, defaults to the class message
    :type message: Optional[str]
    """

    kind = ErrorKind.INTERNAL
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        """
        Build the structured error reply sent to the requester.

        :return: Error payload with kind and message
        :rtype: Dict[str, Any]
        """
        return {"error": True, "kind": self.kind.value, "message": self.message}


class RoomNotFound(SessionError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Room not found"


class SessionNotFound(SessionError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Room or game not found"


class RoomFull(SessionError):
    kind = ErrorKind.CONFLICT
    default_message = "Room is full"


class AlreadyJoined(SessionError):
    kind = ErrorKind.CONFLICT
    default_message = "Already in this room"


class AlreadyInRoom(SessionError):
    kind = ErrorKind.CONFLICT
    default_message = "Already in another room"


class NotAParticipant(SessionError):
    kind = ErrorKind.PERMISSION_DENIED
    default_message = "Player not found in room"


class OutOfTurn(SessionError):
    kind = ErrorKind.PERMISSION_DENIED
    default_message = "Not your turn"


class IllegalMove(SessionError):
    kind = ErrorKind.INVALID_INPUT
    default_message = "Invalid move"


class InvalidPayload(SessionError):
    kind = ErrorKind.INVALID_INPUT
    default_message = "Malformed payload"


class InternalError(SessionError):
    kind = ErrorKind.INTERNAL
    default_message = "Internal error"


class RoomIdExhausted(InternalError):
    default_message = "Failed to create room"
