"""Tests for the wire contracts."""

import pytest

from chess_rooms.errors import InvalidPayload
from chess_rooms.models import Participant, Room, Side
from chess_rooms.protocol import (
    ClientMessage,
    GameUpdate,
    JoinRoomPayload,
    MovePayload,
    RoomSnapshot,
    UsernamePayload,
    ack_message,
    event_message,
    parse_payload,
)


def test_client_message():
    """
    Test the inbound envelope accepts an event with optional data and ack.

    :return: None
    :rtype: None
    """
    message = parse_payload(ClientMessage, {"event": "ping", "ack": 3})

    assert message.event == "ping"
    assert message.data is None
    assert message.ack == 3


@pytest.mark.parametrize("frame", [None, [], {"data": 1}, {"event": ""}, {"event": 5}])
def test_client_message_rejects_bad_envelopes(frame):
    """
    Test frames without a usable event name are rejected.

    :return: None
    :rtype: None
    """
    with pytest.raises(InvalidPayload):
        parse_payload(ClientMessage, frame)


def test_join_payload_alias_and_error_message():
    """
    Test the room id is read from roomId and a missing one is named in the error.

    :return: None
    :rtype: None
    """
    assert parse_payload(JoinRoomPayload, {"roomId": " AB12CD34 "}).room_id == "AB12CD34"

    with pytest.raises(InvalidPayload) as exc_info:
        parse_payload(JoinRoomPayload, {"room": "AB12CD34"})

    assert exc_info.value.message == "Malformed JoinRoomPayload: roomId"


def test_username_payload():
    """
    Test usernames are trimmed and must not be blank.

    :return: None
    :rtype: None
    """
    assert parse_payload(UsernamePayload, {"username": "  alice "}).username == "alice"
    with pytest.raises(InvalidPayload):
        parse_payload(UsernamePayload, {"username": "   "})
    with pytest.raises(InvalidPayload):
        parse_payload(UsernamePayload, {"username": 12})


def test_move_payload_forms():
    """
    Test string and square moves are both accepted and passed on unchanged.

    :return: None
    :rtype: None
    """
    text = parse_payload(MovePayload, {"move": "e4", "room": "AB12CD34"})
    squares = parse_payload(MovePayload, {"move": {"from": "e7", "to": "e8", "promotion": "q"}, "room": "AB12CD34"})
    plain = parse_payload(MovePayload, {"move": {"from": "e2", "to": "e4"}, "room": "AB12CD34"})

    assert text.move_input() == "e4"
    assert squares.move_input() == {"from": "e7", "to": "e8", "promotion": "q"}
    assert plain.move_input() == {"from": "e2", "to": "e4"}


def test_move_payload_uppercase_promotion():
    """
    Test an uppercase promotion letter is accepted and normalised.

    :return: None
    :rtype: None
    """
    payload = parse_payload(MovePayload, {"move": {"from": "e7", "to": "e8", "promotion": "Q"}, "room": "AB12CD34"})

    assert payload.move_input() == {"from": "e7", "to": "e8", "promotion": "q"}


@pytest.mark.parametrize(
    "data",
    [
        {"move": "e4"},
        {"room": "AB12CD34"},
        {"move": {"from": "e9", "to": "e4"}, "room": "AB12CD34"},
        {"move": {"from": "e7", "to": "e8", "promotion": "k"}, "room": "AB12CD34"},
        {"move": 42, "room": "AB12CD34"},
    ],
)
def test_move_payload_rejects_malformed(data):
    """
    Test malformed move requests are rejected before reaching the board.

    :return: None
    :rtype: None
    """
    with pytest.raises(InvalidPayload):
        parse_payload(MovePayload, data)


def test_room_snapshot():
    """
    Test the room snapshot lists players by side with their colors.

    :return: None
    :rtype: None
    """
    room = Room(room_id="AB12CD34")
    room.add_participant(Participant("conn2", "bob", Side.SECOND))
    room.add_participant(Participant("conn1", "alice", Side.FIRST))

    snapshot = RoomSnapshot.from_room(room).model_dump(mode="json")

    assert snapshot["roomId"] == "AB12CD34"
    assert snapshot["status"] == "ready"
    assert [(p["username"], p["side"], p["color"]) for p in snapshot["players"]] == [
        ("alice", "first", "white"),
        ("bob", "second", "black"),
    ]
    assert snapshot["created"] == room.created_at.isoformat()


def test_event_and_ack_messages():
    """
    Test outbound frames dump models to plain JSON types.

    :return: None
    :rtype: None
    """
    update = GameUpdate(fen="fen", currentTurn="first", moveCount=0)

    assert event_message("gameReset") == {"event": "gameReset", "data": None}
    assert event_message("gameUpdate", update)["data"] == {
        "fen": "fen",
        "currentTurn": "first",
        "moveCount": 0,
        "gameOver": None,
        "lastMove": None,
    }
    assert ack_message(7, "pong") == {"event": "ack", "data": "pong", "ack": 7}
