"""Tests for turn coordination and game-over detection."""

from unittest.mock import AsyncMock

import chess
import pytest

from chess_rooms.errors import IllegalMove, NotAParticipant, OutOfTurn, SessionNotFound
from chess_rooms.models import GameState, Side
from chess_rooms.turns import MoveOutcome
from tests.helpers import sent_events, sent_messages

STALEMATE_IN_ONE = "7k/5Q2/6K1/8/8/8/8/8 w - - 0 1"


async def open_match(lifecycle, first="conn1", second="conn2"):
    room = await lifecycle.open_room(first, "alice")
    await lifecycle.join_room(room.room_id, second, "bob")
    return room


@pytest.mark.asyncio
async def test_accepted_move_advances_game(lifecycle, coordinator, clock):
    """
    Test an accepted move increments the count, flips the turn and records history.

    :return: None
    :rtype: None
    """
    room = await open_match(lifecycle)
    clock.advance(5)

    outcome = await coordinator.submit_move(room.room_id, "conn1", "e4")

    assert isinstance(outcome, MoveOutcome)
    assert outcome.move_count == 1
    assert outcome.current_turn is Side.SECOND
    assert outcome.game_over is None
    assert outcome.last_move.san == "e4"
    assert room.game.move_count == 1
    assert room.game.current_turn is Side.SECOND
    assert len(room.game.history) == 1
    assert room.game.history[0].player == "alice"
    assert room.game.history[0].fen == outcome.fen
    assert room.last_activity_at == clock.now


@pytest.mark.asyncio
async def test_turn_alternates(lifecycle, coordinator):
    """
    Test every accepted move raises the count by one and flips the turn once.

    :return: None
    :rtype: None
    """
    room = await open_match(lifecycle)
    movers = ["conn1", "conn2", "conn1", "conn2"]
    moves = ["e4", "e5", "Nf3", "Nc6"]
    expected_turn = Side.FIRST

    for count, (mover, move) in enumerate(zip(movers, moves), start=1):
        outcome = await coordinator.submit_move(room.room_id, mover, move)
        expected_turn = expected_turn.opposite
        assert outcome.move_count == count
        assert outcome.current_turn is expected_turn


@pytest.mark.asyncio
async def test_unknown_session(coordinator):
    """
    Test a move on an unknown room.

    :return: None
    :rtype: None
    """
    with pytest.raises(SessionNotFound):
        await coordinator.submit_move("UNKNOWN1", "conn1", "e4")


@pytest.mark.asyncio
async def test_not_a_participant(lifecycle, coordinator):
    """
    Test a connection that is not seated cannot move.

    :return: None
    :rtype: None
    """
    room = await open_match(lifecycle)

    with pytest.raises(NotAParticipant):
        await coordinator.submit_move(room.room_id, "conn3", "e4")

    assert room.game.move_count == 0


@pytest.mark.asyncio
async def test_out_of_turn_leaves_state(lifecycle, coordinator):
    """
    Test a move out of turn is rejected and nothing changes.

    :return: None
    :rtype: None
    """
    room = await open_match(lifecycle)
    fen_before = room.game.board.fen()
    activity_before = room.last_activity_at

    with pytest.raises(OutOfTurn):
        await coordinator.submit_move(room.room_id, "conn2", "e5")

    assert room.game.move_count == 0
    assert room.game.current_turn is Side.FIRST
    assert room.game.board.fen() == fen_before
    assert room.last_activity_at == activity_before


@pytest.mark.asyncio
async def test_illegal_move_leaves_state(lifecycle, coordinator):
    """
    Test an illegal move is rejected and nothing changes.

    :return: None
    :rtype: None
    """
    room = await open_match(lifecycle)
    await coordinator.submit_move(room.room_id, "conn1", "e4")
    fen_before = room.game.board.fen()

    with pytest.raises(IllegalMove):
        await coordinator.submit_move(room.room_id, "conn2", "e4")

    assert room.game.move_count == 1
    assert room.game.current_turn is Side.SECOND
    assert room.game.board.fen() == fen_before
    assert len(room.game.history) == 1


@pytest.mark.asyncio
async def test_checkmate_winner_is_mover(lifecycle, coordinator):
    """
    Test checkmate finishes the game with the mating side as winner.

    :return: None
    :rtype: None
    """
    room = await open_match(lifecycle)
    for mover, move in [("conn1", "f3"), ("conn2", "e5"), ("conn1", "g4")]:
        await coordinator.submit_move(room.room_id, mover, move)

    outcome = await coordinator.submit_move(room.room_id, "conn2", "Qh4#")

    assert outcome.game_over is not None
    assert outcome.game_over.type == "checkmate"
    assert outcome.game_over.winner == Side.SECOND.value
    assert "Black wins" in outcome.game_over.message
    assert outcome.current_turn is Side.FIRST
    assert room.game.state is GameState.FINISHED


@pytest.mark.asyncio
async def test_stalemate_is_draw(lifecycle, coordinator):
    """
    Test a stalemating move finishes the game as a draw.

    :return: None
    :rtype: None
    """
    room = await open_match(lifecycle)
    room.game.board.board.set_fen(STALEMATE_IN_ONE)

    outcome = await coordinator.submit_move(room.room_id, "conn1", "Kh6")

    assert outcome.game_over.type == "draw"
    assert outcome.game_over.winner is None
    assert "stalemate" in outcome.game_over.message
    assert room.game.state is GameState.FINISHED


@pytest.mark.asyncio
async def test_move_fan_out(lifecycle, coordinator, connections):
    """
    Test the raw move goes to the opponent only and the game update to both.

    :return: None
    :rtype: None
    """
    ws1 = AsyncMock()
    ws2 = AsyncMock()
    conn1 = await connections.connect(ws1)
    conn2 = await connections.connect(ws2)
    room = await open_match(lifecycle, conn1, conn2)
    ws1.send_json.reset_mock()

    await coordinator.submit_move(room.room_id, conn1, {"from": "e2", "to": "e4"})

    assert sent_events(ws1) == ["gameUpdate"]
    assert sent_events(ws2) == ["move", "gameUpdate"]
    assert sent_messages(ws2)[0]["data"] == {"from": "e2", "to": "e4"}
    update = sent_messages(ws1)[0]["data"]
    assert update == sent_messages(ws2)[1]["data"]
    assert update["moveCount"] == 1
    assert update["currentTurn"] == "second"
    assert update["gameOver"] is None
    assert update["lastMove"]["san"] == "e4"


@pytest.mark.asyncio
async def test_rejected_move_broadcasts_nothing(lifecycle, coordinator, connections):
    """
    Test a rejected move sends nothing to the room.

    :return: None
    :rtype: None
    """
    ws1 = AsyncMock()
    ws2 = AsyncMock()
    conn1 = await connections.connect(ws1)
    conn2 = await connections.connect(ws2)
    room = await open_match(lifecycle, conn1, conn2)
    ws1.send_json.reset_mock()

    with pytest.raises(IllegalMove):
        await coordinator.submit_move(room.room_id, conn1, "e5")

    assert sent_events(ws1) == []
    assert sent_events(ws2) == []


@pytest.mark.asyncio
async def test_reset_game(lifecycle, coordinator, connections, clock):
    """
    Test a reset restores the initial position of a finished game.

    :return: None
    :rtype: None
    """
    ws1 = AsyncMock()
    ws2 = AsyncMock()
    conn1 = await connections.connect(ws1)
    conn2 = await connections.connect(ws2)
    room = await open_match(lifecycle, conn1, conn2)
    for mover, move in [(conn1, "f3"), (conn2, "e5"), (conn1, "g4"), (conn2, "Qh4#")]:
        await coordinator.submit_move(room.room_id, mover, move)
    ws1.send_json.reset_mock()
    ws2.send_json.reset_mock()
    clock.advance(30)

    outcome = await coordinator.reset_game(room.room_id)

    assert outcome.move_count == 0
    assert outcome.current_turn is Side.FIRST
    assert outcome.fen == chess.STARTING_FEN
    assert room.game.move_count == 0
    assert room.game.current_turn is Side.FIRST
    assert room.game.history == []
    assert room.game.state is GameState.ACTIVE
    assert room.last_activity_at == clock.now
    for ws in (ws1, ws2):
        assert sent_events(ws) == ["gameReset", "gameUpdate"]
        update = sent_messages(ws)[1]["data"]
        assert update["moveCount"] == 0
        assert update["currentTurn"] == "first"
        assert update["gameOver"] is None
        assert update["lastMove"] is None


@pytest.mark.asyncio
async def test_reset_is_idempotent(lifecycle, coordinator):
    """
    Test resetting twice yields the same state.

    :return: None
    :rtype: None
    """
    room = await open_match(lifecycle)
    await coordinator.submit_move(room.room_id, "conn1", "e4")

    first = await coordinator.reset_game(room.room_id)
    second = await coordinator.reset_game(room.room_id)

    assert first.fen == second.fen == chess.STARTING_FEN
    assert room.game.move_count == 0


@pytest.mark.asyncio
async def test_reset_missing_room_is_noop(coordinator):
    """
    Test resetting an unknown room silently does nothing.

    :return: None
    :rtype: None
    """
    assert await coordinator.reset_game("UNKNOWN1") is None
