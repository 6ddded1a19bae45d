"""Turn coordination: move validation, game progress and game-over detection."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from chess_rooms.board import AppliedMove, ChessBoard, MoveInput
from chess_rooms.broadcast import BroadcastRouter
from chess_rooms.errors import IllegalMove, InternalError, NotAParticipant, OutOfTurn, RoomNotFound, SessionNotFound
from chess_rooms.models import GameState, MoveRecord, Room, Side, utcnow
from chess_rooms.protocol import GameOverInfo, GameUpdate
from chess_rooms.registry import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass
class MoveOutcome:
    """
    Authoritative game state after a move or a reset.

    :param fen: Board position in FEN notation
    :type fen: str
    :param current_turn: Side to move
    :type current_turn: Side
    :param move_count: Number of accepted moves
    :type move_count: int
    :param game_over: Terminal state, None while the game goes on
    :type game_over: Optional[GameOverInfo]
    :param last_move: The accepted move, None after a reset
    :type last_move: Optional[AppliedMove]
    """

    fen: str
    current_turn: Side
    move_count: int
    game_over: Optional[GameOverInfo] = None
    last_move: Optional[AppliedMove] = None

    def to_update(self) -> GameUpdate:
        return GameUpdate(
            fen=self.fen,
            currentTurn=self.current_turn.value,
            moveCount=self.move_count,
            gameOver=self.game_over,
            lastMove=self.last_move.to_dict() if self.last_move else None,
        )


def detect_game_over(board: ChessBoard, mover: Side) -> Optional[GameOverInfo]:
    """
    Inspect the board for a terminal state after ``mover`` played.

    :param board: Board after the move
    :type board: ChessBoard
    :param mover: Side that just moved
    :type mover: Side
    :return: Game-over information, or None if the game continues
    :rtype: Optional[GameOverInfo]
    """
    if board.is_checkmate():
        return GameOverInfo(
            type="checkmate",
            winner=mover.value,
            message=f"Checkmate! {mover.color.capitalize()} wins!",
        )
    reason = board.draw_reason()
    if reason:
        return GameOverInfo(type="draw", message=f"Game ended in a draw by {reason}")
    return None


class TurnCoordinator:
    """
    The only component that touches a room's board.

    :param registry: Session registry owning the rooms
    :type registry: SessionRegistry
    :param router: Broadcast router for fan-out, None to skip it
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

    async def submit_move(
        self, room_id: str, connection_id: str, move_input: MoveInput, raw_move: Any = None
    ) -> MoveOutcome:
        """
        Validate and apply a move, then fan the result out to the room.

        Checks run in order: session exists, requester is seated, it is the
        requester's turn, the board accepts the move. A rejected move leaves
        the session untouched.

        :param room_id: Target room
        :type room_id: str
        :param connection_id: Submitting connection
        :type connection_id: str
        :param move_input: Validated move handed to the board
        :type move_input: MoveInput
        :param raw_move: Move exactly as the client sent it, echoed to the opponent; defaults to move_input
        :type raw_move: Any
        :return: Post-move game state
        :rtype: MoveOutcome
        :raises SessionNotFound: If the room does not exist
        :raises NotAParticipant: If the requester is not seated in the room
        :raises OutOfTurn: If it is not the requester's turn
        :raises IllegalMove: If the board rejects the move
        """
        try:
            async with self.registry.locked(room_id) as room:
                outcome = self._apply(room, connection_id, move_input)
                if self.router is not None:
                    echo = move_input if raw_move is None else raw_move
                    await self.router.move_accepted(room, connection_id, echo, outcome.to_update())
                return outcome
        except RoomNotFound as exc:
            raise SessionNotFound() from exc

    def _apply(self, room: Room, connection_id: str, move_input: MoveInput) -> MoveOutcome:
        game = room.game
        participant = room.find_participant(connection_id)
        if participant is None:
            raise NotAParticipant()

        turn = Side.from_color(game.board.current_turn)
        if participant.side is not turn:
            logger.debug(f"[Room:{room.room_id}] {participant.display_name} moved out of turn")
            raise OutOfTurn()

        try:
            applied = game.board.apply_move(move_input)
        except Exception as exc:
            logger.exception(f"[Room:{room.room_id}] Board failed on move {move_input!r}")
            raise InternalError("Failed to process move") from exc
        if applied is None:
            logger.debug(f"[Room:{room.room_id}] Illegal move {move_input!r} from {participant.display_name}")
            raise IllegalMove()

        now = self.clock()
        game.move_count += 1
        game.current_turn = Side.from_color(game.board.current_turn)
        game.history.append(
            MoveRecord(move=applied.to_dict(), fen=game.board.fen(), timestamp=now, player=participant.display_name)
        )
        room.touch(now)
        logger.info(f"[Room:{room.room_id}] Move {game.move_count}: {applied.san} by {participant.display_name}")

        game_over = detect_game_over(game.board, game.current_turn.opposite)
        if game_over is not None:
            game.state = GameState.FINISHED
            logger.info(f"[Room:{room.room_id}] Game over: {game_over.message}")

        return MoveOutcome(
            fen=game.board.fen(),
            current_turn=game.current_turn,
            move_count=game.move_count,
            game_over=game_over,
            last_move=applied,
        )

    async def reset_game(self, room_id: str) -> Optional[MoveOutcome]:
        """
        Restart the game of a room from the initial position.

        A missing room is not an error: the requester cannot tell a room that
        is already gone from a race, so the call is a no-op.

        :param room_id: Target room
        :type room_id: str
        :return: Fresh game state, or None if the room does not exist
        :rtype: Optional[MoveOutcome]
        """
        try:
            async with self.registry.locked(room_id) as room:
                room.game.restart()
                room.touch(self.clock())
                outcome = MoveOutcome(
                    fen=room.game.board.fen(),
                    current_turn=room.game.current_turn,
                    move_count=0,
                )
                logger.info(f"[Room:{room_id}] Game reset")
                if self.router is not None:
                    await self.router.game_reset(room, outcome.to_update())
                return outcome
        except RoomNotFound:
            logger.debug(f"[Room:{room_id}] Reset ignored, room not found")
            return None
