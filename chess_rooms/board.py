"""Chess rules adapter used by every game session."""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

import chess

MoveInput = Union[str, Mapping[str, Any]]


@dataclass
class AppliedMove:
    """
    Details of a move accepted by the board.

    :param color: Color that made the move ('w' or 'b')
    :type color: str
    :param from_square: Origin square name
    :type from_square: str
    :param to_square: Destination square name
    :type to_square: str
    :param piece: Lowercase symbol of the moved piece
    :type piece: str
    :param san: Move in standard algebraic notation
    :type san: str
    :param uci: Move in UCI notation
    :type uci: str
    :param captured: Lowercase symbol of the captured piece, if any
    :type captured: Optional[str]
    :param promotion: Lowercase symbol of the promotion piece, if any
    :type promotion: Optional[str]
    :param check: Whether the move gives check
    :type check: bool
    """

    color: str
    from_square: str
    to_square: str
    piece: str
    san: str
    uci: str
    captured: Optional[str] = None
    promotion: Optional[str] = None
    check: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the move for clients.

        :return: Move detail keyed the way browser chess libraries expect
        :rtype: Dict[str, Any]
        """
        data: Dict[str, Any] = {
            "color": self.color,
            "from": self.from_square,
            "to": self.to_square,
            "piece": self.piece,
            "san": self.san,
            "uci": self.uci,
            "check": self.check,
        }
        if self.captured:
            data["captured"] = self.captured
        if self.promotion:
            data["promotion"] = self.promotion
        return data


class ChessBoard:
    """
    Owns one python-chess board and exposes the operations a game session needs.

    Moves are accepted as SAN ('Nf3'), UCI ('g1f3') or a mapping with
    'from', 'to' and an optional 'promotion' letter.

    :param fen: Optional starting position, defaults to the standard one
    :type fen: Optional[str]
    """

    def __init__(self, fen: Optional[str] = None) -> None:
        self.board = chess.Board(fen) if fen else chess.Board()

    def reset(self) -> None:
        """Reset the board to the starting position."""
        self.board.reset()

    def apply_move(self, move_input: MoveInput) -> Optional[AppliedMove]:
        """
        Validate and play a move.

        :param move_input: SAN/UCI string or a from/to/promotion mapping
        :type move_input: MoveInput
        :return: Details of the played move, or None if it is illegal
        :rtype: Optional[AppliedMove]
        """
        move = self._resolve(move_input)
        if move is None:
            return None

        piece = self.board.piece_at(move.from_square)
        if piece is None:
            return None
        if self.board.is_en_passant(move):
            captured: Optional[str] = "p"
        else:
            target = self.board.piece_at(move.to_square)
            captured = target.symbol().lower() if target else None

        san = self.board.san(move)
        color = "w" if self.board.turn == chess.WHITE else "b"
        self.board.push(move)

        return AppliedMove(
            color=color,
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            piece=piece.symbol().lower(),
            san=san,
            uci=move.uci(),
            captured=captured,
            promotion=chess.piece_symbol(move.promotion) if move.promotion else None,
            check=self.board.is_check(),
        )

    def _resolve(self, move_input: MoveInput) -> Optional[chess.Move]:
        if isinstance(move_input, str):
            return self._resolve_text(move_input.strip())
        if isinstance(move_input, Mapping):
            return self._resolve_squares(move_input)
        return None

    def _resolve_text(self, text: str) -> Optional[chess.Move]:
        if not text:
            return None
        try:
            return self.board.parse_san(text)
        except ValueError:
            pass
        try:
            move = chess.Move.from_uci(text)
        except ValueError:
            return None
        return move if move in self.board.legal_moves else None

    def _resolve_squares(self, move_input: Mapping[str, Any]) -> Optional[chess.Move]:
        try:
            from_square = chess.parse_square(str(move_input.get("from")))
            to_square = chess.parse_square(str(move_input.get("to")))
        except ValueError:
            return None

        promotion = None
        promotion_symbol = move_input.get("promotion")
        if promotion_symbol:
            try:
                promotion = chess.Piece.from_symbol(str(promotion_symbol)).piece_type
            except ValueError:
                return None

        move = chess.Move(from_square, to_square, promotion=promotion)
        return move if move in self.board.legal_moves else None

    def fen(self) -> str:
        """
        Get the current board position in FEN notation.

        :return: FEN string representing the current position
        :rtype: str
        """
        return self.board.fen()

    @property
    def current_turn(self) -> str:
        """
        Color to move.

        :return: 'white' or 'black'
        :rtype: str
        """
        return "white" if self.board.turn == chess.WHITE else "black"

    def is_checkmate(self) -> bool:
        return self.board.is_checkmate()

    def draw_reason(self) -> Optional[str]:
        """
        Get the drawing rule that applies to the current position.

        Threefold repetition and the fifty-move rule end the game as soon as
        they can be claimed.

        :return: Human readable rule name, or None if the position is not drawn
        :rtype: Optional[str]
        """
        if self.board.is_stalemate():
            return "stalemate"
        if self.board.is_insufficient_material():
            return "insufficient material"
        if self.board.is_fivefold_repetition() or self.board.can_claim_threefold_repetition():
            return "repetition"
        if self.board.is_seventyfive_moves() or self.board.can_claim_fifty_moves():
            return "fifty-move rule"
        return None

    def is_draw(self) -> bool:
        return self.draw_reason() is not None

    def is_game_over(self) -> bool:
        """
        Check if the game is over, counting claimable draws.

        :return: True if the game is over
        :rtype: bool
        """
        return self.is_checkmate() or self.is_draw()
