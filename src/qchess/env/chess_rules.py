"""
python-chess wrapper: the rules-engine surface consumed by the learning core.

The wrapper exists to:
- keep positions immutable from the core's point of view
- reduce terminal detection to the three statuses the reward model knows
- centralize draw-claim and result-token helpers
"""

from __future__ import annotations

from enum import Enum

import chess

from qchess.errors import EncodingError


class TerminalStatus(Enum):
    """Rules-level status of a position."""

    ONGOING = "ongoing"
    STALEMATE = "stalemate"
    CHECKMATE = "checkmate"


def new_position() -> chess.Board:
    """Return the standard starting position."""
    return chess.Board()


def legal_moves(position: chess.Board) -> list[chess.Move]:
    """Enumerate legal moves in python-chess generation order.

    The order is stable for a given position, which makes it usable as the
    tie-break order of the greedy policy.
    """
    return list(position.legal_moves)


def apply_move(position: chess.Board, move: chess.Move) -> chess.Board:
    """Return a new position with `move` played.

    Args:
        position: Position to start from (left untouched).
        move: Legal move for the side to move.

    Returns:
        A copy of `position` with the move pushed, move stack included.
    """
    # Keep the move stack so repetition claims see the game history.
    child = position.copy(stack=True)
    child.push(move)
    return child


def terminal_status(position: chess.Board) -> TerminalStatus:
    """Classify a position as ongoing, stalemate or checkmate."""
    if position.is_checkmate():
        return TerminalStatus.CHECKMATE
    if position.is_stalemate():
        return TerminalStatus.STALEMATE
    return TerminalStatus.ONGOING


def is_terminal(position: chess.Board) -> bool:
    """Return True if the rules end the game in this position."""
    return terminal_status(position) is not TerminalStatus.ONGOING


def side_to_move_is_first(position: chess.Board) -> bool:
    """Return True if the first player (white) is to move."""
    return position.turn == chess.WHITE


def can_declare_draw(position: chess.Board) -> bool:
    """Return True if a draw may be claimed (threefold or fifty-move rule)."""
    return position.can_claim_draw()


def result_token(position: chess.Board, claimed_draw: bool = False) -> str:
    """Return the PGN result token for a finished or unfinished game.

    Args:
        position: Final position of the game.
        claimed_draw: Whether the game stopped on a draw claim.

    Returns:
        One of "1-0", "0-1", "1/2-1/2" or "*".
    """
    status = terminal_status(position)
    if status is TerminalStatus.CHECKMATE:
        # The side to move is the side that got mated.
        return "0-1" if side_to_move_is_first(position) else "1-0"
    if status is TerminalStatus.STALEMATE or claimed_draw:
        return "1/2-1/2"
    return "*"


def board_from_moves(moves: str) -> chess.Board:
    """Rebuild a position from a space-separated list of UCI moves.

    Args:
        moves: e.g. "e2e4 e7e5 g1f3"; an empty string is the start position.

    Returns:
        The position reached after replaying every move.

    Raises:
        EncodingError: If a token is malformed or illegal in context.
    """
    board = new_position()
    for token in moves.split():
        try:
            move = chess.Move.from_uci(token)
        except ValueError as exc:
            raise EncodingError(f"Invalid move token: {token!r}") from exc
        if move not in board.legal_moves:
            raise EncodingError(f"Illegal move in move list: {token!r}")
        board.push(move)
    return board
