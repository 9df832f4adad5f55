"""
Player-relative feature encoding for positions and moves.

State layout (768 cells):
- 6 blocks of 64 cells for the mover's pieces
- 6 blocks of 64 cells for the opponent's pieces
Block order: pawn, bishop, knight, rook, queen, king.

Action layout (132 cells):
- 64-cell one-hot origin square
- 64-cell one-hot destination square
- 4-cell one-hot promotion class (bishop, knight, rook, queen)

Cell i of a 64-cell block is square i (a1=0 ... h8=63) when the mover is the
first player. For the second player every block is mirrored (i <-> 63 - i) so
the mover's pieces always start from the same side of the board.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

import chess
import numpy as np

from qchess.errors import EncodingError
from qchess.types import ActionVector, StateVector, Vector

NUM_SQUARES: Final[int] = 64
PIECE_ORDER: Final[tuple[chess.PieceType, ...]] = (
    chess.PAWN,
    chess.BISHOP,
    chess.KNIGHT,
    chess.ROOK,
    chess.QUEEN,
    chess.KING,
)
PROMOTION_ORDER: Final[tuple[chess.PieceType, ...]] = (
    chess.BISHOP,
    chess.KNIGHT,
    chess.ROOK,
    chess.QUEEN,
)
# Recognized promotion tokens; anything else in 5th position means queen.
_PROMOTION_TOKENS: Final[dict[str, chess.PieceType]] = {
    "b": chess.BISHOP,
    "n": chess.KNIGHT,
    "r": chess.ROOK,
}

STATE_SIZE: Final[int] = 2 * len(PIECE_ORDER) * NUM_SQUARES
ACTION_SIZE: Final[int] = 2 * NUM_SQUARES + len(PROMOTION_ORDER)
INPUT_SIZE: Final[int] = STATE_SIZE + ACTION_SIZE


@dataclass(frozen=True, slots=True)
class ParsedMove:
    """A move token split into squares and promotion class.

    Attributes:
        from_square: Origin square index (a1=0 ... h8=63).
        to_square: Destination square index.
        promotion: Promotion piece type, or None.
    """

    from_square: chess.Square
    to_square: chess.Square
    promotion: chess.PieceType | None


def mirror_square(square: int) -> int:
    """Map square i to 63 - i."""
    return NUM_SQUARES - 1 - square


def _frozen(values: np.ndarray) -> np.ndarray:
    """Mark an array read-only and return it."""
    values.setflags(write=False)
    return values


def _bitboard_cells(mask: int, mirror: bool) -> np.ndarray:
    """Expand a 64-bit occupancy mask into 64 binary cells."""
    # Little-endian bytes + little bit order puts square i at cell i.
    raw = np.array([mask], dtype="<u8").view(np.uint8)
    cells = np.unpackbits(raw, bitorder="little").astype(np.float32)
    if mirror:
        return cells[::-1]
    return cells


def parse_square(token: str) -> chess.Square:
    """Parse a two-character square token such as "e4".

    Raises:
        EncodingError: If the token is not a file a-h followed by rank 1-8.
    """
    try:
        return chess.parse_square(token)
    except ValueError as exc:
        raise EncodingError(f"Invalid square token: {token!r}") from exc


def parse_move(uci: str) -> ParsedMove:
    """Parse a 4- or 5-character move token.

    Args:
        uci: Origin square, destination square and optional promotion class.

    Returns:
        ParsedMove with square indices and promotion piece type.

    Raises:
        EncodingError: If the token length or either square is invalid.
    """
    if len(uci) not in (4, 5):
        raise EncodingError(f"Invalid move token: {uci!r}")
    from_square = parse_square(uci[0:2])
    to_square = parse_square(uci[2:4])
    promotion = None
    if len(uci) == 5:
        promotion = _PROMOTION_TOKENS.get(uci[4], chess.QUEEN)
    return ParsedMove(
        from_square=from_square, to_square=to_square, promotion=promotion
    )


def encode_state(position: chess.Board, mover_is_first: bool) -> StateVector:
    """Encode a position from the mover's viewpoint.

    Args:
        position: Position to encode (not mutated).
        mover_is_first: True if the mover is the first player (white).

    Returns:
        Read-only float32 vector of length STATE_SIZE.
    """
    mover = chess.WHITE if mover_is_first else chess.BLACK
    mirror = not mover_is_first
    blocks = [
        _bitboard_cells(position.pieces_mask(piece, color), mirror)
        for color in (mover, not mover)
        for piece in PIECE_ORDER
    ]
    return _frozen(np.concatenate(blocks))


def _square_cells(square: chess.Square, mirror: bool) -> np.ndarray:
    """One-hot 64-cell block for a single square."""
    cells = np.zeros((NUM_SQUARES,), dtype=np.float32)
    cells[mirror_square(square) if mirror else square] = 1.0
    return cells


def encode_action(uci: str, mover_is_first: bool) -> ActionVector:
    """Encode a move token from the mover's viewpoint.

    Args:
        uci: 4- or 5-character move token, e.g. "e2e4" or "e7e8q".
        mover_is_first: True if the mover is the first player (white).

    Returns:
        Read-only float32 vector of length ACTION_SIZE.

    Raises:
        EncodingError: If the token cannot be parsed.
    """
    parsed = parse_move(uci)
    mirror = not mover_is_first
    promotion = np.zeros((len(PROMOTION_ORDER),), dtype=np.float32)
    if parsed.promotion is not None:
        promotion[PROMOTION_ORDER.index(parsed.promotion)] = 1.0
    return _frozen(
        np.concatenate(
            [
                _square_cells(parsed.from_square, mirror),
                _square_cells(parsed.to_square, mirror),
                promotion,
            ]
        )
    )


def encode_state_action(state: StateVector, action: ActionVector) -> Vector:
    """Concatenate a state and an action into one approximator input."""
    return _frozen(np.concatenate([state, action]))
