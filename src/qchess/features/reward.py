"""
Reward model for terminal and claimable-draw positions.
"""

from __future__ import annotations

from typing import Final

import chess
import numpy as np

from qchess.env.chess_rules import (
    TerminalStatus,
    side_to_move_is_first,
    terminal_status,
)
from qchess.features.encode import NUM_SQUARES, PIECE_ORDER
from qchess.types import StateVector

WIN_REWARD: Final[float] = 100.0
LOSS_REWARD: Final[float] = -100.0
DRAW_SCALE: Final[float] = 2.0
# Material values in PIECE_ORDER (pawn, bishop, knight, rook, queen, king).
PIECE_VALUES: Final[tuple[float, ...]] = (1.0, 3.0, 3.0, 5.0, 10.0, 0.0)


def reward(position: chess.Board, mover_is_first: bool) -> float:
    """Return the mover's reward for a position.

    Checkmate is scored by who is mated; stalemate and ongoing positions
    are worth zero.

    Args:
        position: Position after the last move.
        mover_is_first: True if the mover is the first player (white).

    Returns:
        WIN_REWARD, LOSS_REWARD or 0.0.
    """
    if terminal_status(position) is not TerminalStatus.CHECKMATE:
        return 0.0
    # The side to move in a checkmate position is the loser.
    mover_is_mated = side_to_move_is_first(position) == mover_is_first
    return LOSS_REWARD if mover_is_mated else WIN_REWARD


def draw_heuristic_reward(state: StateVector) -> float:
    """Material-balance reward for a voluntarily claimed draw.

    Args:
        state: Encoded state vector (mover blocks first).

    Returns:
        DRAW_SCALE * (mover material - opponent material).
    """
    # Reshape to (side, piece, square) and count pieces per block.
    counts = state.reshape(2, len(PIECE_ORDER), NUM_SQUARES).sum(axis=-1)
    values = counts @ np.asarray(PIECE_VALUES, dtype=np.float32)
    return float(DRAW_SCALE * (values[0] - values[1]))
