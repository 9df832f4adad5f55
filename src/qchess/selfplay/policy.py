"""
Greedy and uniform-random move selection.

Hard requirements:
- Ties go to the later-enumerated move (>= comparison), so the rules
  engine's enumeration order is the reproducible tie-break.
- Approximator parameters are only read here.
"""

from __future__ import annotations

from collections.abc import Sequence

import chess

from qchess.env.chess_rules import legal_moves
from qchess.features.encode import (
    encode_action,
    encode_state,
    encode_state_action,
)
from qchess.model.approximator import Approximator
from qchess.rng import RandomSource
from qchess.types import StateVector


def score_actions(
    approximator: Approximator,
    state: StateVector,
    moves: Sequence[chess.Move],
    mover_is_first: bool,
) -> list[float]:
    """Score every (state ‖ action(move)) pair with the approximator.

    Args:
        approximator: Evaluator used for forward passes.
        state: Encoded state the moves are played from.
        moves: Candidate moves.
        mover_is_first: Viewpoint used to encode the actions.

    Returns:
        One score per move, in the order given.
    """
    return [
        approximator.forward(
            encode_state_action(
                state, encode_action(move.uci(), mover_is_first)
            )
        )
        for move in moves
    ]


def _argmax_later_wins(scores: Sequence[float]) -> int:
    """Index of the maximum score, preferring the last of equal scores."""
    best_idx = 0
    high_score = float("-inf")
    for idx, score in enumerate(scores):
        if score >= high_score:
            high_score = score
            best_idx = idx
    return best_idx


def best_move(
    approximator: Approximator,
    position: chess.Board,
    mover_is_first: bool,
) -> chess.Move | None:
    """Return the highest-scoring legal move, or None if there is none."""
    moves = legal_moves(position)
    if not moves:
        return None
    state = encode_state(position, mover_is_first)
    scores = score_actions(approximator, state, moves, mover_is_first)
    return moves[_argmax_later_wins(scores)]


def q_max(
    approximator: Approximator,
    position: chess.Board,
    state: StateVector,
    mover_is_first: bool,
) -> float:
    """Maximum score over the legal moves of `position`.

    Args:
        approximator: Evaluator used for forward passes.
        position: Position whose legal moves are scored.
        state: Encoded form of `position` used as the state half.
        mover_is_first: Viewpoint used to encode the actions.

    Returns:
        The maximum score, or 0.0 if `position` has no legal moves.
    """
    moves = legal_moves(position)
    # No more moves means an end state: no continuation value.
    if not moves:
        return 0.0
    return max(score_actions(approximator, state, moves, mover_is_first))


def random_move(
    position: chess.Board, rng: RandomSource
) -> chess.Move | None:
    """Return a uniformly random legal move, or None if there is none."""
    moves = legal_moves(position)
    if not moves:
        return None
    return moves[rng.randint(len(moves))]
