"""
Self-play rollout driven by the greedy policy.

Hard requirements:
- Side A (first player) explores: one draw r per turn, policy move if
  r > explore_threshold, uniform-random move otherwise.
- Side B (second player) always plays the greedy policy from its own view.
- A completed A->B turn pair is kept only if the same draw r is below
  retain_rate; transitions ending the game on A's move are always kept.
- Deterministic given the random source.
"""

from __future__ import annotations

from dataclasses import dataclass

import chess

from qchess.env.chess_rules import (
    apply_move,
    can_declare_draw,
    is_terminal,
    new_position,
    result_token,
    side_to_move_is_first,
)
from qchess.errors import InternalConsistencyError
from qchess.features.encode import encode_action, encode_state
from qchess.features.reward import draw_heuristic_reward, reward
from qchess.model.approximator import Approximator
from qchess.rng import RandomSource
from qchess.selfplay.policy import best_move, random_move
from qchess.selfplay.transition import (
    PendingTransition,
    Transition,
    TransitionRecorder,
)

# Self-play always records from the first player's viewpoint.
MOVER_IS_FIRST = True


@dataclass(frozen=True, slots=True)
class SelfPlayConfig:
    """Self-play settings.

    Attributes:
        explore_threshold: A plays by policy when its draw exceeds this.
        retain_rate: A turn pair is recorded when the draw is below this.
        max_plies: Hard cap on half-moves per game (0 disables the cap),
            checked before each move of either side.
    """

    explore_threshold: float = 0.5
    retain_rate: float = 0.2
    max_plies: int = 0

    def moves_by_policy(self, draw: float) -> bool:
        """Exploration gate for side A."""
        return draw > self.explore_threshold

    def retains(self, draw: float) -> bool:
        """Subsampling gate for completed turn pairs."""
        return draw < self.retain_rate


@dataclass(frozen=True, slots=True)
class SelfPlayGame:
    """Everything one self-play game produced.

    Attributes:
        transitions: Recorded transitions in play order.
        moves: UCI moves of both sides, for PGN export.
        result: PGN result token ("1-0", "0-1", "1/2-1/2" or "*").
        policy_moves: A-moves chosen by the greedy policy.
        random_moves: A-moves chosen uniformly at random.
    """

    transitions: tuple[Transition, ...]
    moves: tuple[str, ...]
    result: str
    policy_moves: int
    random_moves: int

    @property
    def plies(self) -> int:
        """Number of half-moves played."""
        return len(self.moves)


def _require_move(move: chess.Move | None, side: str) -> chess.Move:
    """Fail loudly when a side expected to move has no move."""
    if move is None:
        raise InternalConsistencyError(
            f"Side {side} has no legal move in a non-terminal position."
        )
    return move


def play_self_game(
    *,
    approximator: Approximator,
    rng: RandomSource,
    cfg: SelfPlayConfig,
    start: chess.Board | None = None,
) -> SelfPlayGame:
    """Play one full game against itself and return the recorded data.

    Args:
        approximator: Evaluator used by both sides (read-only here).
        rng: Source of exploration and random-move draws.
        cfg: Gate thresholds and ply cap.
        start: Optional starting position (defaults to the initial one).

    Returns:
        SelfPlayGame with the recorder contents and game summary.

    Raises:
        InternalConsistencyError: If a side to move has no legal move.
        ValueError: If `start` has the second player to move.
    """
    board = new_position() if start is None else start
    if not side_to_move_is_first(board):
        raise ValueError("Self-play must start with side A to move.")
    recorder = TransitionRecorder()
    moves: list[str] = []
    policy_moves = 0
    random_moves = 0
    claimed_draw = False

    while not is_terminal(board):
        if cfg.max_plies and len(moves) >= cfg.max_plies:
            break

        # Side A: exploration gate on a single draw.
        draw = rng.uniform()
        if cfg.moves_by_policy(draw):
            selected = best_move(approximator, board, MOVER_IS_FIRST)
            policy_moves += 1
        else:
            selected = random_move(board, rng)
            random_moves += 1
        selected = _require_move(selected, "A")

        pending = PendingTransition(
            state=encode_state(board, MOVER_IS_FIRST),
            action=encode_action(selected.uci(), MOVER_IS_FIRST),
        )
        moves.append(selected.uci())
        board = apply_move(board, selected)
        next_state = encode_state(board, MOVER_IS_FIRST)

        # Game ends on A's move: always record.
        if is_terminal(board):
            recorder.append(
                pending.complete(
                    reward(board, MOVER_IS_FIRST), next_state, board
                )
            )
            break
        if can_declare_draw(board):
            recorder.append(
                pending.complete(
                    draw_heuristic_reward(next_state), next_state, board
                )
            )
            claimed_draw = True
            break
        # Cap reached on A's move: the open turn pair is not recorded.
        if cfg.max_plies and len(moves) >= cfg.max_plies:
            break

        # Side B: greedy reply from its own viewpoint.
        reply = _require_move(
            best_move(approximator, board, not MOVER_IS_FIRST), "B"
        )
        moves.append(reply.uci())
        board = apply_move(board, reply)

        transition = pending.complete(
            reward(board, MOVER_IS_FIRST),
            encode_state(board, MOVER_IS_FIRST),
            board,
        )
        # Subsample with the same draw that drove exploration.
        if cfg.retains(draw):
            recorder.append(transition)

    return SelfPlayGame(
        transitions=recorder.transitions(),
        moves=tuple(moves),
        result=result_token(board, claimed_draw),
        policy_moves=policy_moves,
        random_moves=random_moves,
    )
