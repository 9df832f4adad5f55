"""
Arena matches: greedy policy against a uniform-random mover.
"""

from __future__ import annotations

from dataclasses import dataclass

from qchess.env.chess_rules import (
    apply_move,
    can_declare_draw,
    is_terminal,
    new_position,
    result_token,
    side_to_move_is_first,
)
from qchess.errors import InternalConsistencyError
from qchess.model.approximator import Approximator
from qchess.rng import RandomSource
from qchess.selfplay.policy import best_move, random_move


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Match outcome summary from the policy's point of view."""

    wins: int
    draws: int
    losses: int

    def total_games(self) -> int:
        """Return total number of games."""
        return self.wins + self.draws + self.losses

    def score(self) -> float:
        """Return score with draws worth 0.5."""
        return float(self.wins) + 0.5 * float(self.draws)

    def win_rate(self) -> float:
        """Return win rate across all games."""
        total = self.total_games()
        if total == 0:
            return 0.0
        return float(self.wins) / float(total)

    def add(self, score: float) -> MatchResult:
        """Return a new MatchResult with one more game (1, 0.5 or 0)."""
        if score == 1.0:
            return MatchResult(self.wins + 1, self.draws, self.losses)
        if score == 0.5:
            return MatchResult(self.wins, self.draws + 1, self.losses)
        return MatchResult(self.wins, self.draws, self.losses + 1)


@dataclass(frozen=True, slots=True)
class ArenaGame:
    """One finished arena game."""

    moves: tuple[str, ...]
    result: str
    policy_score: float


def _policy_score(result: str, policy_is_first: bool) -> float:
    """Translate a PGN result token into the policy's score."""
    if result == "1-0":
        return 1.0 if policy_is_first else 0.0
    if result == "0-1":
        return 0.0 if policy_is_first else 1.0
    # Draws and unfinished (capped) games count as half a point.
    return 0.5


def play_arena_game(
    *,
    approximator: Approximator,
    rng: RandomSource,
    policy_is_first: bool,
    max_plies: int,
) -> ArenaGame:
    """Play the greedy policy against a random mover until the game ends.

    The game stops on checkmate, stalemate, a claimable draw or after
    `max_plies` half-moves (0 disables the cap).
    """
    board = new_position()
    moves: list[str] = []
    claimed_draw = False
    while not is_terminal(board):
        if can_declare_draw(board):
            claimed_draw = True
            break
        if max_plies and len(moves) >= max_plies:
            break
        if side_to_move_is_first(board) == policy_is_first:
            move = best_move(approximator, board, policy_is_first)
        else:
            move = random_move(board, rng)
        if move is None:
            raise InternalConsistencyError(
                "No legal move in a position that is not terminal."
            )
        moves.append(move.uci())
        board = apply_move(board, move)
    result = result_token(board, claimed_draw)
    return ArenaGame(
        moves=tuple(moves),
        result=result,
        policy_score=_policy_score(result, policy_is_first),
    )


def run_arena(
    *,
    approximator: Approximator,
    rng: RandomSource,
    games: int,
    max_plies: int,
) -> MatchResult:
    """Play `games` arena games, alternating the policy's color."""
    result = MatchResult(wins=0, draws=0, losses=0)
    for index in range(games):
        game = play_arena_game(
            approximator=approximator,
            rng=rng,
            policy_is_first=index % 2 == 0,
            max_plies=max_plies,
        )
        result = result.add(game.policy_score)
    return result
