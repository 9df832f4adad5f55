"""
Online play against a remote opponent through an abstract game client.

The transport (HTTP streaming, authentication, retries) lives behind
`GameClient`; this module only turns server turn events into transitions
and policy moves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from qchess.env.chess_rules import board_from_moves
from qchess.errors import InternalConsistencyError
from qchess.features.encode import encode_action, encode_state
from qchess.features.reward import reward
from qchess.model.approximator import Approximator
from qchess.rng import RandomSource
from qchess.selfplay.policy import best_move
from qchess.selfplay.transition import (
    PendingTransition,
    Transition,
    TransitionRecorder,
)


@dataclass(frozen=True, slots=True)
class TurnEvent:
    """Game state as reported by the server.

    Attributes:
        moves: Space-separated UCI moves played so far.
        is_my_turn: Whether the bot is to move.
        is_white: Whether the bot plays the first player.
        game_over: Whether the server considers the game finished.
    """

    moves: str
    is_my_turn: bool
    is_white: bool
    game_over: bool


class GameClient(Protocol):
    """Server-side collaborator for a single online game."""

    def poll_turn(self) -> TurnEvent:
        """Return the latest game state (may block until it changes)."""
        ...

    def submit_move(self, uci: str) -> None:
        """Send a move to the server."""
        ...


@dataclass(frozen=True, slots=True)
class LiveConfig:
    """Online play settings."""

    retain_rate: float = 0.2


def _wait_for_turn(client: GameClient) -> TurnEvent:
    """Poll until it is our turn or the game is over."""
    while True:
        event = client.poll_turn()
        if event.game_over or event.is_my_turn:
            return event


def play_online_game(
    *,
    client: GameClient,
    approximator: Approximator,
    rng: RandomSource,
    cfg: LiveConfig,
) -> tuple[Transition, ...]:
    """Play one online game with the greedy policy and record transitions.

    Each of our moves opens a pending transition that is completed when the
    server hands the turn back. Completed transitions are kept with
    probability `retain_rate`; the final one is always kept.

    Args:
        client: Server collaborator.
        approximator: Evaluator used to pick moves (read-only here).
        rng: Source of subsampling draws.
        cfg: LiveConfig.

    Returns:
        Recorded transitions in play order.

    Raises:
        InternalConsistencyError: If the server reports our turn in a
            position without legal moves.
    """
    recorder = TransitionRecorder()
    pending: PendingTransition | None = None
    is_white: bool | None = None

    while True:
        event = _wait_for_turn(client)
        # The side is fixed by the first event we see.
        if is_white is None:
            is_white = event.is_white

        board = board_from_moves(event.moves)
        state = encode_state(board, is_white)

        if pending is not None:
            transition = pending.complete(
                reward(board, is_white), state, board
            )
            if event.game_over or rng.uniform() < cfg.retain_rate:
                recorder.append(transition)
            pending = None

        if event.game_over:
            break

        selected = best_move(approximator, board, is_white)
        if selected is None:
            raise InternalConsistencyError(
                "Server reported our turn in a position with no legal move."
            )
        uci = selected.uci()
        pending = PendingTransition(
            state=state, action=encode_action(uci, is_white)
        )
        client.submit_move(uci)

    return recorder.transitions()
