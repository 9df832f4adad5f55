"""
Transition records and the in-game recorder.

A transition is created once both the acting move and the opponent's reply
are known, and is never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import chess

from qchess.types import ActionVector, StateVector


@dataclass(frozen=True, slots=True)
class Transition:
    """One (state, action, reward, next_state, next_position) record.

    Shapes:
        state: (768,)       -- mover-relative encoding before the move
        action: (132,)      -- mover-relative encoding of the move
        next_state: (768,)  -- mover-relative encoding after the reply
    """

    state: StateVector
    action: ActionVector
    reward: float
    next_state: StateVector
    next_position: chess.Board


class TransitionRecorder:
    """Ordered, append-only sequence of transitions for one game."""

    def __init__(self) -> None:
        """Initialize an empty recorder."""
        self._transitions: list[Transition] = []

    def append(self, transition: Transition) -> None:
        """Record a completed transition."""
        self._transitions.append(transition)

    def __len__(self) -> int:
        return len(self._transitions)

    def __iter__(self) -> Iterator[Transition]:
        return iter(self._transitions)

    def transitions(self) -> tuple[Transition, ...]:
        """Return the recorded transitions in insertion order."""
        return tuple(self._transitions)


@dataclass(slots=True)
class PendingTransition:
    """The acting half of a transition, waiting for the reply."""

    state: StateVector
    action: ActionVector

    def complete(
        self,
        reward: float,
        next_state: StateVector,
        next_position: chess.Board,
    ) -> Transition:
        """Freeze the pending half into a Transition."""
        return Transition(
            state=self.state,
            action=self.action,
            reward=reward,
            next_state=next_state,
            next_position=next_position,
        )
