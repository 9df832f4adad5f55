"""
Deterministic RNG utilities.

All randomness MUST flow through these helpers and explicit PRNGKey passing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import jax

from qchess.types import GameId, PRNGKey


class RandomSource(Protocol):
    """Random draws consumed by the self-play and live-play drivers."""

    def uniform(self) -> float:
        """Return a float in [0, 1)."""
        ...

    def randint(self, n: int) -> int:
        """Return an integer in [0, n)."""
        ...


@dataclass(frozen=True, slots=True)
class RngStream:
    """A deterministic RNG stream derived from a base key.

    This class is intentionally small and purely functional: calling methods
    returns new keys without mutating state.
    """

    base_key: PRNGKey

    def key_for_game(self, game: GameId) -> PRNGKey:
        """Derive a deterministic key for a given game index.

        Args:
            game: Global game counter.

        Returns:
            A PRNGKey derived via fold_in.
        """
        # Fold in the game index to keep deterministic per-game keys.
        return jax.random.fold_in(self.base_key, int(game))

    def game_random(self, game: GameId) -> GameRandom:
        """Return a fresh draw sequence for a given game index."""
        return GameRandom(key=self.key_for_game(game))


@dataclass(slots=True)
class GameRandom:
    """Sequential draws from a single per-game key.

    Every draw folds an increasing counter into the key, so the sequence is
    fully determined by the key.
    """

    key: PRNGKey
    draws: int = field(default=0)

    def _next_key(self) -> PRNGKey:
        """Return the key for the next draw and advance the counter."""
        key = jax.random.fold_in(self.key, self.draws)
        self.draws += 1
        return key

    def uniform(self) -> float:
        """Return a float in [0, 1)."""
        return float(jax.random.uniform(self._next_key()))

    def randint(self, n: int) -> int:
        """Return an integer in [0, n).

        Raises:
            ValueError: If n is not positive.
        """
        if n <= 0:
            raise ValueError("randint requires a positive bound.")
        return int(jax.random.randint(self._next_key(), (), 0, n))
