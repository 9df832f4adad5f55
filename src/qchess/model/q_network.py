"""
State-action value network.

Input:
- state ‖ action vectors: (B, INPUT_SIZE)

Outputs:
- q_value: (B,) unbounded scalar score per state-action pair
"""

from __future__ import annotations

from dataclasses import dataclass

import jax.numpy as jnp
from flax import nnx

from qchess.types import Array


@dataclass(frozen=True, slots=True)
class QNetworkConfig:
    """Network dimensions."""

    input_size: int
    hidden_size: int


class QNetwork(nnx.Module):
    """Single hidden-layer perceptron with a linear scalar head."""

    def __init__(self, cfg: QNetworkConfig, *, rngs: nnx.Rngs) -> None:
        """Initialize hidden and output projections.

        Args:
            cfg: QNetworkConfig with dimensions.
            rngs: NNX RNGs used for parameter init.
        """
        self.cfg = cfg
        self.hidden = nnx.Linear(cfg.input_size, cfg.hidden_size, rngs=rngs)
        # Linear head: rewards reach +-100, so no squashing on the output.
        self.head = nnx.Linear(cfg.hidden_size, 1, rngs=rngs)

    def __call__(self, x: Array) -> Array:
        """Forward pass.

        Args:
            x: (B, input_size)

        Returns:
            (B,) Q-values.
        """
        h = jnp.tanh(self.hidden(x))
        return self.head(h).squeeze(-1)
