"""
Optax optimizer creation for online (one sample per step) fitting.
"""

from __future__ import annotations

from dataclasses import dataclass

import optax


@dataclass(frozen=True, slots=True)
class OptimConfig:
    """Optimizer hyperparameters."""

    learning_rate: float
    momentum: float
    grad_clip_norm: float


def make_optimizer(cfg: OptimConfig) -> optax.GradientTransformation:
    """Create the SGD-with-momentum optimizer used by every fit call."""
    return optax.chain(
        optax.clip_by_global_norm(cfg.grad_clip_norm),
        optax.sgd(cfg.learning_rate, momentum=cfg.momentum),
    )
