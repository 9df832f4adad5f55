"""
Online Q-learning from recorded transitions.

Design:
- One Bellman target per transition, one-step lookahead only
- One `fit` call per transition, in recorder order, single pass
- The target approximator is only read; it may be the primary itself or a
  snapshot reloaded from the last checkpoint
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from qchess.features.encode import encode_state_action
from qchess.model.approximator import Approximator
from qchess.selfplay.policy import q_max
from qchess.selfplay.transition import Transition


@dataclass(frozen=True, slots=True)
class LearnSummary:
    """Aggregate statistics of one learning pass (metrics only)."""

    fits: int
    reward_mean: float
    target_mean: float


def _check_gamma(gamma: float) -> None:
    """Validate the discount factor."""
    if not 0.0 < gamma <= 1.0:
        raise ValueError(f"gamma must be in (0, 1], got {gamma}.")


def bellman_target(
    transition: Transition,
    target_approximator: Approximator,
    gamma: float,
    mover_is_first: bool,
) -> float:
    """Compute reward + gamma * max_a' Q_target(next_state, a').

    Args:
        transition: Recorded transition.
        target_approximator: Network used for the continuation value.
        gamma: Discount factor in (0, 1].
        mover_is_first: Viewpoint used to encode candidate actions.

    Returns:
        The scalar training label. At a terminal next position the
        continuation value is zero and the label is the reward.
    """
    _check_gamma(gamma)
    continuation = q_max(
        target_approximator,
        transition.next_position,
        transition.next_state,
        mover_is_first,
    )
    return transition.reward + gamma * continuation


def learn(
    primary_approximator: Approximator,
    target_approximator: Approximator,
    transitions: Iterable[Transition],
    gamma: float,
    mover_is_first: bool,
) -> LearnSummary:
    """Fit the primary approximator on every transition once, in order.

    Approximator errors propagate unmodified.

    Returns:
        LearnSummary with the number of fits and mean reward/target.
    """
    _check_gamma(gamma)
    fits = 0
    reward_sum = 0.0
    target_sum = 0.0
    for transition in transitions:
        label = bellman_target(
            transition, target_approximator, gamma, mover_is_first
        )
        primary_approximator.fit(
            encode_state_action(transition.state, transition.action), label
        )
        fits += 1
        reward_sum += transition.reward
        target_sum += label
    if fits == 0:
        return LearnSummary(fits=0, reward_mean=0.0, target_mean=0.0)
    return LearnSummary(
        fits=fits,
        reward_mean=reward_sum / fits,
        target_mean=target_sum / fits,
    )
