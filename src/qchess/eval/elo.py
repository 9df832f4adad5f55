"""
Minimal Elo utilities.
"""

from __future__ import annotations

from qchess.eval.arena import MatchResult


def expected_score(rating_a: float, rating_b: float) -> float:
    """Compute expected score for player A against player B."""
    return 1.0 / (1.0 + 10.0 ** ((rating_b - rating_a) / 400.0))


def update_elo(
    rating_a: float,
    rating_b: float,
    score_a: float,
    k_factor: float = 32.0,
) -> tuple[float, float]:
    """Return updated Elo ratings for a single game.

    Args:
        rating_a: Current rating for player A.
        rating_b: Current rating for player B.
        score_a: Game score for player A (1.0 win, 0.5 draw, 0.0 loss).
        k_factor: Elo update factor.
    """
    delta = k_factor * (score_a - expected_score(rating_a, rating_b))
    return rating_a + delta, rating_b - delta


def rate_match(
    result: MatchResult,
    rating_a: float,
    rating_b: float,
    k_factor: float = 32.0,
) -> tuple[float, float]:
    """Apply one Elo update per game of a match (wins, draws, then losses)."""
    scores = (
        [1.0] * result.wins + [0.5] * result.draws + [0.0] * result.losses
    )
    for score in scores:
        rating_a, rating_b = update_elo(rating_a, rating_b, score, k_factor)
    return rating_a, rating_b
