"""
Evaluation utilities.
"""

from qchess.eval.arena import MatchResult, play_arena_game, run_arena
from qchess.eval.elo import expected_score, rate_match, update_elo

__all__ = [
    "MatchResult",
    "expected_score",
    "play_arena_game",
    "rate_match",
    "run_arena",
    "update_elo",
]
