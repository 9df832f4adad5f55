"""
Per-game TOML metrics snapshots.

All metrics artifacts are TOML and stored in runs/<run_id>/metrics/.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from qchess.paths import RunPaths
from qchess.toml_io import TomlValue, save_toml


@dataclass(frozen=True, slots=True)
class GameMetrics:
    """What one self-play + learning iteration produced."""

    game: int
    result: str
    plies: int
    policy_moves: int
    random_moves: int
    transitions: int
    reward_mean: float
    target_mean: float
    last_loss: float
    elapsed_seconds: float


def write_metrics_snapshot(paths: RunPaths, metrics: GameMetrics) -> None:
    """Write the metrics of one game to metrics/game_<n>.toml."""
    data: dict[str, TomlValue] = dict(asdict(metrics))
    save_toml(paths.metrics_path(metrics.game), data)
