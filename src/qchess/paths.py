"""
Centralized path conventions for runs/ outputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

# Default base directories for configs and run artifacts.
RUNS_DIR: Final[Path] = Path("runs")
CONFIG_DIR: Final[Path] = Path("config")


@dataclass(frozen=True, slots=True)
class RunPaths:
    """All filesystem paths for a single run."""

    root: Path
    checkpoints: Path
    metrics_dir: Path
    games_dir: Path
    events_toml: Path
    config_toml: Path

    @staticmethod
    def create(run_id: str) -> RunPaths:
        """Create run directories under runs/<run_id>."""
        # Orbax needs absolute checkpoint paths.
        root = (RUNS_DIR / run_id).resolve()
        paths = RunPaths(
            root=root,
            checkpoints=root / "checkpoints",
            metrics_dir=root / "metrics",
            games_dir=root / "games",
            events_toml=root / "events.toml",
            config_toml=root / "config.toml",
        )
        for directory in (paths.metrics_dir, paths.games_dir):
            directory.mkdir(parents=True, exist_ok=True)
        return paths

    def metrics_path(self, game: int) -> Path:
        """Metrics snapshot file for a game index."""
        # Zero-padded names keep lexicographic order.
        return self.metrics_dir / f"game_{game:010d}.toml"

    def pgn_path(self, game: int) -> Path:
        """PGN file for a game index."""
        return self.games_dir / f"game_{game:010d}.pgn"
