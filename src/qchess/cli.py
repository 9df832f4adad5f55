"""
Command-line entrypoints.

Commands:
- train: run the self-play + online learning loop
- eval: play the greedy policy against a random mover (arena matches)
"""

from __future__ import annotations

import argparse
import platform
import time
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import Path

import jax

from qchess.eval.arena import run_arena
from qchess.eval.elo import expected_score, rate_match
from qchess.features.encode import INPUT_SIZE
from qchess.model.approximator import make_approximator
from qchess.model.q_network import QNetworkConfig
from qchess.paths import RunPaths
from qchess.pgn.writer import PgnHeaders, format_pgn, write_pgn_file
from qchess.rng import RngStream
from qchess.selfplay.rollout import (
    MOVER_IS_FIRST,
    SelfPlayConfig,
    SelfPlayGame,
    play_self_game,
)
from qchess.toml_io import TomlValue, load_toml, save_toml
from qchess.train.checkpointing import (
    CheckpointConfig,
    make_checkpoint_manager,
    restore_latest,
    save_checkpoint,
)
from qchess.train.learner import learn
from qchess.train.logging import GameMetrics, write_metrics_snapshot
from qchess.train.optimizer import OptimConfig
from qchess.types import GameId, Step

# Arena games use a separate slice of the game-key space.
_EVAL_GAME_OFFSET = 1_000_000_000


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="qchess")
    subparsers = parser.add_subparsers(dest="command", required=True)

    train_parser = subparsers.add_parser("train", help="Run training loop")
    train_parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to TOML config",
    )
    train_parser.add_argument(
        "--run-id",
        default=None,
        help="Reuse runs/<run_id>/ and resume from its latest checkpoint",
    )

    eval_parser = subparsers.add_parser("eval", help="Run evaluation")
    eval_parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to TOML config",
    )

    return parser


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Run-level configuration.

    Attributes:
        name: Run name used in artifact paths.
        seed: Base RNG seed (network init and game draws).
        games: Number of self-play games to train on.
        pgn_every_games: PGN export cadence in games.
        max_runtime_minutes: Hard wall-clock limit in minutes.
    """

    name: str
    seed: int
    games: int
    pgn_every_games: int
    max_runtime_minutes: int


@dataclass(frozen=True, slots=True)
class LearnConfig:
    """Learner-level configuration."""

    gamma: float
    sync_every_games: int
    max_to_keep: int


@dataclass(frozen=True, slots=True)
class EvalConfig:
    """Arena evaluation configuration."""

    games: int
    max_plies: int
    checkpoints_dir: Path | None


def _get_int(table: dict[str, TomlValue], key: str) -> int:
    """Fetch a required integer from a TOML table.

    Raises:
        ValueError: If the key is missing or not an int.
    """
    value = table.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Missing int key: {key}")
    return value


def _get_float(table: dict[str, TomlValue], key: str) -> float:
    """Fetch a required float from a TOML table (ints are coerced).

    Raises:
        ValueError: If the key is missing or not a number.
    """
    value = table.get(key)
    if isinstance(value, bool):
        raise ValueError(f"Missing float key: {key}")
    if isinstance(value, int):
        return float(value)
    if not isinstance(value, float):
        raise ValueError(f"Missing float key: {key}")
    return value


def _get_str(table: dict[str, TomlValue], key: str) -> str:
    """Fetch a required string from a TOML table.

    Raises:
        ValueError: If the key is missing or not a string.
    """
    value = table.get(key)
    if not isinstance(value, str):
        raise ValueError(f"Missing string key: {key}")
    return value


def _get_table(data: dict[str, TomlValue], key: str) -> dict[str, TomlValue]:
    """Fetch a required TOML table.

    Raises:
        ValueError: If the key is missing or not a table.
    """
    value = data.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"Missing TOML table: {key}")
    return value


def _get_table_optional(
    data: dict[str, TomlValue], key: str
) -> dict[str, TomlValue] | None:
    """Fetch an optional TOML table.

    Raises:
        ValueError: If the key exists but is not a table.
    """
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError(f"Missing TOML table: {key}")
    return value


def _parse_run_config(config: dict[str, TomlValue]) -> RunConfig:
    """Parse the [run] table."""
    run_table = _get_table(config, "run")
    return RunConfig(
        name=_get_str(run_table, "name"),
        seed=_get_int(run_table, "seed"),
        games=_get_int(run_table, "games"),
        pgn_every_games=_get_int(run_table, "pgn_every_games"),
        max_runtime_minutes=_get_int(run_table, "max_runtime_minutes"),
    )


def _parse_model_config(config: dict[str, TomlValue]) -> QNetworkConfig:
    """Parse the [model] table."""
    model_table = _get_table(config, "model")
    return QNetworkConfig(
        input_size=INPUT_SIZE,
        hidden_size=_get_int(model_table, "hidden_size"),
    )


def _parse_optim_config(config: dict[str, TomlValue]) -> OptimConfig:
    """Parse optimizer settings from the [train] table."""
    train_table = _get_table(config, "train")
    return OptimConfig(
        learning_rate=_get_float(train_table, "learning_rate"),
        momentum=_get_float(train_table, "momentum"),
        grad_clip_norm=_get_float(train_table, "grad_clip_norm"),
    )


def _parse_learn_config(config: dict[str, TomlValue]) -> LearnConfig:
    """Parse learner settings from the [train] table."""
    train_table = _get_table(config, "train")
    cfg = LearnConfig(
        gamma=_get_float(train_table, "gamma"),
        sync_every_games=_get_int(train_table, "sync_every_games"),
        max_to_keep=_get_int(train_table, "max_to_keep"),
    )
    if cfg.sync_every_games < 1:
        raise ValueError("sync_every_games must be at least 1.")
    return cfg


def _parse_selfplay_config(config: dict[str, TomlValue]) -> SelfPlayConfig:
    """Parse the [selfplay] table."""
    selfplay_table = _get_table(config, "selfplay")
    return SelfPlayConfig(
        explore_threshold=_get_float(selfplay_table, "explore_threshold"),
        retain_rate=_get_float(selfplay_table, "retain_rate"),
        max_plies=_get_int(selfplay_table, "max_plies"),
    )


def _parse_eval_config(config: dict[str, TomlValue]) -> EvalConfig:
    """Parse the optional [eval] table."""
    eval_table = _get_table_optional(config, "eval")
    if eval_table is None:
        return EvalConfig(games=2, max_plies=200, checkpoints_dir=None)
    checkpoints_dir = None
    value = eval_table.get("checkpoints_dir")
    if isinstance(value, str):
        checkpoints_dir = Path(value)
    return EvalConfig(
        games=_get_int(eval_table, "games"),
        max_plies=_get_int(eval_table, "max_plies"),
        checkpoints_dir=checkpoints_dir,
    )


def _append_event(paths: RunPaths, event: dict[str, TomlValue]) -> None:
    """Append a run event to events.toml with monotonic numbering."""
    data = load_toml(paths.events_toml) if paths.events_toml.exists() else {}
    numbers = [0]
    for key in data:
        prefix, _, suffix = key.partition("_")
        if prefix == "event" and suffix.isdigit():
            numbers.append(int(suffix))
    data[f"event_{max(numbers) + 1:04d}"] = event
    save_toml(paths.events_toml, data)


def _git_sha() -> str:
    """Resolve the current git SHA for run metadata, or "unknown"."""
    git_dir = Path(".git")
    head_path = git_dir / "HEAD"
    if not head_path.exists():
        return "unknown"
    head = head_path.read_text(encoding="utf-8").strip()
    if not head.startswith("ref: "):
        return head
    ref_path = git_dir / head.removeprefix("ref: ")
    if not ref_path.exists():
        return "unknown"
    return ref_path.read_text(encoding="utf-8").strip()


def _run_id(run_name: str) -> str:
    """Construct a UTC run_id with timestamp and name."""
    stamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    return f"{stamp}_{run_name}"


def _write_start_event(paths: RunPaths, run_id: str, run_name: str) -> None:
    """Write a run start event."""
    _append_event(
        paths,
        {
            "event": "start",
            "run_id": run_id,
            "run_name": run_name,
            "started_utc": datetime.now(UTC).isoformat(),
            "git_sha": _git_sha(),
            "host": platform.node(),
            "platform": platform.platform(),
            "python": platform.python_version(),
        },
    )


def _write_stop_event(
    paths: RunPaths, run_id: str, run_name: str, reason: str
) -> None:
    """Write a run stop event with a reason label."""
    _append_event(
        paths,
        {
            "event": "stop",
            "run_id": run_id,
            "run_name": run_name,
            "stopped_utc": datetime.now(UTC).isoformat(),
            "reason": reason,
        },
    )


def _write_game_pgn(
    paths: RunPaths, run_name: str, game_index: int, game: SelfPlayGame
) -> None:
    """Export one self-play game as PGN."""
    headers = PgnHeaders(
        event=run_name,
        site="local",
        date=date.today(),
        round=str(game_index),
        white="selfplay-explore",
        black="selfplay-greedy",
        result=game.result,
    )
    write_pgn_file(
        paths.pgn_path(game_index), format_pgn(headers, list(game.moves))
    )


def _train(config: dict[str, TomlValue], paths: RunPaths, run_id: str) -> None:
    """Run the outer loop: self-play, learn, persist, resync the target.

    Both approximator handles are owned here and passed explicitly. The
    target is reloaded from the primary's checkpoint every
    `sync_every_games` games, so it lags the primary by whole games.

    Args:
        config: Loaded TOML configuration.
        paths: RunPaths for artifact output.
        run_id: Generated run identifier.
    """
    run_cfg = _parse_run_config(config)
    model_cfg = _parse_model_config(config)
    optim_cfg = _parse_optim_config(config)
    learn_cfg = _parse_learn_config(config)
    selfplay_cfg = _parse_selfplay_config(config)

    # Same seed: primary and target start in sync.
    primary = make_approximator(model_cfg, optim_cfg, run_cfg.seed)
    target = make_approximator(model_cfg, optim_cfg, run_cfg.seed)
    rng_stream = RngStream(jax.random.PRNGKey(run_cfg.seed))
    manager = make_checkpoint_manager(
        paths.checkpoints, CheckpointConfig(max_to_keep=learn_cfg.max_to_keep)
    )

    first_game = 1
    if manager.latest_step() is not None:
        step = restore_latest(manager, primary)
        restore_latest(manager, target, params_only=True)
        first_game = int(step) + 1

    try:
        start_time = time.monotonic()
        for game_index in range(first_game, run_cfg.games + 1):
            elapsed_minutes = (time.monotonic() - start_time) / 60.0
            if elapsed_minutes >= run_cfg.max_runtime_minutes:
                _write_stop_event(paths, run_id, run_cfg.name, "time")
                return

            game_start = time.monotonic()
            game = play_self_game(
                approximator=primary,
                rng=rng_stream.game_random(GameId(game_index)),
                cfg=selfplay_cfg,
            )
            summary = learn(
                primary,
                target,
                game.transitions,
                learn_cfg.gamma,
                MOVER_IS_FIRST,
            )

            # Persist only after a fully learned game.
            save_checkpoint(manager, primary, Step(game_index))
            if game_index % learn_cfg.sync_every_games == 0:
                restore_latest(manager, target, params_only=True)

            write_metrics_snapshot(
                paths,
                GameMetrics(
                    game=game_index,
                    result=game.result,
                    plies=game.plies,
                    policy_moves=game.policy_moves,
                    random_moves=game.random_moves,
                    transitions=summary.fits,
                    reward_mean=summary.reward_mean,
                    target_mean=summary.target_mean,
                    last_loss=primary.last_loss,
                    elapsed_seconds=time.monotonic() - game_start,
                ),
            )
            if game_index % run_cfg.pgn_every_games == 0:
                _write_game_pgn(paths, run_cfg.name, game_index, game)

        _write_stop_event(paths, run_id, run_cfg.name, "complete")
    finally:
        manager.wait_until_finished()


def _eval(config: dict[str, TomlValue], paths: RunPaths, run_id: str) -> None:
    """Run arena games and write a summary results TOML.

    Args:
        config: Loaded TOML configuration.
        paths: RunPaths for artifact output.
        run_id: Generated run identifier.
    """
    run_cfg = _parse_run_config(config)
    model_cfg = _parse_model_config(config)
    optim_cfg = _parse_optim_config(config)
    eval_cfg = _parse_eval_config(config)

    approximator = make_approximator(model_cfg, optim_cfg, run_cfg.seed)
    restored_step = 0
    if eval_cfg.checkpoints_dir is not None:
        manager = make_checkpoint_manager(
            eval_cfg.checkpoints_dir.resolve(), CheckpointConfig(max_to_keep=1)
        )
        if manager.latest_step() is not None:
            restored_step = int(
                restore_latest(manager, approximator, params_only=True)
            )

    rng_stream = RngStream(jax.random.PRNGKey(run_cfg.seed))
    result = run_arena(
        approximator=approximator,
        rng=rng_stream.game_random(GameId(_EVAL_GAME_OFFSET)),
        games=eval_cfg.games,
        max_plies=eval_cfg.max_plies,
    )
    rating_a, rating_b = rate_match(result, 1000.0, 1000.0)

    data: dict[str, TomlValue] = {
        "checkpoint_step": restored_step,
        "wins": result.wins,
        "draws": result.draws,
        "losses": result.losses,
        "score": result.score(),
        "win_rate": result.win_rate(),
        "expected_score": expected_score(rating_a, rating_b),
        "rating_policy": rating_a,
        "rating_random": rating_b,
    }
    save_toml(paths.root / "eval_results.toml", data)
    _write_stop_event(paths, run_id, run_cfg.name, "eval_complete")


def main(argv: list[str] | None = None) -> int:
    """Main entrypoint.

    Returns:
        Process exit code (0 for success).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_toml(args.config)
    run_cfg = _parse_run_config(config)
    run_id = getattr(args, "run_id", None) or _run_id(run_cfg.name)
    # Create (or reopen) run directories and persist config.
    paths = RunPaths.create(run_id)
    save_toml(paths.config_toml, config)
    _write_start_event(paths, run_id, run_cfg.name)
    if args.command == "train":
        _train(config, paths, run_id)
    else:
        _eval(config, paths, run_id)
    return 0
