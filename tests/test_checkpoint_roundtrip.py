"""Checkpoint save/restore roundtrip tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from qchess.env.chess_rules import new_position
from qchess.features.encode import (
    INPUT_SIZE,
    encode_action,
    encode_state,
    encode_state_action,
)
from qchess.model.approximator import make_approximator
from qchess.model.q_network import QNetworkConfig
from qchess.train.checkpointing import (
    CheckpointConfig,
    make_checkpoint_manager,
    restore_latest,
    save_checkpoint,
)
from qchess.train.optimizer import OptimConfig
from qchess.types import Step

_MODEL_CFG = QNetworkConfig(input_size=INPUT_SIZE, hidden_size=8)
_OPTIM_CFG = OptimConfig(learning_rate=0.01, momentum=0.0, grad_clip_norm=1.0)


def test_checkpoint_roundtrip(tmp_path: Path) -> None:
    """Restored parameters reproduce the saved approximator."""
    manager = make_checkpoint_manager(
        tmp_path / "checkpoints", CheckpointConfig(max_to_keep=2)
    )
    source = make_approximator(_MODEL_CFG, _OPTIM_CFG, seed=0)
    vector = encode_state_action(
        encode_state(new_position(), True), encode_action("d2d4", True)
    )
    source.fit(vector, 3.0)
    save_checkpoint(manager, source, Step(3))

    dest = make_approximator(_MODEL_CFG, _OPTIM_CFG, seed=1)
    assert restore_latest(manager, dest) == 3
    assert dest.forward(vector) == pytest.approx(source.forward(vector))


def test_restore_without_checkpoint(tmp_path: Path) -> None:
    """Restoring from an empty directory raises FileNotFoundError."""
    manager = make_checkpoint_manager(
        tmp_path / "empty", CheckpointConfig(max_to_keep=1)
    )
    approx = make_approximator(_MODEL_CFG, _OPTIM_CFG, seed=0)
    with pytest.raises(FileNotFoundError):
        _ = restore_latest(manager, approx)


def test_max_to_keep(tmp_path: Path) -> None:
    """Only the newest checkpoints are retained."""
    manager = make_checkpoint_manager(
        tmp_path / "checkpoints", CheckpointConfig(max_to_keep=2)
    )
    approx = make_approximator(_MODEL_CFG, _OPTIM_CFG, seed=0)
    for step in (1, 2, 3):
        save_checkpoint(manager, approx, Step(step))
    assert sorted(manager.all_steps()) == [2, 3]
    assert manager.latest_step() == 3


def test_resume_matches_uninterrupted_training(tmp_path: Path) -> None:
    """Fit, save, restore, fit gives the same model as never stopping."""
    optim_cfg = OptimConfig(
        learning_rate=0.01, momentum=0.9, grad_clip_norm=10.0
    )
    manager = make_checkpoint_manager(
        tmp_path / "checkpoints", CheckpointConfig(max_to_keep=1)
    )
    vector = encode_state_action(
        encode_state(new_position(), True), encode_action("e2e4", True)
    )
    uninterrupted = make_approximator(_MODEL_CFG, optim_cfg, seed=0)
    for _ in range(5):
        uninterrupted.fit(vector, 4.0)
    save_checkpoint(manager, uninterrupted, Step(1))

    resumed = make_approximator(_MODEL_CFG, optim_cfg, seed=0)
    _ = restore_latest(manager, resumed)
    uninterrupted.fit(vector, 4.0)
    resumed.fit(vector, 4.0)
    assert resumed.forward(vector) == pytest.approx(
        uninterrupted.forward(vector), abs=1e-5
    )


def test_params_only_restore_keeps_optimizer_state(tmp_path: Path) -> None:
    """A params-only restore leaves the receiver's momentum untouched."""
    optim_cfg = OptimConfig(
        learning_rate=0.01, momentum=0.9, grad_clip_norm=10.0
    )
    manager = make_checkpoint_manager(
        tmp_path / "checkpoints", CheckpointConfig(max_to_keep=1)
    )
    vector = encode_state_action(
        encode_state(new_position(), True), encode_action("e2e4", True)
    )
    source = make_approximator(_MODEL_CFG, optim_cfg, seed=0)
    source.fit(vector, 4.0)
    save_checkpoint(manager, source, Step(1))

    target = make_approximator(_MODEL_CFG, optim_cfg, seed=1)
    fresh_opt_state = target.opt_state()
    _ = restore_latest(manager, target, params_only=True)
    assert target.opt_state() is fresh_opt_state
    assert target.forward(vector) == pytest.approx(source.forward(vector))
