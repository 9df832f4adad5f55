"""
Orbax checkpointing utilities.

Hard requirements:
- All checkpoints must live under /runs/<run_id>/checkpoints/
- A checkpoint is only written after a game has been fully learned, so a
  failing game never overwrites the last good weights
- Parameters and optimizer state are saved together so a resumed run
  continues with the same momentum
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import optax
import orbax.checkpoint as ocp
from flax import nnx

from qchess.model.approximator import QApproximator
from qchess.types import Step


@dataclass(frozen=True, slots=True)
class CheckpointConfig:
    """Checkpoint retention."""

    max_to_keep: int


type CheckpointTree = dict[str, nnx.State | optax.OptState]


def make_checkpoint_manager(
    checkpoints_dir: Path, cfg: CheckpointConfig
) -> ocp.CheckpointManager:
    """Create an Orbax CheckpointManager.

    Args:
        checkpoints_dir: Absolute directory for checkpoint steps.
        cfg: Retention settings.
    """
    options = ocp.CheckpointManagerOptions(
        max_to_keep=cfg.max_to_keep,
        create=True,
        enable_async_checkpointing=False,
    )
    return ocp.CheckpointManager(checkpoints_dir, options=options)


def _approximator_to_tree(approximator: QApproximator) -> CheckpointTree:
    """Collect the checkpointable fields of an approximator."""
    return {
        "params": approximator.state(),
        "opt_state": approximator.opt_state(),
    }


def save_checkpoint(
    manager: ocp.CheckpointManager,
    approximator: QApproximator,
    step: Step,
) -> None:
    """Persist the approximator's parameters and optimizer state."""
    manager.save(
        int(step),
        args=ocp.args.StandardSave(_approximator_to_tree(approximator)),
    )
    manager.wait_until_finished()


def restore_latest(
    manager: ocp.CheckpointManager,
    approximator: QApproximator,
    *,
    params_only: bool = False,
) -> Step:
    """Load the latest checkpoint into `approximator`.

    The approximator's current fields double as the restore target, so it
    must come from a network and optimizer with the same configuration.

    Args:
        manager: Checkpoint manager to read from.
        approximator: Handle receiving the restored fields.
        params_only: Load parameters but keep the optimizer state (used
            for the read-only target network and for evaluation).

    Returns:
        The step that was restored.

    Raises:
        FileNotFoundError: If no checkpoint exists.
        ValueError: If the checkpoint does not hold the expected fields.
    """
    step = manager.latest_step()
    if step is None:
        raise FileNotFoundError("No checkpoint found.")
    restored = manager.restore(
        step,
        args=ocp.args.StandardRestore(_approximator_to_tree(approximator)),
    )
    if not isinstance(restored, dict) or "params" not in restored:
        raise ValueError("Restored checkpoint is missing params.")
    approximator.load_state(restored["params"])
    if not params_only:
        approximator.load_opt_state(restored["opt_state"])
    return Step(step)
