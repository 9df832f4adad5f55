"""Tests for the Q-network and its approximator handle."""

from __future__ import annotations

import chex
import jax.numpy as jnp
import numpy as np
import pytest
from flax import nnx

from qchess.env.chess_rules import new_position
from qchess.features.encode import (
    INPUT_SIZE,
    encode_action,
    encode_state,
    encode_state_action,
)
from qchess.model.approximator import make_approximator
from qchess.model.q_network import QNetwork, QNetworkConfig
from qchess.train.optimizer import OptimConfig

_MODEL_CFG = QNetworkConfig(input_size=INPUT_SIZE, hidden_size=16)
_OPTIM_CFG = OptimConfig(learning_rate=0.01, momentum=0.0, grad_clip_norm=10.0)


def _vector() -> np.ndarray:
    """Start position paired with e2e4."""
    return encode_state_action(
        encode_state(new_position(), True), encode_action("e2e4", True)
    )


def test_q_network_shapes() -> None:
    """The network maps (B, input_size) to (B,)."""
    model = QNetwork(_MODEL_CFG, rngs=nnx.Rngs(0))
    out = model(jnp.zeros((3, INPUT_SIZE), dtype=jnp.float32))
    chex.assert_shape(out, (3,))
    chex.assert_tree_all_finite(out)


def test_forward_returns_float_and_validates_shape() -> None:
    """forward scores one vector and rejects wrong shapes."""
    approx = make_approximator(_MODEL_CFG, _OPTIM_CFG, seed=0)
    assert isinstance(approx.forward(_vector()), float)
    with pytest.raises(ValueError, match="Expected input"):
        _ = approx.forward(np.zeros((INPUT_SIZE - 1,), dtype=np.float32))


def test_fit_moves_prediction_toward_target() -> None:
    """Repeated fits shrink the error on the fitted input."""
    approx = make_approximator(_MODEL_CFG, _OPTIM_CFG, seed=0)
    vector = _vector()
    before = approx.forward(vector)
    target = before + 1.0
    for _ in range(20):
        approx.fit(vector, target)
    after = approx.forward(vector)
    assert abs(after - target) < abs(before - target)
    assert approx.fit_count == 20
    assert approx.last_loss >= 0.0


def test_same_seed_same_parameters() -> None:
    """Two approximators built from one seed start identical."""
    first = make_approximator(_MODEL_CFG, _OPTIM_CFG, seed=5)
    second = make_approximator(_MODEL_CFG, _OPTIM_CFG, seed=5)
    assert first.forward(_vector()) == second.forward(_vector())


def test_load_state_copies_parameters() -> None:
    """Loading another approximator's state reproduces its outputs."""
    source = make_approximator(_MODEL_CFG, _OPTIM_CFG, seed=1)
    dest = make_approximator(_MODEL_CFG, _OPTIM_CFG, seed=2)
    dest.load_state(source.state())
    assert dest.forward(_vector()) == pytest.approx(source.forward(_vector()))
