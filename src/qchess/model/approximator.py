"""
Approximator capability used by the policy and the learner.

The core only ever calls `forward` and `fit`; `QApproximator` backs both with
an NNX network and an Optax optimizer, and exposes its parameter state for
checkpointing.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

import jax
import jax.numpy as jnp
import optax
from flax import nnx

from qchess.model.q_network import QNetwork, QNetworkConfig
from qchess.train.optimizer import OptimConfig, make_optimizer
from qchess.types import Array, Vector

type ForwardFn = Callable[[nnx.GraphDef, nnx.State, Array], Array]
type FitFn = Callable[
    [nnx.GraphDef, nnx.State, optax.OptState, Array, Array],
    tuple[nnx.State, optax.OptState, Array],
]


class Approximator(Protocol):
    """Scalar-valued function with forward evaluation and online fitting."""

    def forward(self, vector: Vector) -> float:
        """Score a single state-action vector."""
        ...

    def fit(self, vector: Vector, target: float) -> None:
        """Take one online step toward `target` for `vector`."""
        ...


def _make_forward_fn() -> ForwardFn:
    """Build the jitted forward function."""

    @jax.jit
    def forward(graphdef: nnx.GraphDef, params: nnx.State, x: Array) -> Array:
        model = nnx.merge(graphdef, params)
        return model(x)

    return forward


def _make_fit_fn(tx: optax.GradientTransformation) -> FitFn:
    """Build the jitted single-sample fit step for a given optimizer."""

    @jax.jit
    def fit_step(
        graphdef: nnx.GraphDef,
        params: nnx.State,
        opt_state: optax.OptState,
        x: Array,
        target: Array,
    ) -> tuple[nnx.State, optax.OptState, Array]:
        def loss_fn(p: nnx.State) -> Array:
            pred = nnx.merge(graphdef, p)(x)
            return 0.5 * jnp.mean(jnp.square(pred - target))

        loss, grads = jax.value_and_grad(loss_fn)(params)
        updates, opt_state = tx.update(grads, opt_state, params)
        params = optax.apply_updates(params, updates)
        return params, opt_state, loss

    return fit_step


class QApproximator:
    """Mutable handle around network parameters and optimizer state."""

    def __init__(
        self, model: QNetwork, tx: optax.GradientTransformation
    ) -> None:
        """Split the model into graph and parameters and init the optimizer.

        Args:
            model: Freshly initialized QNetwork.
            tx: Optax transformation applied on every fit call.
        """
        self.input_size = model.cfg.input_size
        self._graphdef, self._params = nnx.split(model)
        self._opt_state = tx.init(self._params)
        self._forward_fn = _make_forward_fn()
        self._fit_fn = _make_fit_fn(tx)
        self.fit_count = 0
        self.last_loss = 0.0

    def _as_batch(self, vector: Vector) -> Array:
        """Validate a single input vector and add a batch axis."""
        if vector.shape != (self.input_size,):
            raise ValueError(
                f"Expected input of shape ({self.input_size},), "
                f"got {vector.shape}."
            )
        return jnp.asarray(vector, dtype=jnp.float32)[None, :]

    def forward(self, vector: Vector) -> float:
        """Score a single state-action vector."""
        out = self._forward_fn(
            self._graphdef, self._params, self._as_batch(vector)
        )
        return float(out[0])

    def fit(self, vector: Vector, target: float) -> None:
        """Take one optimizer step toward `target` for `vector`."""
        target_arr = jnp.asarray([target], dtype=jnp.float32)
        self._params, self._opt_state, loss = self._fit_fn(
            self._graphdef,
            self._params,
            self._opt_state,
            self._as_batch(vector),
            target_arr,
        )
        self.fit_count += 1
        self.last_loss = float(loss)

    def state(self) -> nnx.State:
        """Return the current parameter state (for checkpointing)."""
        return self._params

    def load_state(self, params: nnx.State) -> None:
        """Replace the parameters, keeping the optimizer state."""
        self._params = params

    def opt_state(self) -> optax.OptState:
        """Return the current optimizer state (for checkpointing)."""
        return self._opt_state

    def load_opt_state(self, opt_state: optax.OptState) -> None:
        """Replace the optimizer state (momentum traces)."""
        self._opt_state = opt_state


def make_approximator(
    model_cfg: QNetworkConfig, optim_cfg: OptimConfig, seed: int
) -> QApproximator:
    """Create a freshly initialized approximator."""
    model = QNetwork(model_cfg, rngs=nnx.Rngs(seed))
    return QApproximator(model, make_optimizer(optim_cfg))
