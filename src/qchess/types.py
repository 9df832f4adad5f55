"""
Core type aliases shared across modules.

Hard requirements:
- No Any
- Prefer explicit type aliases, NewType wrappers and frozen dataclasses.
"""

from __future__ import annotations

from typing import NewType

import jax
import numpy as np

# Canonical array types used across modules.
type Array = jax.Array
# PRNGKey is a JAX uint32[2] array by convention.
type PRNGKey = jax.Array
# Host-side feature vectors are read-only float32 numpy arrays.
type Vector = np.ndarray
type StateVector = np.ndarray
type ActionVector = np.ndarray

# Strongly-typed integer wrappers for counters/IDs.
Step = NewType("Step", int)
GameId = NewType("GameId", int)
