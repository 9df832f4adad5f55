"""
Error taxonomy for the learning core.

Both errors are fatal: they surface to the caller and are never retried.
"""

from __future__ import annotations


class EncodingError(ValueError):
    """A move or square token could not be parsed."""


class InternalConsistencyError(RuntimeError):
    """A side that the driver expects to move has no legal move."""
