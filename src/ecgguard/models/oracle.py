"""
Inference oracle adapters.

The pipeline treats the reconstruction model as an opaque oracle: given a
fixed-length centered window it returns a same-length reconstruction.
Anything exposing ``infer(window) -> np.ndarray`` can be used; plain
callables are wrapped with ``as_oracle``.
"""

import numpy as np
from typing import Any, Callable

from ..exceptions import ConfigurationError


class ReconstructionOracle:
    """Base class for reconstruction oracles."""

    def infer(self, window: np.ndarray) -> np.ndarray:
        """
        Reconstruct a centered window.

        Args:
            window: 1D centered signal

        Returns:
            1D reconstruction of the same length
        """
        raise NotImplementedError

    def __call__(self, window: np.ndarray) -> np.ndarray:
        return self.infer(window)


class IdentityOracle(ReconstructionOracle):
    """Perfect reconstruction. Useful for dry runs and tests."""

    def infer(self, window: np.ndarray) -> np.ndarray:
        return np.array(window, dtype=np.float64, copy=True)


class CallableOracle(ReconstructionOracle):
    """Adapter for a plain ``fn(window) -> reconstruction`` function."""

    def __init__(self, fn: Callable[[np.ndarray], np.ndarray]):
        self.fn = fn

    def infer(self, window: np.ndarray) -> np.ndarray:
        return np.asarray(self.fn(window), dtype=np.float64)


def as_oracle(obj: Any) -> Any:
    """
    Coerce an object into something with an ``infer`` method.

    Raises:
        ConfigurationError: if the object is neither an oracle nor callable
    """
    if hasattr(obj, 'infer') and callable(obj.infer):
        return obj
    if callable(obj):
        return CallableOracle(obj)
    raise ConfigurationError(f"Not a usable inference oracle: {obj!r}")
