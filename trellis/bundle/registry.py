"""
Portable Runtime Op Registry.

Process-wide mapping from op names to op plugins. Registration is
idempotent: registering an op whose name is already present is a no-op, so
read paths may register what they need on every call.
"""

from __future__ import annotations

import logging
import threading

from ..core.paths import LOGGER_NAME
from .ops import BundleOp, OnnxGraphOp

logger = logging.getLogger(LOGGER_NAME)


class BundleRegistry:
    """Op name → op plugin lookup shared by every bundle reader."""

    def __init__(self) -> None:
        self._ops: dict[str, BundleOp] = {}
        self._lock = threading.Lock()

    def register(self, op: BundleOp) -> BundleRegistry:
        """
        Add *op* unless an op with the same name is registered.

        Returns:
            The registry, for chaining.
        """
        with self._lock:
            if op.name in self._ops:
                return self
            self._ops[op.name] = op
        logger.debug(f"Registered portable op '{op.name}'")
        return self

    def get(self, name: str) -> BundleOp:
        """
        Raises:
            KeyError: If no op is registered under *name*.
        """
        if name not in self._ops:
            raise KeyError(f"Op '{name}' not registered. Available: {self.names()}")
        return self._ops[name]

    def names(self) -> list[str]:
        return sorted(self._ops)

    def __contains__(self, name: object) -> bool:
        return name in self._ops

    def __len__(self) -> int:
        return len(self._ops)

    def __getstate__(self) -> dict:
        state = self.__dict__.copy()
        del state["_lock"]
        return state

    def __setstate__(self, state: dict) -> None:
        self.__dict__.update(state)
        self._lock = threading.Lock()


default_registry = BundleRegistry().register(OnnxGraphOp())
