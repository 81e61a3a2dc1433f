"""
Class Resolution Service.

Turns a recorded fully-qualified class name back into a class and invokes
its ``read`` factory. Used by the legacy descriptor path and by the native
backend when a stage directory names its own class.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from ..core.paths import LOGGER_NAME
from ..exceptions import TrellisClassResolutionError

logger = logging.getLogger(LOGGER_NAME)


class ClassResolver:
    """
    Import-based resolver for ``module.QualName`` strings.

    Nested classes are supported: the longest importable module prefix is
    used and the remaining parts are looked up as attributes.
    """

    def resolve(self, name: str) -> type:
        """
        Resolve *name* to a class.

        Raises:
            TrellisClassResolutionError: If no module prefix imports, an
                attribute is missing, or the target is not a class.
        """
        parts = name.split(".") if name else []
        if len(parts) < 2:
            raise TrellisClassResolutionError(f"Not a fully-qualified class name: {name!r}")

        for split in range(len(parts) - 1, 0, -1):
            module_name = ".".join(parts[:split])
            try:
                target: Any = importlib.import_module(module_name)
            except ImportError:
                continue

            try:
                for attr in parts[split:]:
                    target = getattr(target, attr)
            except AttributeError as e:
                raise TrellisClassResolutionError(
                    f"Class {name!r} not found in module {module_name!r}"
                ) from e

            if not isinstance(target, type):
                raise TrellisClassResolutionError(f"{name!r} does not name a class")
            logger.debug(f"Resolved stage class {name}")
            return target

        raise TrellisClassResolutionError(f"Cannot import any module for class {name!r}")

    def invoke(self, cls: type, method: str) -> Any:
        """
        Call a zero-argument factory (e.g. ``read``) on *cls*.

        Raises:
            TrellisClassResolutionError: If the attribute is missing, not
                callable, or raises.
        """
        factory = getattr(cls, method, None)
        if not callable(factory):
            raise TrellisClassResolutionError(
                f"Class {cls.__qualname__!r} has no callable {method!r}"
            )
        try:
            return factory()
        except Exception as e:
            raise TrellisClassResolutionError(
                f"{cls.__qualname__}.{method}() failed: {e}"
            ) from e

    def reader_for(self, name: str) -> Any:
        """Resolve *name* and return its reader (an object with ``load(path)``)."""
        reader = self.invoke(self.resolve(name), "read")
        if not callable(getattr(reader, "load", None)):
            raise TrellisClassResolutionError(f"Reader for {name!r} has no load(path) method")
        return reader


default_resolver = ClassResolver()
