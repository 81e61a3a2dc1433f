"""
Portable Runtime Transformers.

Stages served from a bundle without the native framework run on
onnxruntime. :class:`OnnxTransformer` is the only portable transformer the
runtime produces; ops differ in which graph outputs they expose.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence, runtime_checkable

import numpy as np

from ..core.paths import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


@runtime_checkable
class PortableTransformer(Protocol):
    """A stage reconstructed by the portable runtime."""

    uid: str

    def transform(self, inputs: np.ndarray) -> np.ndarray: ...


def create_session(graph: bytes) -> Any:
    """
    Build a CPU onnxruntime session from serialized ONNX bytes.

    Raises:
        ImportError: If onnxruntime is not installed.
    """
    import onnxruntime as ort

    return ort.InferenceSession(graph, providers=["CPUExecutionProvider"])


class OnnxTransformer:
    """
    onnxruntime-backed transformer.

    Args:
        uid: Uid of the stage the graph was traced from.
        session: ``onnxruntime.InferenceSession`` (or compatible object).
        output_names: Graph outputs returned by :meth:`transform_all`, in
            order. None exposes every output of the session.
    """

    def __init__(self, uid: str, session: Any, output_names: Sequence[str] | None = None) -> None:
        self.uid = uid
        self.session = session
        self.input_name: str = session.get_inputs()[0].name
        available = [o.name for o in session.get_outputs()]
        self.output_names = list(output_names) if output_names is not None else available

    def transform_all(self, inputs: np.ndarray) -> dict[str, np.ndarray]:
        """Run the graph and return every selected output by name."""
        feed = {self.input_name: np.asarray(inputs, dtype=np.float32)}
        results = self.session.run(self.output_names, feed)
        return dict(zip(self.output_names, results))

    def transform(self, inputs: np.ndarray) -> np.ndarray:
        """Run the graph and return its first selected output."""
        return self.transform_all(inputs)[self.output_names[0]]

    def __repr__(self) -> str:
        return f"OnnxTransformer(uid={self.uid!r}, outputs={self.output_names})"
