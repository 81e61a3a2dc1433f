"""
Portable Runtime Ops.

An op turns the root node of a bundle into a portable transformer. The
bundle manifest names the op (``root.op``); the registry maps that name to
one of the classes below.

- ``torch_module``: graph traced from a :class:`PipelineStage`.
- ``tree_ensemble_regression`` / ``tree_ensemble_classification``:
  gradient-boosted tree models converted to the ``ai.onnx.ml`` tree
  ensemble operators. They are only registered when a bundle is read
  through the portable runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Protocol

from ..exceptions import TrellisLoadError
from . import runtime
from .runtime import OnnxTransformer, PortableTransformer


@dataclass(frozen=True)
class BundleNode:
    """Root node of a bundle as read from the archive."""

    op: str
    class_name: str
    uid: str
    metadata: dict[str, Any]
    state: bytes | None = None
    graph: bytes | None = None


class BundleOp(Protocol):
    name: str

    def load(self, node: BundleNode) -> PortableTransformer: ...


class OnnxGraphOp:
    """Serves the node's ONNX graph, exposing all of its outputs."""

    name: ClassVar[str] = "torch_module"
    output_names: ClassVar[tuple[str, ...] | None] = None

    def load(self, node: BundleNode) -> PortableTransformer:
        if node.graph is None:
            raise TrellisLoadError(
                f"Bundle node '{node.uid}' has no ONNX graph; "
                "write it with a sample input to serve it portably"
            )
        session = runtime.create_session(node.graph)
        return OnnxTransformer(uid=node.uid, session=session, output_names=self.output_names)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class TreeEnsembleRegressionOp(OnnxGraphOp):
    """``TreeEnsembleRegressor`` graphs: a single ``variable`` output."""

    name: ClassVar[str] = "tree_ensemble_regression"
    output_names: ClassVar[tuple[str, ...] | None] = ("variable",)


class TreeEnsembleClassificationOp(OnnxGraphOp):
    """``TreeEnsembleClassifier`` graphs: predicted ``label`` then class ``probabilities``."""

    name: ClassVar[str] = "tree_ensemble_classification"
    output_names: ClassVar[tuple[str, ...] | None] = ("label", "probabilities")
