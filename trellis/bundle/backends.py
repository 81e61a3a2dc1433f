"""
Stage Serialization Backends.

Two backend variants persist stages for the parameter codec:

- :class:`NativeBackend`: one directory per stage (``metadata.json`` +
  ``state_dict.pt``), reloadable only with torch and the stage's class.
- :class:`BundleBackend`: one zip bundle per stage, reloadable either as
  a native stage or through the onnxruntime-based portable runtime.

The codec picks the variant explicitly (bundle when a serialization
context is active, native otherwise); neither backend inspects the other.
"""

from __future__ import annotations

import contextlib
import io
import logging
import tempfile
import warnings
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import torch

from ..core.paths import (
    BUNDLE_GRAPH_FILE,
    BUNDLE_MANIFEST,
    BUNDLE_NODE_FILE,
    BUNDLE_ROOT_DIR,
    BUNDLE_STATE_FILE,
    BUNDLE_VERSION,
    LOGGER_NAME,
)
from ..core.logger import LogStyle
from ..exceptions import TrellisLoadError, TrellisWriteError
from ..stages.base import (
    PipelineStage,
    build_stage_metadata,
    library_version,
    qualified_class_name,
    read_native_metadata,
    rebuild_stage,
)
from ..stages.reflection import ClassResolver, default_resolver
from .context import BundleContext
from .file import BundleFile
from .ops import BundleNode, TreeEnsembleClassificationOp, TreeEnsembleRegressionOp
from .registry import BundleRegistry, default_registry
from .runtime import PortableTransformer

logger = logging.getLogger(LOGGER_NAME)

SUPPORTED_FORMATS = frozenset({"json"})


def _entry(name: str) -> str:
    return f"{BUNDLE_ROOT_DIR}/{name}"


# NATIVE BACKEND
class NativeBackend:
    """Directory-per-stage persistence through ``PipelineStage.write()`` / ``read()``."""

    def __init__(self, resolver: ClassResolver | None = None) -> None:
        self.resolver = resolver or default_resolver

    def write(self, stage: PipelineStage, path: str | Path) -> None:
        stage.write().save(path, overwrite=True)

    def load(self, path: str | Path) -> Any:
        """
        Rebuild the stage stored at *path*, resolving its recorded class.

        Raises:
            FileNotFoundError: If *path* holds no native metadata.
            TrellisClassResolutionError: If the recorded class cannot be resolved.
        """
        metadata = read_native_metadata(path)
        reader = self.resolver.reader_for(metadata["class"])
        return reader.load(path)


# BUNDLE BACKEND
class BundleBackend:
    """
    Zip bundle persistence with native and portable readers.

    Args:
        open_bundle: Factory ``(path, mode) -> BundleFile``-like context
            manager. Must also expose ``exists(path)``.
        registry: Portable runtime op registry (process-wide by default).
        resolver: Class resolution service for native reloads.
    """

    def __init__(
        self,
        open_bundle: Callable[..., Any] = BundleFile,
        registry: BundleRegistry | None = None,
        resolver: ClassResolver | None = None,
    ) -> None:
        self.open_bundle = open_bundle
        self.registry = registry if registry is not None else default_registry
        self.resolver = resolver or default_resolver

    def open(self, path: Path, mode: str = "r") -> Any:
        return self.open_bundle(path, mode=mode)

    def exists(self, path: Path) -> bool:
        """True when a file (valid bundle or not) occupies *path*."""
        return bool(self.open_bundle.exists(path))

    # WRITE
    def write(self, stage: PipelineStage, bundle: Any, format: str, context: BundleContext) -> bool:
        """
        Write *stage* into an open bundle.

        Returns:
            False if *format* is not supported, True once every entry is written.

        Raises:
            RuntimeError: If ONNX tracing fails.
            OSError: If an entry cannot be written.
        """
        if format not in SUPPORTED_FORMATS:
            logger.error(
                f"{LogStyle.INDENT}{LogStyle.FAILURE} Unsupported bundle format '{format}' "
                f"(supported: {sorted(SUPPORTED_FORMATS)})"
            )
            return False

        graph = _trace_graph(stage, context) if context.exports_graph else None

        state = io.BytesIO()
        torch.save(stage.state_dict(), state)

        bundle.write_json(
            BUNDLE_MANIFEST,
            {
                "name": stage.uid,
                "format": format,
                "version": BUNDLE_VERSION,
                "trellis_version": library_version(),
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "root": {
                    "op": stage.bundle_op,
                    "className": qualified_class_name(stage),
                    "uid": stage.uid,
                    "has_graph": graph is not None,
                },
            },
        )
        bundle.write_json(_entry(BUNDLE_NODE_FILE), build_stage_metadata(stage))
        bundle.write_bytes(_entry(BUNDLE_STATE_FILE), state.getvalue())
        if graph is not None:
            bundle.write_bytes(_entry(BUNDLE_GRAPH_FILE), graph)
        return True

    # READ
    def read_node(self, bundle: Any) -> BundleNode:
        """
        Read the manifest and root node of an open bundle.

        Raises:
            TrellisLoadError: If the manifest or node entry is missing or malformed.
        """
        try:
            manifest = bundle.read_json(BUNDLE_MANIFEST)
            root = manifest["root"]
            metadata = bundle.read_json(_entry(BUNDLE_NODE_FILE))
        except (KeyError, TypeError, ValueError) as e:
            raise TrellisLoadError(f"Bundle manifest is incomplete: {e}") from e

        return BundleNode(
            op=root["op"],
            class_name=root["className"],
            uid=root["uid"],
            metadata=metadata,
            state=_optional_entry(bundle, _entry(BUNDLE_STATE_FILE)),
            graph=_optional_entry(bundle, _entry(BUNDLE_GRAPH_FILE)),
        )

    def load_native(self, bundle: Any) -> PipelineStage:
        """
        Rebuild the bundle's root as a native stage.

        Raises:
            TrellisClassResolutionError: If the recorded class cannot be resolved.
            TrellisLoadError: If the node carries no weights or the class is
                not a pipeline stage.
        """
        node = self.read_node(bundle)
        cls = self.resolver.resolve(node.class_name)
        if not issubclass(cls, PipelineStage):
            raise TrellisLoadError(f"Bundle root {node.class_name!r} is not a pipeline stage")
        if node.state is None:
            raise TrellisLoadError(f"Bundle node '{node.uid}' carries no weights")

        state_dict = torch.load(io.BytesIO(node.state), map_location="cpu", weights_only=True)
        return rebuild_stage(cls, node.metadata, state_dict)

    def load_portable(self, bundle: Any) -> PortableTransformer:
        """
        Serve the bundle's root through the portable runtime.

        Raises:
            TrellisLoadError: If no op is registered for the node.
        """
        node = self.read_node(bundle)
        try:
            op = self.registry.get(node.op)
        except KeyError as e:
            raise TrellisLoadError(str(e)) from e
        return op.load(node)

    def register_tree_ensemble_ops(self) -> None:
        """Make tree-ensemble bundles loadable (idempotent)."""
        self.registry.register(TreeEnsembleRegressionOp()).register(TreeEnsembleClassificationOp())


def _optional_entry(bundle: Any, name: str) -> bytes | None:
    return bundle.read_bytes(name) if bundle.has(name) else None


def _trace_graph(stage: PipelineStage, context: BundleContext) -> bytes:
    """
    Trace *stage* on the context's sample input and return ONNX bytes.

    Raises:
        TrellisWriteError: If the context carries no sample input.
    """
    if context.sample_input is None:
        raise TrellisWriteError(f"Cannot trace '{stage.uid}': {context} has no sample input")
    cfg = context.config

    dynamic_axes_config = (
        {"input": {0: "batch_size"}, "output": {0: "batch_size"}} if cfg.dynamic_axes else None
    )

    was_training = stage.training
    stage.eval()
    try:
        with tempfile.TemporaryDirectory() as tmp:
            graph_path = Path(tmp) / BUNDLE_GRAPH_FILE
            with (
                warnings.catch_warnings(),
                contextlib.redirect_stdout(io.StringIO()),
            ):
                warnings.simplefilter("ignore")
                torch.onnx.export(
                    stage,
                    (context.sample_input.cpu(),),
                    str(graph_path),
                    export_params=True,
                    opset_version=cfg.opset_version,
                    do_constant_folding=cfg.do_constant_folding,
                    input_names=["input"],
                    output_names=["output"],
                    dynamic_axes=dynamic_axes_config,
                    verbose=False,
                )
            graph = graph_path.read_bytes()
    finally:
        stage.train(was_training)

    import onnx

    onnx.checker.check_model(onnx.load_from_string(graph))
    logger.debug(f"Traced ONNX graph for '{stage.uid}' ({len(graph) / 1024:.1f} KB)")
    return graph
