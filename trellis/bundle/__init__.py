"""
Bundle Serialization Package.

Collaborators of the stage parameter codec: scoped zip archives, path
qualification, the serialization context, the portable runtime (op
registry + onnxruntime transformers) and the two backend variants.

Example:
    >>> from trellis.bundle import BundleBackend, BundleContext, BundleFile
    >>> backend = BundleBackend()
    >>> with BundleFile(archive, mode="w") as bundle:
    ...     backend.write(stage, bundle, "json", BundleContext())
"""

from .backends import BundleBackend, NativeBackend
from .context import BundleContext
from .file import BundleFile, LocalFileSystem, to_local_path
from .ops import (
    BundleNode,
    BundleOp,
    OnnxGraphOp,
    TreeEnsembleClassificationOp,
    TreeEnsembleRegressionOp,
)
from .registry import BundleRegistry, default_registry
from .runtime import OnnxTransformer, PortableTransformer, create_session

__all__ = [
    # Backends
    "BundleBackend",
    "NativeBackend",
    # Archive & filesystem
    "BundleFile",
    "LocalFileSystem",
    "to_local_path",
    # Context
    "BundleContext",
    # Portable runtime
    "BundleRegistry",
    "default_registry",
    "BundleNode",
    "BundleOp",
    "OnnxGraphOp",
    "TreeEnsembleRegressionOp",
    "TreeEnsembleClassificationOp",
    "OnnxTransformer",
    "PortableTransformer",
    "create_session",
]
