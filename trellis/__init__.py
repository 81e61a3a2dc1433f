"""
Trellis: pipeline stage parameters backed by native and portable archives.

Top-level convenience API re-exporting the most commonly used components:

    from trellis import StageParam, PipelineStage, BundleContext
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

try:
    __version__ = _pkg_version("trellis-ml")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

from .bundle import BundleBackend, BundleContext, BundleFile, NativeBackend, default_registry
from .core import LOGGER_NAME, BundleConfig, Logger, LogStyle
from .exceptions import (
    TrellisClassResolutionError,
    TrellisConfigError,
    TrellisError,
    TrellisLoadError,
    TrellisMalformedInputError,
    TrellisPreconditionError,
    TrellisWriteError,
)
from .params import StageParam, update_params_metadata_with_path
from .stages import PipelineStage

__all__ = [
    "__version__",
    # Core
    "BundleConfig",
    "Logger",
    "LogStyle",
    "LOGGER_NAME",
    # Stages
    "PipelineStage",
    "StageParam",
    "update_params_metadata_with_path",
    # Bundles
    "BundleBackend",
    "BundleContext",
    "BundleFile",
    "NativeBackend",
    "default_registry",
    # Errors
    "TrellisError",
    "TrellisConfigError",
    "TrellisPreconditionError",
    "TrellisMalformedInputError",
    "TrellisWriteError",
    "TrellisLoadError",
    "TrellisClassResolutionError",
]
