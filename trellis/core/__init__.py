"""
Core Utilities Package.

Constants, logging, configuration schema and document I/O shared by the
stage codec, the bundle backends and the CLI.
"""

from .config import BundleConfig
from .io import (
    load_config_from_yaml,
    load_params_metadata,
    save_config_as_yaml,
    save_params_metadata,
)
from .logger import Logger, LogStyle
from .paths import (
    KNOWN_BAD_LEGACY_CLASS,
    LOGGER_NAME,
    NO_CLASS,
    NO_UID,
    STAGE_PARAM_NAME,
    stage_path,
)

__all__ = [
    # Configuration
    "BundleConfig",
    # I/O
    "save_config_as_yaml",
    "load_config_from_yaml",
    "load_params_metadata",
    "save_params_metadata",
    # Logging
    "Logger",
    "LogStyle",
    # Constants
    "LOGGER_NAME",
    "NO_CLASS",
    "NO_UID",
    "KNOWN_BAD_LEGACY_CLASS",
    "STAGE_PARAM_NAME",
    "stage_path",
]
