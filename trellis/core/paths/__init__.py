"""
Constants and Path Helpers Package.

Centralizes persisted-format identifiers (descriptor keys, bundle layout)
and the unified logging identity.

Example:
    >>> from trellis.core.paths import LOGGER_NAME, stage_path
    >>> stage_path("/tmp/models", "linear_4f2a")
    PosixPath('/tmp/models/linear_4f2a')
"""

from .constants import (
    BUNDLE_GRAPH_FILE,
    BUNDLE_MANIFEST,
    BUNDLE_NODE_FILE,
    BUNDLE_ROOT_DIR,
    BUNDLE_STATE_FILE,
    BUNDLE_VERSION,
    KEY_AS_NATIVE,
    KEY_CLASS_NAME,
    KEY_PATH,
    KEY_UID,
    KNOWN_BAD_LEGACY_CLASS,
    LOGGER_NAME,
    NATIVE_METADATA_FILE,
    NATIVE_STATE_FILE,
    NO_CLASS,
    NO_UID,
    STAGE_PARAM_NAME,
    stage_path,
)

__all__ = [
    "LOGGER_NAME",
    "NO_CLASS",
    "NO_UID",
    "KNOWN_BAD_LEGACY_CLASS",
    "STAGE_PARAM_NAME",
    "KEY_CLASS_NAME",
    "KEY_UID",
    "KEY_PATH",
    "KEY_AS_NATIVE",
    "BUNDLE_MANIFEST",
    "BUNDLE_ROOT_DIR",
    "BUNDLE_NODE_FILE",
    "BUNDLE_STATE_FILE",
    "BUNDLE_GRAPH_FILE",
    "BUNDLE_VERSION",
    "NATIVE_METADATA_FILE",
    "NATIVE_STATE_FILE",
    "stage_path",
]
