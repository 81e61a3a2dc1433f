"""
Project-wide Constants.

Single source of truth for identifiers that end up in persisted artifacts
(descriptor keys, bundle entry names) and for the global logger identity.
Values written into descriptors or archives are part of the on-disk format
and must never change once released.

Module Attributes:
    LOGGER_NAME: Global logger identity used by all modules for log synchronization.
    NO_CLASS: Class name recorded when the parameter holds no stage.
    NO_UID: Uid recorded when the parameter holds no stage.
    KNOWN_BAD_LEGACY_CLASS: Legacy model type whose archives are not restored natively.
    STAGE_PARAM_NAME: Params metadata key under which the stage descriptor is stored.
"""

from pathlib import Path
from typing import Final

# GLOBAL CONSTANTS
# Global logger identity used by all modules to ensure log synchronization
LOGGER_NAME: Final[str] = "Trellis"

# DESCRIPTOR FORMAT
# Empty sentinel: both fields empty means the encoded optional was empty
NO_CLASS: Final[str] = ""
NO_UID: Final[str] = ""

# Archives of this model written by older runtimes cannot be read back as native
# stages (tree split thresholds are lost across versions); they are only served
# through the portable runtime, and never through the legacy reflection path.
KNOWN_BAD_LEGACY_CLASS: Final[str] = "trellis.models.forest.RandomForestRegressionModel"

# Params metadata key holding the wrapped stage descriptor
STAGE_PARAM_NAME: Final[str] = "sparkStage"

# Descriptor field names
KEY_CLASS_NAME: Final[str] = "className"
KEY_UID: Final[str] = "uid"
KEY_PATH: Final[str] = "path"
KEY_AS_NATIVE: Final[str] = "asSpark"

# BUNDLE LAYOUT
BUNDLE_MANIFEST: Final[str] = "bundle.json"
BUNDLE_ROOT_DIR: Final[str] = "root"
BUNDLE_NODE_FILE: Final[str] = "node.json"
BUNDLE_STATE_FILE: Final[str] = "state_dict.pt"
BUNDLE_GRAPH_FILE: Final[str] = "model.onnx"
BUNDLE_VERSION: Final[str] = "1"

# NATIVE LAYOUT
NATIVE_METADATA_FILE: Final[str] = "metadata.json"
NATIVE_STATE_FILE: Final[str] = "state_dict.pt"


# PATH HELPERS
def stage_path(root: str | Path, uid: str) -> Path:
    """
    Location of a stage archive under a save root.

    Args:
        root: Directory under which the parameter's stages are written.
        uid: Stage unique identifier.

    Returns:
        ``root / uid`` as a Path (not resolved).
    """
    return Path(root) / uid
