"""
Input/Output Utilities.

YAML configuration recipes and JSON params metadata documents.
"""

from .serialization import (
    load_config_from_yaml,
    load_params_metadata,
    save_config_as_yaml,
    save_params_metadata,
)

__all__ = [
    "save_config_as_yaml",
    "load_config_from_yaml",
    "load_params_metadata",
    "save_params_metadata",
]
