"""
Configuration Package.

Pydantic schemas and semantic types for bundle serialization settings.
"""

from .bundle_config import BundleConfig
from .types import LogLevel, OpsetVersion, SerializationFormat, ValidatedPath

__all__ = [
    "BundleConfig",
    "LogLevel",
    "OpsetVersion",
    "SerializationFormat",
    "ValidatedPath",
]
