"""
Bundle Configuration Schema.

Pydantic v2 schema for the portable bundle writer: manifest format, ONNX
graph export settings, and the default native/portable flag that the
metadata augmentation records for descriptors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ...exceptions import TrellisConfigError
from ..io import load_config_from_yaml
from .types import LogLevel, OpsetVersion, SerializationFormat, ValidatedPath


# BUNDLE CONFIGURATION
class BundleConfig(BaseModel):
    """
    Portable bundle settings.

    Attributes:
        format: Manifest serialization format (only 'json' supported).
        opset_version: ONNX opset used when a graph is exported into the bundle.
        dynamic_axes: Export the graph with a dynamic batch dimension.
        do_constant_folding: Fold constant operations at export time.
        default_as_native: Flag recorded as ``asSpark`` when augmenting metadata
            without an explicit choice.
        log_level: Level used by the CLI when configuring the logger.
        log_dir: Directory for the CLI's rotating log file (None = console only).

    Example:
        >>> cfg = BundleConfig(opset_version=17)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # ==================== Manifest ====================
    format: SerializationFormat = Field(
        default="json", description="Bundle manifest format (only JSON supported)"
    )

    # ==================== ONNX Graph ====================
    opset_version: OpsetVersion = Field(
        default=17, description="ONNX opset version for graphs embedded in bundles"
    )

    dynamic_axes: bool = Field(
        default=True, description="Export graphs with a dynamic batch dimension"
    )

    do_constant_folding: bool = Field(
        default=True, description="Optimize constant operations at export time"
    )

    # ==================== Descriptors ====================
    default_as_native: bool = Field(
        default=True, description="Default asSpark flag written by metadata augmentation"
    )

    # ==================== Telemetry ====================
    log_level: LogLevel = Field(default="INFO", description="CLI logging level")

    log_dir: ValidatedPath | None = Field(
        default=None, description="Directory for CLI log files (console only when unset)"
    )

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> BundleConfig:
        """
        Build a config from a YAML file.

        The file may hold the fields at top level or nested under a
        ``bundle:`` key.

        Raises:
            FileNotFoundError: If the file does not exist.
            TrellisConfigError: If the YAML document is not a mapping.
        """
        raw: Any = load_config_from_yaml(yaml_path)
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise TrellisConfigError(f"Bundle config must be a mapping, got {type(raw).__name__}")
        section = raw.get("bundle", raw)
        return cls(**section)
