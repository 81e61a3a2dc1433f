"""
Configuration and Metadata Persistence.

YAML for bundle configuration recipes, JSON for params metadata documents
(the keyed objects that hold stage descriptors). Writes are flushed and
fsynced so that a descriptor never points at a half-written document.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from ..paths import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


# YAML
def save_config_as_yaml(data: Any, yaml_path: Path) -> Path:
    """
    Serialize a configuration object to YAML.

    Args:
        data: Pydantic model (anything with ``model_dump``) or plain mapping.
        yaml_path: Destination path. Parent directories are created.

    Returns:
        The path written.

    Raises:
        ValueError: If the object cannot be converted to plain data.
        OSError: If the file cannot be written.
    """
    try:
        if hasattr(data, "model_dump"):
            raw = data.model_dump(mode="json")
        else:
            raw = data
        final_data = _sanitize(raw)
    except Exception as e:
        logger.error(f"Serialization failed: object structure is incompatible. Error: {e}")
        raise ValueError(f"Could not serialize configuration object: {e}") from e

    try:
        _persist_atomic(
            yaml_path,
            lambda f: yaml.dump(
                final_data, f, default_flow_style=False, sort_keys=False, indent=4, allow_unicode=True
            ),
        )
    except OSError as e:
        logger.error(f"IO Error: Could not write YAML to {yaml_path}. Error: {e}")
        raise

    logger.debug(f"Configuration written → {yaml_path.name}")
    return yaml_path


def load_config_from_yaml(yaml_path: Path) -> Any:
    """
    Load a raw configuration document from YAML.

    Raises:
        FileNotFoundError: If the path does not exist.
    """
    if not yaml_path.exists():
        raise FileNotFoundError(f"YAML configuration file not found at: {yaml_path}")

    with open(yaml_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


# JSON
def load_params_metadata(json_path: Path) -> Any:
    """
    Load a params metadata document.

    Raises:
        FileNotFoundError: If the path does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    if not json_path.exists():
        raise FileNotFoundError(f"Params metadata not found at: {json_path}")

    with open(json_path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_params_metadata(doc: Any, json_path: Path) -> Path:
    """Write a params metadata document as indented JSON and return its path."""
    _persist_atomic(json_path, lambda f: json.dump(doc, f, indent=2, ensure_ascii=False))
    logger.debug(f"Params metadata written → {json_path.name}")
    return json_path


def _sanitize(obj: Any) -> Any:
    """Recursively convert Path objects and tuples into YAML-friendly values."""
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize(i) for i in obj]
    if isinstance(obj, Path):
        return str(obj)
    return obj


def _persist_atomic(path: Path, dump) -> None:
    """Create parent directories, run *dump* on the open file and fsync it."""
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        dump(f)
        f.flush()
        os.fsync(f.fileno())
