"""
Pipeline Stage Base and Native Read/Write.

A pipeline stage is a ``torch.nn.Module`` with a stable ``uid``. Stages
persist natively as a directory holding ``metadata.json`` (class, uid,
constructor config) and ``state_dict.pt`` (weights). The directory is read
back through ``cls.read().load(path)``, the reader protocol the legacy
reflection path relies on.

Layout:
    <path>/
        metadata.json
        state_dict.pt
"""

from __future__ import annotations

import json
import logging
import shutil
import uuid
from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version
from pathlib import Path
from typing import Any, ClassVar

import torch
import torch.nn as nn

from ..core.paths import LOGGER_NAME, NATIVE_METADATA_FILE, NATIVE_STATE_FILE
from ..exceptions import TrellisLoadError

logger = logging.getLogger(LOGGER_NAME)


def random_uid(prefix: str) -> str:
    """Return ``<prefix>_<12 hex chars>``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def library_version() -> str:
    """Installed trellis-ml version, or ``"unknown"`` when running from a checkout."""
    try:
        return _pkg_version("trellis-ml")
    except PackageNotFoundError:
        return "unknown"


def qualified_class_name(obj_or_cls: Any) -> str:
    """Fully-qualified ``module.QualName`` of an instance or class."""
    cls = obj_or_cls if isinstance(obj_or_cls, type) else type(obj_or_cls)
    return f"{cls.__module__}.{cls.__qualname__}"


# STAGE BASE
class PipelineStage(nn.Module):
    """
    Base class for serializable pipeline stages.

    Subclasses accept ``uid`` as a keyword argument, forward it to this
    constructor, and return every other constructor argument from
    :meth:`get_config` so the stage can be rebuilt before weights are loaded.

    Attributes:
        uid: Stable identifier, also the archive name under a save root.
        bundle_op: Portable runtime op used to serve this stage from a bundle.
    """

    bundle_op: ClassVar[str] = "torch_module"

    def __init__(self, uid: str | None = None) -> None:
        super().__init__()
        self.uid = uid or random_uid(type(self).__name__.lower())

    def get_config(self) -> dict[str, Any]:
        """Constructor keyword arguments, excluding ``uid``."""
        return {}

    def write(self) -> StageWriter:
        return StageWriter(self)

    @classmethod
    def read(cls) -> StageReader:
        return StageReader(cls)

    def extra_repr(self) -> str:
        return f"uid={self.uid!r}"


def build_stage_metadata(stage: PipelineStage) -> dict[str, Any]:
    """Metadata record shared by the native directory and bundle nodes."""
    return {
        "class": qualified_class_name(stage),
        "uid": stage.uid,
        "config": stage.get_config(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "trellis_version": library_version(),
    }


def rebuild_stage(cls: type[PipelineStage], metadata: dict[str, Any], state_dict: dict) -> PipelineStage:
    """
    Instantiate *cls* from a metadata record and load its weights.

    Raises:
        TrellisLoadError: If the record names another class or the weights
            do not fit the rebuilt module.
    """
    recorded = metadata.get("class")
    expected = qualified_class_name(cls)
    if recorded != expected:
        raise TrellisLoadError(f"Stage metadata records class {recorded!r}, expected {expected!r}")

    stage = cls(uid=metadata["uid"], **metadata.get("config", {}))
    try:
        stage.load_state_dict(state_dict)
    except RuntimeError as e:
        raise TrellisLoadError(f"Weights do not match stage '{metadata['uid']}': {e}") from e
    stage.eval()
    return stage


# NATIVE WRITER / READER
class StageWriter:
    """Writes a stage into a native directory."""

    def __init__(self, stage: PipelineStage) -> None:
        self.stage = stage

    def save(self, path: str | Path, overwrite: bool = True) -> Path:
        """
        Persist the stage at *path*.

        Args:
            path: Target directory (created, including parents).
            overwrite: Replace an existing directory or file at *path*.

        Returns:
            The directory written.

        Raises:
            FileExistsError: If *path* exists and overwrite is False.
        """
        target = Path(path)
        if target.exists():
            if not overwrite:
                raise FileExistsError(f"Stage path already exists: {target}")
            if target.is_dir():
                shutil.rmtree(target)
            else:
                target.unlink()

        target.mkdir(parents=True)
        metadata = build_stage_metadata(self.stage)
        (target / NATIVE_METADATA_FILE).write_text(json.dumps(metadata, indent=2), encoding="utf-8")
        torch.save(self.stage.state_dict(), target / NATIVE_STATE_FILE)

        logger.debug(f"Native stage '{self.stage.uid}' written → {target}")
        return target


class StageReader:
    """Loads native directories written by :class:`StageWriter` for one class."""

    def __init__(self, cls: type[PipelineStage]) -> None:
        self.cls = cls

    def load(self, path: str | Path) -> PipelineStage:
        """
        Rebuild a stage from a native directory.

        Raises:
            FileNotFoundError: If the metadata or weights file is missing.
            TrellisLoadError: If the directory holds another class.
        """
        source = Path(path)
        metadata = read_native_metadata(source)
        state_path = source / NATIVE_STATE_FILE
        if not state_path.exists():
            raise FileNotFoundError(f"Stage weights not found at: {state_path}")

        # weights_only=True refuses pickled code in third-party archives
        state_dict = torch.load(state_path, map_location="cpu", weights_only=True)
        return rebuild_stage(self.cls, metadata, state_dict)


def read_native_metadata(path: str | Path) -> dict[str, Any]:
    """
    Read ``metadata.json`` from a native stage directory.

    Raises:
        FileNotFoundError: If the metadata file does not exist.
    """
    meta_path = Path(path) / NATIVE_METADATA_FILE
    if not meta_path.exists():
        raise FileNotFoundError(f"Stage metadata not found at: {meta_path}")
    return json.loads(meta_path.read_text(encoding="utf-8"))
