"""
Pipeline Stages Package.

- ``PipelineStage``: torch module with a stable uid and native read/write.
- ``ClassResolver``: reflection service turning recorded class names back
  into stage classes and their readers.
"""

from .base import (
    PipelineStage,
    StageReader,
    StageWriter,
    build_stage_metadata,
    qualified_class_name,
    random_uid,
    read_native_metadata,
    rebuild_stage,
)
from .reflection import ClassResolver, default_resolver

__all__ = [
    "PipelineStage",
    "StageReader",
    "StageWriter",
    "build_stage_metadata",
    "qualified_class_name",
    "random_uid",
    "read_native_metadata",
    "rebuild_stage",
    "ClassResolver",
    "default_resolver",
]
