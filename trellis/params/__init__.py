"""
Stage Parameter Package.

- ``StageParam``: parameter codec that stores a stage out-of-band and
  exposes only a JSON descriptor to the params serializer.
- Descriptor parsing and the ordered legacy matchers.
- Params metadata augmentation (``path`` / ``asSpark`` injection).
"""

from .descriptor import (
    LEGACY_MATCHERS,
    LegacyAction,
    LegacyOutcome,
    StageDescriptor,
    empty_descriptor,
    match_legacy,
    stage_descriptor,
)
from .metadata import get_stage_descriptor, set_stage_descriptor, update_params_metadata_with_path
from .stage_param import DecodedStage, Param, ParamPair, StageParam, StageParamSession

__all__ = [
    # Codec
    "Param",
    "ParamPair",
    "StageParam",
    "StageParamSession",
    "DecodedStage",
    # Descriptors
    "StageDescriptor",
    "LegacyAction",
    "LegacyOutcome",
    "LEGACY_MATCHERS",
    "match_legacy",
    "stage_descriptor",
    "empty_descriptor",
    # Metadata
    "update_params_metadata_with_path",
    "get_stage_descriptor",
    "set_stage_descriptor",
]
