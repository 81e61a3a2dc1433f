"""
Stage Reference Descriptors.

The descriptor is the small JSON value stored in a params document in place
of the stage itself. Every historical shape must stay decodable:

1. Current:           {"className": "<fqcn>", "uid": "<uid>"}
2. Legacy-with-path:  {"className": ..., "uid": ..., "path": "<root>", "asSpark": <bool>}
3. Empty sentinel:    {"className": "", "uid": ""}

Shapes that only the legacy chain understands are handled by an ordered
tuple of matchers. Each matcher either claims a descriptor (returning an
outcome) or declines (returning None); new formats are prepended to
``LEGACY_MATCHERS`` and existing matchers are never edited.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Callable, NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from ..core.paths import (
    KEY_AS_NATIVE,
    KEY_CLASS_NAME,
    KEY_PATH,
    KEY_UID,
    KNOWN_BAD_LEGACY_CLASS,
    NO_CLASS,
    NO_UID,
    stage_path,
)
from ..exceptions import TrellisMalformedInputError


# DESCRIPTOR MODEL
class StageDescriptor(BaseModel):
    """
    Parsed descriptor. Fields absent from the JSON (or of the wrong JSON
    type) are None.

    Attributes:
        class_name: Fully-qualified class of the stage (``className``).
        uid: Stage uid; ``""`` is the empty sentinel.
        path: Save root recorded by metadata augmentation.
        as_native: ``asSpark`` flag; None when the descriptor omits it.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    class_name: str | None = Field(default=None, alias=KEY_CLASS_NAME)
    uid: str | None = Field(default=None, alias=KEY_UID)
    path: str | None = Field(default=None, alias=KEY_PATH)
    as_native: bool | None = Field(default=None, alias=KEY_AS_NATIVE)

    @classmethod
    def parse(cls, json_str: str) -> StageDescriptor:
        """
        Parse a descriptor JSON string.

        Raises:
            TrellisMalformedInputError: If the input is not a JSON object.
        """
        try:
            doc = json.loads(json_str)
        except (TypeError, json.JSONDecodeError) as e:
            raise TrellisMalformedInputError(f"Descriptor is not valid JSON: {json_str!r}") from e
        if not isinstance(doc, dict):
            raise TrellisMalformedInputError(f"Descriptor must be a JSON object, got: {json_str!r}")
        return cls.from_mapping(doc)

    @classmethod
    def from_mapping(cls, doc: dict[str, Any]) -> StageDescriptor:
        """Build from a decoded JSON object, ignoring values of the wrong type."""
        return cls(
            class_name=_typed(doc, KEY_CLASS_NAME, str),
            uid=_typed(doc, KEY_UID, str),
            path=_typed(doc, KEY_PATH, str),
            as_native=_typed(doc, KEY_AS_NATIVE, bool),
        )

    @property
    def is_empty(self) -> bool:
        return self.uid == NO_UID

    @property
    def archive_path(self) -> Path | None:
        """``path/uid`` when both are present."""
        if self.path is None or self.uid is None:
            return None
        return stage_path(self.path, self.uid)


def _typed(doc: dict[str, Any], key: str, kind: type) -> Any:
    value = doc.get(key)
    # bool is an int subclass; only exact JSON types count
    return value if type(value) is kind else None


# JSON BUILDERS
def stage_descriptor(class_name: str, uid: str) -> str:
    """Compact descriptor JSON with ``className`` before ``uid``."""
    return json.dumps({KEY_CLASS_NAME: class_name, KEY_UID: uid}, separators=(",", ":"))


def empty_descriptor() -> str:
    """The canonical descriptor of an empty parameter."""
    return stage_descriptor(NO_CLASS, NO_UID)


# LEGACY MATCHERS
class LegacyAction(str, Enum):
    ABSENT = "absent"
    LOAD = "load"


class LegacyOutcome(NamedTuple):
    action: LegacyAction
    archive_path: Path | None = None


ABSENT = LegacyOutcome(LegacyAction.ABSENT)

LegacyMatcher = Callable[[StageDescriptor], "LegacyOutcome | None"]


def _match_empty(d: StageDescriptor) -> LegacyOutcome | None:
    return ABSENT if d.is_empty else None


def _match_known_bad(d: StageDescriptor) -> LegacyOutcome | None:
    return ABSENT if d.class_name == KNOWN_BAD_LEGACY_CLASS else None


def _match_native_directory(d: StageDescriptor) -> LegacyOutcome | None:
    if d.archive_path is not None and d.as_native is True:
        return LegacyOutcome(LegacyAction.LOAD, d.archive_path)
    return None


# Priority order: first claim wins
LEGACY_MATCHERS: tuple[LegacyMatcher, ...] = (
    _match_empty,
    _match_known_bad,
    _match_native_directory,
)


def match_legacy(
    descriptor: StageDescriptor, matchers: tuple[LegacyMatcher, ...] = LEGACY_MATCHERS
) -> LegacyOutcome:
    """Outcome of the first matcher claiming *descriptor*, ABSENT if none does."""
    for matcher in matchers:
        outcome = matcher(descriptor)
        if outcome is not None:
            return outcome
    return ABSENT
