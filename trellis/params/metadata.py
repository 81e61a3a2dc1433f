"""
Params Metadata Augmentation.

A pipeline's params metadata is a JSON object keyed by parameter name. When
a pipeline is saved, the entry holding the stage descriptor is augmented
with the save root (``path``) and the ``asSpark`` flag so that a later
decode can find the archive. Every other entry is passed through
untouched: as the same object for mapping documents, byte for byte for
JSON text.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

from ..core.paths import KEY_AS_NATIVE, KEY_PATH, STAGE_PARAM_NAME
from ..exceptions import TrellisMalformedInputError

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_DECODER = json.JSONDecoder()


def update_params_metadata_with_path(
    metadata: Mapping[str, Any] | str,
    path: str,
    as_native: bool,
    param_name: str = STAGE_PARAM_NAME,
) -> dict[str, Any] | str:
    """
    Merge ``{"path": path, "asSpark": as_native}`` into one params entry.

    Args:
        metadata: Params document, as a mapping or a JSON string.
        path: Save root under which the stage archive was written.
        as_native: Whether the stage should be reloaded as a native stage.
        param_name: Key of the stage parameter in the document.

    Returns:
        A new document of the same kind as *metadata*. Entries other than
        *param_name* are the original objects (dict input) or the original
        bytes of the document (JSON string input, where only the stage
        entry's text is replaced).

    Raises:
        TrellisMalformedInputError: If the document is not a JSON object, or
            the stage entry is neither an object nor a JSON-encoded object.
    """
    as_text = isinstance(metadata, str)
    doc = _load_object(metadata) if as_text else metadata
    if not isinstance(doc, Mapping):
        raise TrellisMalformedInputError(f"Cannot recognize params metadata: {metadata!r}")

    if as_text:
        if param_name not in doc:
            return metadata
        entry = json.dumps(
            _merge_entry(doc[param_name], path, as_native), separators=(",", ":"), ensure_ascii=False
        )
        return _splice_entry(metadata, param_name, entry)

    return {
        key: _merge_entry(value, path, as_native) if key == param_name else value
        for key, value in doc.items()
    }


def get_stage_descriptor(
    metadata: Mapping[str, Any] | str, param_name: str = STAGE_PARAM_NAME
) -> str | None:
    """
    Descriptor JSON stored under *param_name*, or None when the key is absent.

    Raises:
        TrellisMalformedInputError: If the document is not a JSON object.
    """
    doc = _load_object(metadata) if isinstance(metadata, str) else metadata
    if not isinstance(doc, Mapping):
        raise TrellisMalformedInputError(f"Cannot recognize params metadata: {metadata!r}")
    if param_name not in doc:
        return None
    entry = doc[param_name]
    return entry if isinstance(entry, str) else json.dumps(entry, separators=(",", ":"))


def set_stage_descriptor(
    metadata: Mapping[str, Any], descriptor: str, param_name: str = STAGE_PARAM_NAME
) -> dict[str, Any]:
    """Return a copy of *metadata* with the decoded *descriptor* under *param_name*."""
    return {**metadata, param_name: _load_object(descriptor)}


def _load_object(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise TrellisMalformedInputError(f"Cannot recognize params metadata: {text!r}") from e


def _merge_entry(entry: Any, path: str, as_native: bool) -> Any:
    extra = {KEY_PATH: path, KEY_AS_NATIVE: as_native}
    if isinstance(entry, Mapping):
        return {**entry, **extra}
    if isinstance(entry, str):
        decoded = _load_object(entry)
        if isinstance(decoded, dict):
            return json.dumps({**decoded, **extra}, separators=(",", ":"), ensure_ascii=False)
    raise TrellisMalformedInputError(f"Stage params entry is not an object: {entry!r}")


def _splice_entry(text: str, key: str, replacement: str) -> str:
    """Replace the value text of every top-level *key* in a valid JSON object."""
    spans = []
    idx = _skip(text, _skip(text, 0) + 1)
    while text[idx] != "}":
        name, idx = _DECODER.raw_decode(text, idx)
        start = _skip(text, _skip(text, idx) + 1)
        _, end = _DECODER.raw_decode(text, start)
        if name == key:
            spans.append((start, end))
        idx = _skip(text, end)
        if text[idx] == ",":
            idx = _skip(text, idx + 1)

    for start, end in reversed(spans):
        text = text[:start] + replacement + text[end:]
    return text


def _skip(text: str, idx: int) -> int:
    return _WHITESPACE.match(text, idx).end()
