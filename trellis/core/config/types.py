"""
Semantic Type Definitions.

Annotated pydantic types shared by the configuration schemas. Validation
happens at schema construction so that bad values never reach the
serialization backends.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import AfterValidator, Field, PlainSerializer


# VALIDATORS
def _sanitize_path(v: str | Path) -> Path:
    """
    Resolve a path to absolute form without touching the disk.

    Args:
        v: Path object or string to sanitize

    Returns:
        Absolute Path with home directory expanded
    """
    return Path(v).expanduser().resolve()


# FILESYSTEM
ValidatedPath = Annotated[
    Path,
    AfterValidator(_sanitize_path),
    PlainSerializer(lambda v: str(v), when_used="json", return_type=str),
]

# BUNDLES
OpsetVersion = Annotated[int, Field(ge=7, le=23)]
SerializationFormat = Literal["json"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
