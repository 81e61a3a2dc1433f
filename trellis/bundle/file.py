"""
Scoped Bundle Archives and Local Filesystem.

A bundle is a zip archive holding ``bundle.json`` (the manifest) and a
``root/`` node. :class:`BundleFile` is a context manager: the zip handle is
opened on entry and closed on every exit path, including exceptions raised
by the code writing or reading entries. A write that fails removes its
archive, and writing over a native stage directory replaces it.

Layout:
    <archive>
        bundle.json
        root/node.json
        root/state_dict.pt
        root/model.onnx      (only when a sample input was provided)
"""

from __future__ import annotations

import json
import logging
import shutil
import zipfile
from pathlib import Path
from typing import Any
from urllib.parse import urlparse
from urllib.request import url2pathname

from ..core.paths import BUNDLE_MANIFEST, LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


# FILESYSTEM
class LocalFileSystem:
    """Path qualification against the local filesystem."""

    def make_qualified(self, path: str | Path) -> Path:
        """Absolute, user-expanded form of *path* (no disk access beyond resolve)."""
        return to_local_path(path).expanduser().resolve()


def to_local_path(location: str | Path) -> Path:
    """
    Convert a path or ``file:`` URI to a Path.

    Raises:
        ValueError: If *location* is a URI with a non-file scheme.
    """
    if isinstance(location, Path):
        return location
    parsed = urlparse(location)
    if parsed.scheme == "file":
        return Path(url2pathname(parsed.path))
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ValueError(f"Unsupported bundle URI scheme {parsed.scheme!r}: {location}")
    return Path(location)


# BUNDLE ARCHIVE
class BundleFile:
    """
    Zip-backed bundle archive.

    Args:
        location: Archive path or ``file:`` URI.
        mode: ``"r"`` to read an existing bundle, ``"w"`` to create or truncate one.

    Example:
        >>> with BundleFile(archive.as_uri(), mode="w") as bundle:
        ...     bundle.write_json("bundle.json", manifest)
    """

    def __init__(self, location: str | Path, mode: str = "r") -> None:
        if mode not in ("r", "w"):
            raise ValueError(f"Bundle mode must be 'r' or 'w', got {mode!r}")
        self.path = to_local_path(location)
        self.mode = mode
        self._zip: zipfile.ZipFile | None = None

    def __enter__(self) -> BundleFile:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
        # a failed write must not leave a manifest-less archive behind
        if exc_type is not None and self.mode == "w" and self.path.is_file():
            self.path.unlink()
            logger.debug(f"Partial bundle removed → {self.path}")

    def open(self) -> None:
        if self.mode == "w":
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self.path.is_dir():
                shutil.rmtree(self.path)
        self._zip = zipfile.ZipFile(self.path, self.mode, compression=zipfile.ZIP_DEFLATED)
        logger.debug(f"Bundle opened ({self.mode}) → {self.path}")

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    @property
    def closed(self) -> bool:
        return self._zip is None

    def _handle(self) -> zipfile.ZipFile:
        if self._zip is None:
            raise ValueError(f"Bundle {self.path} is not open")
        return self._zip

    # ENTRIES
    def names(self) -> list[str]:
        return self._handle().namelist()

    def has(self, name: str) -> bool:
        return name in self.names()

    def write_bytes(self, name: str, data: bytes) -> None:
        self._handle().writestr(name, data)

    def read_bytes(self, name: str) -> bytes:
        """
        Raises:
            KeyError: If the entry does not exist.
        """
        return self._handle().read(name)

    def write_json(self, name: str, payload: Any) -> None:
        self.write_bytes(name, json.dumps(payload, indent=2).encode("utf-8"))

    def read_json(self, name: str) -> Any:
        return json.loads(self.read_bytes(name).decode("utf-8"))

    @classmethod
    def exists(cls, location: str | Path) -> bool:
        """
        True when a file sits at *location*, whatever its content.

        Directories are native stage layouts and do not count.
        """
        return to_local_path(location).is_file()

    @classmethod
    def is_bundle(cls, location: str | Path) -> bool:
        """True when *location* is a zip archive containing a bundle manifest."""
        path = to_local_path(location)
        if not path.is_file() or not zipfile.is_zipfile(path):
            return False
        with zipfile.ZipFile(path) as zf:
            return BUNDLE_MANIFEST in zf.namelist()
