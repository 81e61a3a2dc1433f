"""
Logging Management Module.

Configures the shared ``Trellis`` logger. Library code only ever calls
``logging.getLogger(LOGGER_NAME)``; applications (and the ``trellis`` CLI)
call :meth:`Logger.setup` once to attach handlers, optionally adding a
rotating log file next to the stage archives they manage.

Key Features:
    - Idempotent configuration: repeated construction never duplicates handlers
    - Reconfiguration: passing a log_dir swaps in console + rotating file output
    - ``DEBUG=1`` environment override for troubleshooting archive I/O
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final

from ..paths import LOGGER_NAME
from .styles import LogStyle

_SEPARATOR_CHARS = {"━", "─"}


class ColorFormatter(logging.Formatter):
    """Formatter that colors the level name and status lines on a TTY.

    - WARNING/ERROR/CRITICAL: yellow/red level prefix
    - Lines containing ✓: green
    - Separator lines: dim
    """

    _LEVEL_COLORS = {
        logging.WARNING: LogStyle.YELLOW,
        logging.ERROR: LogStyle.RED,
        logging.CRITICAL: LogStyle.RED + LogStyle.BOLD,
    }

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        msg = record.getMessage()

        level_color = self._LEVEL_COLORS.get(record.levelno)
        if level_color:
            formatted = formatted.replace(
                record.levelname,
                f"{level_color}{record.levelname}{LogStyle.RESET}",
                1,
            )

        if record.levelno == logging.INFO:
            stripped = msg.strip()
            if stripped and all(c in _SEPARATOR_CHARS for c in stripped):
                return self._color_message_only(formatted, msg, LogStyle.DIM)
            if LogStyle.SUCCESS in msg:
                return self._color_message_only(formatted, msg, LogStyle.GREEN)

        return formatted

    def _color_message_only(self, formatted: str, msg: str, color: str) -> str:
        """Apply *color* to the message portion of *formatted* only."""
        idx = formatted.find(msg)
        if idx == -1:
            return formatted
        return f"{formatted[:idx]}{color}{formatted[idx:]}{LogStyle.RESET}"


# LOGGER CLASS
class Logger:
    """
    Owns handler configuration for a named logger.

    Class-level tracking in ``_configured_names`` makes construction
    idempotent: a second ``Logger(name)`` without a log_dir reuses the
    existing handlers, while passing a log_dir reconfigures the logger with
    console and rotating-file output.

    Attributes:
        name: Logger identifier (usually LOGGER_NAME).
        log_dir: Directory for the rotating log file (None = console only).
        log_to_file: Whether a file handler is attached.
        level: Numeric logging level.
        max_bytes: Rotation threshold for the log file.
        backup_count: Number of rotated files kept.

    Example:
        >>> log = Logger.setup(name=LOGGER_NAME, log_dir=Path("./models/logs"))
        >>> log.info("Bundle written")
    """

    _configured_names: Final[dict[str, bool]] = {}
    _active_log_file: Path | None = None

    def __init__(
        self,
        name: str = LOGGER_NAME,
        log_dir: Path | None = None,
        log_to_file: bool = True,
        level: int = logging.INFO,
        max_bytes: int = 5 * 1024 * 1024,
        backup_count: int = 5,
    ) -> None:
        self.name = name
        self.log_dir = log_dir
        self.log_to_file = log_to_file and (log_dir is not None)
        self.level = level
        self.max_bytes = max_bytes
        self.backup_count = backup_count

        self._log = logging.getLogger(name)

        if name not in Logger._configured_names or log_dir is not None:
            self._setup_logger()
            Logger._configured_names[name] = True

    def _setup_logger(self) -> None:
        """Replace existing handlers with console (and optional file) output."""
        fmt_str = "%(asctime)s - %(levelname)s - %(message)s"
        datefmt = "%Y-%m-%d %H:%M:%S"
        plain_formatter = logging.Formatter(fmt_str, datefmt)

        self._log.setLevel(self.level)
        self._log.propagate = False

        for handler in self._log.handlers[:]:
            handler.close()
            self._log.removeHandler(handler)

        console_h = logging.StreamHandler(sys.stdout)
        if sys.stdout.isatty():
            console_h.setFormatter(ColorFormatter(fmt_str, datefmt))
        else:
            console_h.setFormatter(plain_formatter)
        self._log.addHandler(console_h)

        if self.log_to_file and self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
            filename = self.log_dir / f"{self.name}_{timestamp}.log"

            file_h = RotatingFileHandler(
                filename, maxBytes=self.max_bytes, backupCount=self.backup_count, encoding="utf-8"
            )
            file_h.setFormatter(plain_formatter)
            self._log.addHandler(file_h)

            Logger._active_log_file = filename

    def get_logger(self) -> logging.Logger:
        """Return the underlying ``logging.Logger``."""
        return self._log

    @classmethod
    def get_log_file(cls) -> Path | None:
        """Path of the active rotating log file, or None when logging to console only."""
        return cls._active_log_file

    @classmethod
    def setup(
        cls, name: str = LOGGER_NAME, log_dir: Path | None = None, level: str = "INFO", **kwargs
    ) -> logging.Logger:
        """
        Configure a logger from a level name.

        Args:
            name: Logger identifier.
            log_dir: Directory for log files (None = console only).
            level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            **kwargs: Forwarded to the Logger constructor.

        Returns:
            The configured ``logging.Logger``.

        Environment Variables:
            DEBUG: "1" forces DEBUG level regardless of ``level``.
        """
        if os.getenv("DEBUG") == "1":
            numeric_level = logging.DEBUG
        else:
            numeric_level = getattr(logging, level.upper(), logging.INFO)

        return cls(name=name, log_dir=log_dir, level=numeric_level, **kwargs).get_logger()
