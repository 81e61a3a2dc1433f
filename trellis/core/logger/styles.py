"""
Logging style constants.

Symbols and separators shared by every module that writes to the Trellis logger.
"""

from __future__ import annotations

import logging


class LogStyle:
    """Shared symbols for codec and CLI log lines."""

    HEADER_WIDTH = 72

    # Section separators
    HEAVY = "━" * HEADER_WIDTH
    LIGHT = "─" * HEADER_WIDTH

    # Symbols
    ARROW = "»"
    BULLET = "•"
    WARNING = "⚠"
    SUCCESS = "✓"
    FAILURE = "✗"

    INDENT = "  "

    # ANSI colors (console only, applied by ColorFormatter)
    RESET = "\033[0m"
    DIM = "\033[2m"
    BOLD = "\033[1m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"

    @staticmethod
    def log_section(log: logging.Logger, title: str) -> None:
        """
        Log a centered section title between light separators.

        Args:
            log: Logger instance to write to.
            title: Section text (centered as given).
        """
        log.info(LogStyle.LIGHT)
        log.info(f"{title:^{LogStyle.HEADER_WIDTH}}")
        log.info(LogStyle.LIGHT)
