"""
Logging Package.

- Logger: handler configuration for the shared Trellis logger.
- LogStyle: shared symbols and separators.
"""

from .logger import ColorFormatter, Logger
from .styles import LogStyle

__all__ = ["Logger", "LogStyle", "ColorFormatter"]
