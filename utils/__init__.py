"""
Utility modules for the intake portal.
"""

from .formatting import format_file_size
from .config import Config
from .log import configure_logging

__all__ = ["format_file_size", "Config", "configure_logging"]
