"""
Utilities package for rowmapper.

Exports shared helpers for logging and timing.
Keep this package lightweight and free of mapping logic.
"""

from rowmapper.utils.logging import configure_logging, get_logger
from rowmapper.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
