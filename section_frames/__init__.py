"""
section_frames: reference frames, section views and alignment for
building-model entities.

Command line entry point: section_frames.cli (also main.py).
"""

from section_frames.logging_config import (
    setup_logging,
    get_logger,
    configure_default_logging,
    log_timing,
    timed,
    LogContext,
)

__version__ = "0.3.0"

__all__ = [
    "setup_logging",
    "get_logger",
    "configure_default_logging",
    "log_timing",
    "timed",
    "LogContext",
]
