"""Logging configuration for ytsubs.

Verbose output tags every line with the video being resolved, so attempts
from the strategy chain can be matched to a lookup:

    12:00:01 | DEBUG   | dQw4w9WgXcQ | Library fetch for dQw4w9WgXcQ (any language)
"""

import sys

from loguru import logger

NO_VIDEO = "-"

_info_format = "<level>{level: <7}</level> | {message}"
_debug_format = (
    "<dim>{time:HH:mm:ss}</dim> | <level>{level: <7}</level> | "
    "<cyan>{extra[video_id]}</cyan> | {message}"
)

# Remove default handler
logger.remove()
logger.configure(extra={"video_id": NO_VIDEO})


def configure_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity.

    Args:
        verbose: If True, show DEBUG level (every attempted option) with
            timestamps and the current video ID. If False, show INFO and above.
    """
    logger.remove()
    if verbose:
        logger.add(sys.stderr, format=_debug_format, level="DEBUG")
    else:
        logger.add(sys.stderr, format=_info_format, level="INFO")


__all__ = ["NO_VIDEO", "configure_logging", "logger"]
