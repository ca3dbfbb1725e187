"""Logger configuration for baykit.

User-facing output goes through the rich console in ``cli``; this logger
carries diagnostics to stderr and stays at WARNING unless asked otherwise.
"""

import os
import sys

from loguru import logger

_configured_level: str | None = None


def setup_logging(level: str | None = None) -> None:
    """Configure the global logger with a single stderr sink.

    Args:
        level: Logging level. Defaults to the BAYKIT_LOG_LEVEL environment
            variable, then WARNING.
    """
    global _configured_level

    level = (level or os.getenv("BAYKIT_LOG_LEVEL") or "WARNING").upper()
    if level == _configured_level:
        return
    _configured_level = level

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        colorize=True,
    )


# Configure on import so the default DEBUG sink never reaches the console
setup_logging()

__all__ = ["logger", "setup_logging"]
