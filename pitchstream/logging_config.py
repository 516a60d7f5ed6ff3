"""Centralized logging configuration for pitchstream.

Levels are assigned per package prefix; every logger under a prefix inherits
the level and the shared console handler through normal propagation.
"""

import logging
import sys
from typing import Optional

# Log levels for different parts of the package
MODULE_LOG_LEVELS = {
    "pitchstream": logging.INFO,
    # Real-time path: keep quiet unless debugging
    "pitchstream.audio": logging.INFO,
    "pitchstream.sinks": logging.INFO,
    "pitchstream.services": logging.INFO,
    "pitchstream.core": logging.INFO,
    "pitchstream.cli": logging.INFO,
    # Libraries/third-party
    "sounddevice": logging.WARNING,
    "soundfile": logging.WARNING,
}

# Shared console handler
_console_handler: Optional[logging.Handler] = None


def setup_logging(level: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'pitchstream' log levels with this level (e.g., "DEBUG").
    """
    global _console_handler

    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        _console_handler.setFormatter(formatter)

    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            for module_name in log_levels:
                if module_name.startswith("pitchstream"):
                    log_levels[module_name] = numeric_level
        else:
            logging.getLogger(__name__).error(f"Invalid log level: {level}")

    # Only the top-level package logger owns the handler; children propagate to it
    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

    root_logger = logging.getLogger("pitchstream")
    root_logger.addHandler(_console_handler)
    root_logger.propagate = False

    root_logger.debug("Logging configuration complete")
