"""
Root logger configuration for the command-line entry point.
"""

import logging
import sys
from typing import List, Optional

from core.models.config import GlobalSettings, Verbosity

VERBOSITY_LEVELS = {
    Verbosity.SILENT: logging.WARNING,
    Verbosity.NORMAL: logging.INFO,
    Verbosity.VERBOSE: logging.DEBUG,
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(settings: GlobalSettings, verbosity: Optional[Verbosity] = None) -> int:
    """Hook verbosity wins over the global log level when given"""
    if verbosity is not None:
        return VERBOSITY_LEVELS[verbosity]
    return getattr(logging, settings.log_level.upper(), logging.INFO)


def configure_logging(
    settings: Optional[GlobalSettings] = None,
    verbosity: Optional[Verbosity] = None
) -> int:
    """
    Configure the root logger on stderr, plus a log file when the global
    settings enable one.

    Returns:
        The level applied
    """
    settings = settings or GlobalSettings()
    level = resolve_level(settings, verbosity)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = settings.get_log_file()
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    return level
