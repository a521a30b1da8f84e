"""Simple logging utilities for cortex.

Standard Logger Initialization Pattern
--------------------------------------
For most modules, use the standard Python pattern:

    import logging
    logger = logging.getLogger(__name__)
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from cortex.config.constants import LOG_FILENAME
from cortex.config.settings import get_log_level

# Max log file size: 5MB, keep 2 backups
_MAX_LOG_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 2

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _log_dir() -> Path:
    # Inline path to avoid creating the config dir at import time
    log_dir = Path.home() / ".config" / "cortex"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def setup_cli_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """
    Configure the ``cortex`` logger for a CLI run.

    Everything goes to the rotating log file. With ``verbose`` the same
    records are echoed to stderr at DEBUG; ``quiet`` limits the file to
    errors.
    """
    cortex_logger = logging.getLogger("cortex")
    level = logging.DEBUG if verbose else get_log_level()
    if quiet:
        level = logging.ERROR
    cortex_logger.setLevel(level)

    if not any(isinstance(h, RotatingFileHandler) for h in cortex_logger.handlers):
        try:
            handler = RotatingFileHandler(
                _log_dir() / LOG_FILENAME,
                maxBytes=_MAX_LOG_BYTES,
                backupCount=_BACKUP_COUNT,
            )
            handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
            cortex_logger.addHandler(handler)
        except OSError as e:
            # Logging is what's failing, so report on stderr
            print(f"Warning: log file setup failed: {e}", file=sys.stderr)

    if verbose and not any(
        type(h) is logging.StreamHandler for h in cortex_logger.handlers
    ):
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        cortex_logger.addHandler(stream)

    return cortex_logger
