"""
Logging configuration for diarygraph.

Quiet by default: only warnings from the indexer reach stderr.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging to suppress verbose output.

    Args:
        quiet: If True, show only warnings and errors. If False, show info.
    """
    level = logging.WARNING if quiet else logging.INFO
    if quiet:
        warnings.filterwarnings("ignore", category=DeprecationWarning)

    logger = logging.getLogger("diarygraph")
    logger.setLevel(level)
    console = [h for h in logger.handlers
               if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)]
    if not console:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        logger.addHandler(handler)
        console = [handler]
    for h in console:
        h.setLevel(level)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logger = logging.getLogger("diarygraph")
    logger.setLevel(logging.DEBUG)
    # Let records reach the root handler only
    for h in list(logger.handlers):
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            logger.removeHandler(h)


def configure_ops_log(home):
    """Configure a persistent operations log in the diarygraph home.

    Writes to {home}/diarygraph-ops.log using a rotating file handler
    (1MB max, 3 backups). Returns the handler so it can be removed.
    """
    log_path = Path(home) / "diarygraph-ops.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger("diarygraph")
    for existing in logger.handlers:
        if isinstance(existing, RotatingFileHandler) and existing.baseFilename == str(log_path.resolve()):
            return existing

    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    logger = logging.getLogger("diarygraph")
    logger.addHandler(handler)
    # Ensure the logger allows INFO through even in quiet mode
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)

    return handler
