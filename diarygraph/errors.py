"""
Errors raised by the index, and error logging for the CLI.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


class InvalidTimestamp(ValueError):
    """An entry timestamp that cannot be placed on the calendar.

    This is the one indexing failure escalated to the caller: silently
    defaulting it would corrupt the timeline tree.
    """

    def __init__(self, timestamp: Any, reason: str = ""):
        self.timestamp = timestamp
        self.reason = reason
        msg = f"Invalid entry timestamp: {timestamp!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


def _error_log_path(home: Optional[Path] = None) -> Path:
    """Resolve error log path: the given home, else DIARYGRAPH_HOME, else ~/.diarygraph."""
    if home is None:
        home = os.environ.get("DIARYGRAPH_HOME")
    if home:
        return Path(home) / "diarygraph-errors.log"
    return Path.home() / ".diarygraph" / "diarygraph-errors.log"


def log_exception(exc: Exception, context: str = "", home: Optional[Path] = None) -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)
        home: Directory for the log (default: DIARYGRAPH_HOME or ~/.diarygraph)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path(home)
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path
