"""Console logging setup."""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Handler installed by the last setup_logging() call
_console_handler: Optional[logging.Handler] = None


def setup_logging(level: str = "INFO") -> logging.Handler:
    """Send all log records at `level` and above to stdout."""
    global _console_handler

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    if _console_handler is not None:
        root_logger.removeHandler(_console_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)
    _console_handler = console_handler
    return console_handler
