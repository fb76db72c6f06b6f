"""
Logging configuration for the FireFed projection engine.

Library modules only create named loggers; the command-line entry point calls
setup_logging() once to attach handlers.
"""

import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOGGING_CONFIGURED = False


def setup_logging(debug=False, log_file=None):
    """
    Configure root logging.

    Args:
        debug: If True, the root logger and console emit DEBUG messages.
        log_file: Optional path for a rotating log file receiving INFO+ messages.
    """
    global _LOGGING_CONFIGURED

    if _LOGGING_CONFIGURED:
        return

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if debug else logging.WARNING)
    console.setFormatter(logging.Formatter("%(levelname)-8s %(message)s"))
    root_logger.addHandler(console)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_path,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding='utf-8',
            mode='a'
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root_logger.addHandler(file_handler)

    _LOGGING_CONFIGURED = True


def reset_logging():
    """Forget previous configuration so setup_logging() can run again."""
    global _LOGGING_CONFIGURED
    _LOGGING_CONFIGURED = False
