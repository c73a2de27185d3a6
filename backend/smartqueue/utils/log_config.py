"""
Logging configuration
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
HANDLER_NAME = "smartqueue"


def configure_logging(level: str = "INFO") -> None:
    """
    Attach a stdout handler with the standard format to the root logger.

    Safe to call more than once; the handler is only added the first time.

    Args:
        level: Logging level name, e.g. "DEBUG" or "INFO"
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if any(h.get_name() == HANDLER_NAME for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.set_name(HANDLER_NAME)
    root.addHandler(handler)
