"""
Logging setup shared by the parsers, sources, clients and the CLI.

Logs go to stderr so the CLI can keep stdout for JSON results.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once, at program start."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    logging.getLogger(__name__).debug("Logging initialized with level %s", level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
