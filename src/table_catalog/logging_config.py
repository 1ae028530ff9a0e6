"""
Logging setup for table-catalog.

All modules log under the ``table_catalog`` logger tree. ``setup_logging``
attaches a single stdout handler to that tree:

- level comes from the argument, else ``LOG_LEVEL``, else INFO
- ``LOG_FORMAT=detailed`` (or ``format_detailed=True``) adds timestamps and
  logger names; the default is ``LEVEL: message``
- records do not propagate to the root logger

INFO reports what each pipeline step produced (rows parsed, tables matched,
files written); WARNING flags recoverable input problems such as field-count
mismatches or stale option caches; DEBUG traces per-row decisions.
"""

import logging
import os
import sys
from typing import Optional

PACKAGE_LOGGER = "table_catalog"


def setup_logging(
    level: Optional[str] = None, format_detailed: bool = False
) -> logging.Logger:
    """
    Configure the package logger with one stdout handler.

    Calling it again replaces the handler, so the CLI callback can run it
    once per invocation.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL; unknown names fall
               back to INFO
        format_detailed: Include timestamp and logger name in each line

    Returns:
        The ``table_catalog`` logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)
    logger.setLevel(numeric_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    if format_detailed or os.getenv("LOG_FORMAT", "").lower() == "detailed":
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return a logger inside the ``table_catalog`` tree.

    ``table_catalog.parsers`` stays as is, ``parsers`` becomes
    ``table_catalog.parsers`` and ``__main__`` maps to ``table_catalog.cli``.
    """
    if name is None:
        return logging.getLogger(PACKAGE_LOGGER)

    if not name.startswith(PACKAGE_LOGGER):
        if name.startswith("__main__"):
            name = f"{PACKAGE_LOGGER}.cli"
        else:
            name = f"{PACKAGE_LOGGER}.{name.split('.')[-1]}"

    return logging.getLogger(name)
