"""
Logging configuration for command-line entry points.

Library modules only create ``logging.getLogger(__name__)`` loggers; the
handler and level are configured once by the executable via
:func:`setup_logging`.
"""

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """
    Configure root logging.

    The level is DEBUG when ``verbose`` is set, otherwise it is read from the
    ``LOG_LEVEL`` environment variable (default INFO).

    Args:
        verbose: Force DEBUG level.
    """
    if verbose:
        level = logging.DEBUG
    else:
        level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
        level = getattr(logging, level_name, logging.INFO)
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
