"""
Logging setup.

Every module asks for its logger through ``get_logger(__name__)``. The root
handler is installed once, by ``configure_logging`` at application start, so
importing a module never reconfigures logging as a side effect.
"""

import logging
import sys

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str = None) -> None:
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel((level or LOG_LEVEL).upper())
    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
