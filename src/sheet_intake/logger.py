"""Package logger.

Call sites use it as a module: ``from . import logger as log`` then
``log.info("Row %s ...", n)``.
"""

from __future__ import annotations

import logging
import sys

_LOGGER = logging.getLogger("sheet_intake")

debug = _LOGGER.debug
info = _LOGGER.info
warning = _LOGGER.warning
error = _LOGGER.error
exception = _LOGGER.exception


def setup_logging(level: int | str = logging.INFO) -> None:
    """Configure console logging for the service process."""
    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=[handler], force=True)

    # Reduce noise from libraries
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)

    _LOGGER.info(
        "Logging initialized: level=%s",
        level if isinstance(level, str) else logging.getLevelName(level),
    )
