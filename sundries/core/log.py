# sundries/core/log.py
import logging
import sys

from sundries.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    logger = logging.getLogger("sundries")
    logger.setLevel((level or settings.LOG_LEVEL or "INFO").upper())

    # create_app() may run more than once in a process
    if logger.handlers:
        return

    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(ch)
