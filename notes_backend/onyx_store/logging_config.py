"""
Logging for the notes backend and the Uvicorn server that hosts it.
"""
import logging
from typing import Optional

from onyx_store import config

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: Optional[str] = None) -> int:
    """
    Configure the root handler and align the Uvicorn loggers.

    `level` defaults to ONYX_LOG_LEVEL; unknown names fall back to INFO.
    Returns the numeric level applied.
    """
    name = (level or config.log_level()).upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(resolved)
    return resolved
