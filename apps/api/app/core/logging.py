import logging
import sys

from app.core.config import Settings

LOG_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

_LOGGING_INITIALIZED = False


def setup_logging(settings: Settings) -> None:
    """Route app + uvicorn loggers to a single stdout handler. Safe to call twice."""
    global _LOGGING_INITIALIZED

    level = logging.getLevelName((settings.log_level or "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    if _LOGGING_INITIALIZED:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))
    root.addHandler(handler)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        log = logging.getLogger(logger_name)
        log.handlers = [handler]
        log.propagate = False

    _LOGGING_INITIALIZED = True
