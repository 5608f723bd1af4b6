from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_DIR_ENV = "GENOMEOS_LOG_DIR"
LOG_FILE_ENV = "GENOMEOS_LOG_FILE"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _log_file() -> Path:
    explicit = os.environ.get(LOG_FILE_ENV)
    if explicit:
        path = Path(explicit)
    else:
        path = Path(os.environ.get(LOG_DIR_ENV, "logs")) / "genomeos.log"
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def configure_logging(level: int | str = logging.INFO, *, to_file: bool = False) -> logging.Logger:
    """Attach handlers to the ``genomeos`` logger; safe to call repeatedly.

    With *to_file* the records also go to ``GENOMEOS_LOG_FILE`` when set,
    otherwise to ``genomeos.log`` under ``GENOMEOS_LOG_DIR`` (default ``logs``).
    """
    logger = logging.getLogger("genomeos")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if to_file:
        handlers.append(logging.FileHandler(_log_file(), encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
