"""Logging setup shared by the API process and the background task checker."""

import logging
import sys

from studyhub.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Install a single stream handler on the root logger.

    Safe to call more than once (e.g. under uvicorn --reload); existing
    handlers installed by this function are replaced, not duplicated.
    """
    settings = get_settings()
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    for handler in list(root.handlers):
        if getattr(handler, "_studyhub", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._studyhub = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    # SQL echo is controlled by settings.debug on the engine
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
