from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

_HANDLER_NAME = "image-editor"


def configure_logging(level: str | None = None) -> None:
    """Install one stderr handler on the root logger.

    The level comes from ``level`` or ``EDITOR_LOG_LEVEL`` (default INFO).
    Calling this again only updates the level.
    """
    level_name = (level or os.getenv("EDITOR_LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
