# Project MaskAR - maskar/utils/logger.py
# (C) 2025 MUSE Corp. All rights reserved.

import logging
import os

ROOT_NAME = "maskar"
LOG_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s'
DATE_FORMAT = '%H:%M:%S'


def _root():
    """The 'maskar' logger; gets its console handler on first use."""
    root = logging.getLogger(ROOT_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)
        root.setLevel(os.environ.get("MASKAR_LOG_LEVEL", "DEBUG").upper())
        root.propagate = False
    return root


def get_logger(name):
    """Component logger ('Camera', 'Renderer', ...) under the shared root."""
    _root()
    return logging.getLogger(f"{ROOT_NAME}.{name}")


def set_level(level):
    """Changes verbosity for every component at once (e.g. from --log-level)."""
    root = _root()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    return root.level
