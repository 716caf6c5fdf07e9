"""
Application constants and logging setup.
"""

import logging
from typing import Dict, Optional, Tuple

# ==============================================================================================
# Domain constants
# ==============================================================================================

PLATFORMS: Tuple[str, ...] = ("hulu", "peacock", "paramount")
NETWORKS: Tuple[str, ...] = ("ABC", "NBC", "CBS", "FOX")
DAY_ORDER: Tuple[str, ...] = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

# Typical season length per network, used when a show has no episode count
EPISODE_DEFAULTS: Dict[str, int] = {"ABC": 18, "NBC": 22, "CBS": 20, "FOX": 13}

# ==============================================================================================
# Storage
# ==============================================================================================

TRACKER_PERSISTENCE_KEY = "tv-show-guide-reactive"
DEFAULT_STATE_DIR = "~/.showtrack"
TRACKER_MAX_HISTORY = 50

# ==============================================================================================
# Logging configuration
# ==============================================================================================

LOG_LEVEL = logging.WARNING
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[int] = None) -> logging.Logger:
    """
    Attach a console handler to the ``showtrack`` logger.

    The library itself never configures handlers; front ends call this once.
    Calling it again only adjusts the level.
    """
    level = LOG_LEVEL if level is None else level
    logger = logging.getLogger("showtrack")
    logger.setLevel(level)

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console_handler)

    for handler in logger.handlers:
        handler.setLevel(level)
    return logger
