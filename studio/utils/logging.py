"""Logging setup for the AI Studio app.

Records go to ``<log_dir>/application.log`` and to stderr. Modules log through
``logging.getLogger(__name__)``. The generation lifecycle logs each retry at
WARNING and a run that exhausts its attempts at ERROR.
"""

from __future__ import annotations

import logging
from pathlib import Path

from config.settings import AppConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILENAME = "application.log"


def setup_logging(config: AppConfig, level: int = logging.INFO) -> logging.Logger:
    """Configure root handlers and return the ``ai_studio`` logger.

    ``config.log_dir`` is created when missing. ``level`` applies to the root
    logger, so passing ``logging.DEBUG`` also shows the controller's state
    transitions. Calling this again is a no-op once root handlers exist.
    """
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_dir / LOG_FILENAME, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    return logging.getLogger("ai_studio")
