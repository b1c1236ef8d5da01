from __future__ import annotations

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_HANDLER_NAME = "imagehub-console"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    resolved = (level or os.getenv("IMAGEHUB_LOG_LEVEL", "INFO")).strip().upper() or "INFO"

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    existing = [h for h in root_logger.handlers if h.get_name() == CONSOLE_HANDLER_NAME]
    if existing:
        existing[0].setLevel(resolved)
    else:
        console_handler = logging.StreamHandler()
        console_handler.set_name(CONSOLE_HANDLER_NAME)
        console_handler.setLevel(resolved)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root_logger.addHandler(console_handler)

    # Request-level chatter from the HTTP client is noise at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return logging.getLogger("imagehub_bridge")
