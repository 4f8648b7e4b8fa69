import logging
from typing import Optional

from marketplace.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure the root logger once with a single console handler."""
    level = (level or settings.LOG_LEVEL).upper()

    root = logging.getLogger()
    root.setLevel(level)

    # Prevent duplicate handlers when the app factory runs more than once
    if any(getattr(h, "_marketplace", False) for h in root.handlers):
        return root

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._marketplace = True

    root.addHandler(handler)
    return root
