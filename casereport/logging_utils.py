"""Logging setup shared by the CLI and any embedding application."""
from __future__ import annotations

import logging
import os
from typing import Optional


def configure_logging(level: Optional[str] = None) -> None:
    """Initialise basic logging with a shared format.

    The level comes from ``level`` or the ``LOG_LEVEL`` environment variable
    (default ``INFO``).
    """

    resolved_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=resolved_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
