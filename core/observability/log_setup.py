"""
Library logging setup.

Module code logs through ``logging.getLogger(__name__)``; this configures the
root handler once per process from LOG_LEVEL.
"""
from __future__ import annotations
from typing import Optional
import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Initialise root logging. Safe to call more than once."""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=level_name, format=LOG_FORMAT)
    logging.getLogger().setLevel(level_name)
    # SQL echo is controlled by DB_ECHO, not by the application level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
