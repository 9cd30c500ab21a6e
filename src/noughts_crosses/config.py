"""
Environment configuration and logging setup for the HTTP backend.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _origins() -> List[str]:
    return [origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",") if origin.strip()]


@dataclass(frozen=True)
class Settings:
    env: str = field(default_factory=lambda: os.getenv("NOUGHTS_ENV", "development"))
    allowed_origins: List[str] = field(default_factory=_origins)
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    max_sessions: int = field(default_factory=lambda: int(os.getenv("MAX_SESSIONS", "1000")))


# PUBLIC_INTERFACE
def configure_logging(level: str = "INFO"):
    """Install a basic handler on the root logger unless one already exists."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("noughts_crosses").setLevel(level)
