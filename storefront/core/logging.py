"""Logging configuration."""
import logging
import sys
from typing import Optional

from storefront.core.config import settings

# Chatty libraries kept at WARNING unless the app itself runs at DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite", "multipart")


def setup_logging(level: Optional[str] = None) -> None:
    """Configure application logging once, at startup."""
    level_name = (level or settings.log_level or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    third_party_level = logging.DEBUG if level_name == "DEBUG" else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    logger.info(f"[STARTUP] Logging configured at {level_name} for {settings.restaurant_name}")


logger = logging.getLogger(__name__)
