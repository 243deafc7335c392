"""Logging setup for test sessions."""

import logging
import sys
from typing import Optional

from .config import LoggingSettings


def configure_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure logging for a test session.

    Args:
        settings: Logging settings; read from the environment when omitted.
    """
    settings = settings or LoggingSettings()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.file:
        handlers.append(logging.FileHandler(settings.file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, settings.level),
        format=settings.format,
        handlers=handlers,
    )

    if settings.level != "DEBUG":
        logging.getLogger("asyncio").setLevel(logging.WARNING)
