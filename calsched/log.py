# calsched/log.py
import sys
from typing import Optional

from loguru import logger

from .config import settings

FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(level: Optional[str] = None) -> None:
    """Route engine logs to stderr. The library itself never adds sinks."""
    logger.remove()
    logger.add(sys.stderr, level=level or settings.log_level, format=FORMAT)
