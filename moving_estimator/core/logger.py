import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys

from moving_estimator.core.config import settings

LOG_DIR = Path(settings.LOG_DIR)
LOG_DIR.mkdir(exist_ok=True)

LOG_FILE = LOG_DIR / "app.log"
LOG_FORMAT = "%(levelname)s | %(asctime)s | %(name)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    # Prevent duplicate handlers if the logger is reused
    if not logger.handlers:
        file_handler = RotatingFileHandler(
            LOG_FILE, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(level)

        # Force UTF-8 console output on all OS
        try:
            console_stream = open(sys.stdout.fileno(), mode="w", encoding="utf-8", closefd=False)
        except Exception:
            # fileno() is unavailable under some runners (captured stdout)
            console_stream = sys.stdout

        console_handler = logging.StreamHandler(console_stream)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler.setLevel(level)

        logger.addHandler(file_handler)
        logger.addHandler(console_handler)
        logger.setLevel(level)
        logger.propagate = False

    return logger
