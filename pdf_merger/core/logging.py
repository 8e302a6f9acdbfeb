import logging
from logging import Logger

from .config import get_settings


def configure_logging() -> Logger:
    """تهيئة مسجل خدمة الدمج بالمستوى المحدد في الإعدادات (مرة واحدة فقط)."""
    settings = get_settings()

    logger = logging.getLogger(settings.app_name)
    if logger.handlers:
        return logger

    logger.setLevel(settings.log_level)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(asctime)s | %(name)s | %(message)s"))

    logger.addHandler(handler)
    logger.propagate = False

    return logger
