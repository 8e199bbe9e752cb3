from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from app.config import settings


LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

_configured = False


def configure_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Attach a console handler, plus a rotating file handler when a log file is configured."""
    global _configured

    level_name = (level or settings.log_level).upper()
    target_file = log_file if log_file is not None else settings.log_file

    root = logging.getLogger()
    root.setLevel(level_name)
    if _configured:
        return

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if target_file:
        Path(target_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(target_file, maxBytes=1_000_000, backupCount=5, encoding='utf-8')
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    _configured = True
