from __future__ import annotations

import logging
import logging.config
from pathlib import Path

LOG_FILE_NAME = "gmail_autoreply.log"
NOISY_LOGGERS = ("googleapiclient.discovery", "googleapiclient.discovery_cache", "urllib3")


def configure_logging(log_dir: Path, level: str = "INFO") -> Path:
    """Send log records to a rotating file and to stdout."""

    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
            "short": {
                "format": "%(asctime)s %(levelname)s | %(message)s",
                "datefmt": "%H:%M:%S",
            },
        },
        "handlers": {
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "detailed",
                "filename": str(log_path),
                "maxBytes": 2_000_000,
                "backupCount": 5,
                "encoding": "utf-8",
            },
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "short",
                "stream": "ext://sys.stdout",
            },
        },
        # discovery and transport chatter only matters when debugging the API itself
        "loggers": {name: {"level": "WARNING"} for name in NOISY_LOGGERS},
        "root": {
            "handlers": ["file", "stdout"],
            "level": level.upper(),
        },
    }

    logging.config.dictConfig(config)
    logging.getLogger(__name__).debug("Logging to %s at %s", log_path, level)
    return log_path
