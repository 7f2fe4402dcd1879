import logging
import logging.config
from datetime import datetime
from pathlib import Path
from typing import Optional

LOGGER_NAME = "sohcast"


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``sohcast`` logger hierarchy.

    Args:
        level: Level applied to the package logger and the console handler.
        log_dir: When set, a timestamped log file capturing DEBUG and above
            is written there as well.
    """
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "level": level.upper(),
        }
    }
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "plain",
            "filename": str(Path(log_dir) / f"{LOGGER_NAME}_{ts}.log"),
            "encoding": "utf-8",
            "level": "DEBUG",
        }

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {
                "format": "{asctime} {levelname:<7} {name} - {message}",
                "style": "{",
            },
            "console": {
                "format": "{levelname:<7} {name} - {message}",
                "style": "{",
            },
        },
        "handlers": handlers,
        "loggers": {
            LOGGER_NAME: {
                # file handler needs DEBUG records to reach it
                "level": "DEBUG" if log_dir else level.upper(),
                "handlers": list(handlers),
                "propagate": False,
            },
        },
    }
    logging.config.dictConfig(config)

    logger = logging.getLogger(LOGGER_NAME)
    logger.debug("Logging initialised (level=%s, log_dir=%s)", level, log_dir)
    return logger
