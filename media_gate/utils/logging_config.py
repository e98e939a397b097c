"""Logging configuration for the media gate."""
import logging
import sys
from pathlib import Path
from typing import Optional

_HANDLER_MARK = "_media_gate_handler"


def setup_logging(log_level: str = "INFO", log_file: Optional[Path] = None):
    """Configure root logging: stdout console handler plus an optional file."""
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Replace handlers from earlier calls
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    setattr(console_handler, _HANDLER_MARK, True)
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARK, True)
        logger.addHandler(file_handler)

    # Keep third-party HTTP chatter out of INFO logs
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logger
