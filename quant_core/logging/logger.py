import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from config.settings import LOG_LEVEL


# Global set to track configured loggers and prevent duplicate handlers
_configured_loggers = set()


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: Optional[Union[int, str]] = None,
    console: bool = True
):
    """
    Setup a logger with rotating file handler and optional console handler.

    Args:
        name: Logger name (will write to logs/<name>.log by default)
        log_file: Optional custom log file path
        level: Logging level (defaults to config.settings.LOG_LEVEL)
        console: Whether to add console handler

    Returns:
        Configured logger instance
    """
    if level is None:
        level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    elif isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if name in _configured_loggers:
        return logger

    logger.propagate = False

    if log_file is None:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)
        log_file = logs_dir / f"{name}.log"
    else:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    file_handler = RotatingFileHandler(
        str(log_file),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(level)
        logger.addHandler(console_handler)

    _configured_loggers.add(name)

    return logger
