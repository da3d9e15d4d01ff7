import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .config import LOG_FILENAME, get_log_dir


def setup_logging(log_dir: Optional[Path] = None):
    """Set up logging configuration for the focusflow package with environment-based levels."""
    # Determine log level from environment
    env_level = os.getenv('FOCUSFLOW_LOG_LEVEL', '').upper()
    is_debug = os.getenv('FOCUSFLOW_DEBUG', '').lower() in ('1', 'true', 'yes')

    # Default to WARNING for regular users
    if is_debug:
        level = logging.DEBUG
    elif env_level:
        level = getattr(logging, env_level, logging.WARNING)
    else:
        level = logging.WARNING

    if log_dir is None:
        log_dir = get_log_dir()

    log_format = '[%(asctime)s] %(levelname)-8s [%(name)s:%(funcName)s:%(lineno)d] %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    detailed_formatter = logging.Formatter(log_format, date_format)
    console_formatter = logging.Formatter(
        '%(levelname)-8s [%(name)s] %(message)s' if is_debug
        else '%(levelname)s: %(message)s'
    )

    # File handler (always detailed)
    file_handler = logging.FileHandler(Path(log_dir) / LOG_FILENAME, encoding='utf-8')
    file_handler.setFormatter(detailed_formatter)
    file_handler.setLevel(logging.DEBUG)

    # Console handler goes to stderr so --json output stays parseable
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(level)

    logger = logging.getLogger('focusflow')
    logger.setLevel(logging.DEBUG)  # Logger accepts all, handlers filter
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger


def get_logger(name: str = None):
    """Get a logger instance for a specific module."""
    if name:
        return logging.getLogger(f'focusflow.{name}')
    return logging.getLogger('focusflow')
