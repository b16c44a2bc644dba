"""
Logging setup for the command-line tool.
"""
import logging
import os
from logging.handlers import RotatingFileHandler

from .config import get_config_dir


LOGGER_NAME = 'imageto_ico'
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(level=logging.INFO, log_file=False):
    """
    Configure the package logger once.

    Args:
        level: Console log level
        log_file: Also keep a rotating debug log (1MB x 3) in the config dir

    Returns:
        The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers on repeated calls
    if logger.handlers:
        for handler in logger.handlers:
            if not isinstance(handler, RotatingFileHandler):
                handler.setLevel(level)
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        file_handler = RotatingFileHandler(
            os.path.join(get_config_dir(), 'imageto-ico.log'),
            maxBytes=1024 * 1024,
            backupCount=3,
            encoding='utf-8',
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
