import logging
import os
from logging.handlers import RotatingFileHandler

from imageto_ico.utils.log import LOGGER_NAME, setup_logging


def test_setup_is_idempotent():
    logger = setup_logging(logging.WARNING)
    setup_logging(logging.DEBUG)

    assert logger.name == LOGGER_NAME
    assert len(logger.handlers) == 1
    assert logger.handlers[0].level == logging.DEBUG


def test_module_loggers_are_children():
    setup_logging()
    child = logging.getLogger('imageto_ico.core.converter')
    assert child.parent is logging.getLogger(LOGGER_NAME)


def test_log_file(isolated_config):
    logger = setup_logging(log_file=True)
    logger.debug("written to file only")
    for handler in logger.handlers:
        handler.flush()

    file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    path = os.path.join(str(isolated_config), 'ImageToIco', 'imageto-ico.log')
    with open(path, encoding='utf-8') as f:
        assert 'written to file only' in f.read()
