import logging

import numpy as np
import pytest
from PIL import Image


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep settings and log files out of the real user profile."""
    appdata = tmp_path / 'appdata'
    appdata.mkdir()
    monkeypatch.setenv('APPDATA', str(appdata))
    yield appdata

    logger = logging.getLogger('imageto_ico')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def make_image(tmp_path):
    """Write a solid RGBA test image and return its path."""
    def _make(name='source.png', size=(64, 48), color=(255, 0, 0, 255), fmt=None):
        path = tmp_path / name
        img = Image.new('RGBA', size, color)
        if fmt in ('JPEG', 'GIF') or path.suffix.lower() in ('.jpg', '.jpeg', '.gif'):
            img = img.convert('RGB')
        img.save(path, format=fmt)
        return str(path)
    return _make


@pytest.fixture
def gradient():
    """64x32 RGBA gradient array with a transparent left column."""
    rgba = np.zeros((32, 64, 4), dtype=np.uint8)
    rgba[:, :, 0] = np.linspace(0, 255, 64, dtype=np.uint8)[np.newaxis, :]
    rgba[:, :, 1] = np.linspace(0, 255, 32, dtype=np.uint8)[:, np.newaxis]
    rgba[:, :, 2] = 128
    rgba[:, :, 3] = 255
    rgba[:, 0, 3] = 0
    return rgba
