"""
Application configuration and settings.
"""
import os
import copy
import json
import logging


logger = logging.getLogger(__name__)

# Application info
APP_NAME = "ImageTo-ICO"
APP_VERSION = "1.0.0"

# Standard ICO sizes for shell, taskbar and high-DPI use
DEFAULT_SIZES = (16, 32, 48, 64, 128, 256)

# Default settings
DEFAULT_SETTINGS = {
    'sizes': list(DEFAULT_SIZES),
    'payload_format': 'png',  # 'png' or 'bmp'
    'resample': 'auto',
    'compress_level': 6,
    'workers': 1,
    'batch_output_dir': 'output',
}


def get_config_dir():
    """Get (and create) the per-user config directory."""
    app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
    config_dir = os.path.join(app_data, 'ImageToIco')
    os.makedirs(config_dir, exist_ok=True)
    return config_dir


def get_config_path():
    """Get path to config file."""
    return os.path.join(get_config_dir(), 'settings.json')


def load_settings():
    """Load settings from config file, merged over the defaults."""
    config_path = get_config_path()
    settings = copy.deepcopy(DEFAULT_SETTINGS)

    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                saved = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", config_path, e)
            return settings

        if isinstance(saved, dict):
            settings.update({k: v for k, v in saved.items() if k in DEFAULT_SETTINGS})
        else:
            logger.warning("Ignoring settings file %s: not a JSON object", config_path)

    return settings


def save_settings(settings):
    """Save settings to config file."""
    config_path = get_config_path()

    try:
        with open(config_path, 'w') as f:
            json.dump(settings, f, indent=2)
        return True
    except OSError as e:
        logger.warning("Could not save settings to %s: %s", config_path, e)
        return False
