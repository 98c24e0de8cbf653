"""
Engine constants and the user configuration file.
"""
import os
import json
from dataclasses import dataclass, fields
from typing import Optional
from loguru import logger

# Cache policy
CACHE_CAPACITY = 100
CACHE_EVICT_BATCH = 20

# Preview rendering bounds
PREVIEW_MAX_WIDTH = 800
PREVIEW_MAX_HEIGHT = 600

# JPEG quality used for in-memory full-quality renders
FULL_QUALITY = 95

# Probed in order after the embedded font
SYSTEM_FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/System/Library/Fonts/Arial.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
]

RAW_EXTENSIONS = {
    '.arw', '.cr2', '.cr3', '.nef', '.nrw', '.orf', '.raf', '.rw2',
    '.dng', '.pef', '.srw', '.x3f', '.3fr', '.iiq',
}

HEIF_EXTENSIONS = {'.heic', '.heif'}

SUPPORTED_INPUT_EXTENSIONS = {
    '.jpg', '.jpeg', '.png', '.tif', '.tiff', '.bmp', '.webp',
} | HEIF_EXTENSIONS | RAW_EXTENSIONS

DEFAULT_CONFIG_FILE = os.path.expanduser('~/.photo_overlay/config.json')
CONFIG_ENV_VAR = 'PHOTO_OVERLAY_CONFIG'


@dataclass
class EngineConfig:
    """Tunables for the unified engine"""
    cache_capacity: int = CACHE_CAPACITY
    cache_evict_batch: int = CACHE_EVICT_BATCH
    preview_max_width: int = PREVIEW_MAX_WIDTH
    preview_max_height: int = PREVIEW_MAX_HEIGHT
    full_quality: int = FULL_QUALITY
    max_workers: int = 2


def get_config_file_path() -> str:
    return os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE


def load_engine_config(path: Optional[str] = None) -> EngineConfig:
    """
    Load the ``engine`` section of the JSON config file.

    Missing file, unreadable JSON or wrong value types fall back to defaults.
    Unknown keys are ignored.
    """
    config_path = path or get_config_file_path()
    config = EngineConfig()

    if not os.path.exists(config_path):
        return config

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            section = json.load(f).get('engine', {})
    except (OSError, ValueError, AttributeError) as e:
        logger.error(f"Failed to load engine config {config_path}: {e}")
        return config

    for f in fields(EngineConfig):
        if f.name not in section:
            continue
        value = section[f.name]
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            setattr(config, f.name, value)
        else:
            logger.warning(f"Ignoring invalid engine config value {f.name}={value!r}")

    logger.debug(f"Loaded engine config from {config_path}: {config}")
    return config
