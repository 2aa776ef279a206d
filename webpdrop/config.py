"""Application constants and environment-driven configuration."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

APP_NAME = "WebP Drop"
APP_ORG = "webpdrop"

# Extensions accepted on drop and folder scan
INPUT_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.tif', '.tiff', '.gif', '.heic', '.bmp', '.webp'}
TARGET_EXTENSION = '.webp'
OUTPUT_SUBFOLDER_NAME = "WebP output"

MAX_CONCURRENT_JOBS = 4
LOG_HISTORY_LIMIT = 200
DEFAULT_QUALITY = 80

ENCODER_NAME = "cwebp.exe" if os.name == "nt" else "cwebp"

ENV_ENCODER_PATH = "WEBPDROP_CWEBP"
ENV_LOG_LEVEL = "WEBPDROP_LOG_LEVEL"
ENV_ENCODER_TIMEOUT = "WEBPDROP_ENCODER_TIMEOUT"

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    """Runtime configuration resolved at startup."""
    encoder_path: Optional[Path] = None
    log_level: int = logging.INFO
    encoder_timeout: Optional[float] = None
    max_workers: int = MAX_CONCURRENT_JOBS


def _parse_log_level(value: str) -> int:
    level = logging.getLevelName(value.strip().upper())
    if isinstance(level, int):
        return level
    logger.warning(f"Unknown log level {value!r}, using INFO")
    return logging.INFO


def _parse_timeout(value: str) -> Optional[float]:
    try:
        timeout = float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid encoder timeout {value!r}")
        return None
    # Zero or negative means "wait forever", same as unset
    return timeout if timeout > 0 else None


def load_config(environ: Optional[dict] = None) -> AppConfig:
    """Build an AppConfig from environment variables."""
    env = os.environ if environ is None else environ
    config = AppConfig()

    encoder = env.get(ENV_ENCODER_PATH)
    if encoder:
        config.encoder_path = Path(encoder).expanduser()

    level = env.get(ENV_LOG_LEVEL)
    if level:
        config.log_level = _parse_log_level(level)

    timeout = env.get(ENV_ENCODER_TIMEOUT)
    if timeout:
        config.encoder_timeout = _parse_timeout(timeout)

    return config
