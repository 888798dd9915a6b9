"""
Runtime Configuration

Reads MEDIAFORGE_* environment variables into an immutable AppConfig.
Values that fail to parse raise ConfigurationError at startup rather than
surfacing later as odd runtime behaviour.
"""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_TRUE_VALUES = ('true', '1', 'yes', 'on')


@dataclass(frozen=True)
class AppConfig:
    """Application settings resolved from the environment."""

    log_dir: Path
    log_level: str = "INFO"
    download_timeout_seconds: Optional[float] = None
    accept_unknown_media: bool = False
    max_upload_bytes: int = 2 * 1024 * 1024 * 1024  # 2 GB
    server_host: Optional[str] = None


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _parse_positive_float(key: str, value: str) -> Optional[float]:
    if not value.strip():
        return None
    try:
        parsed = float(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {value!r}", [key])
    if parsed <= 0:
        raise ConfigurationError(f"{key} must be positive, got {value!r}", [key])
    return parsed


def _parse_positive_int(key: str, value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}", [key])
    if parsed <= 0:
        raise ConfigurationError(f"{key} must be positive, got {value!r}", [key])
    return parsed


def load_app_config(environ: Mapping[str, str] | None = None) -> AppConfig:
    """
    Build an AppConfig from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        AppConfig instance

    Raises:
        ConfigurationError: If a variable is set to an unparseable value
    """
    env = os.environ if environ is None else environ
    defaults = AppConfig(log_dir=Path.home() / ".mediaforge" / "logs")

    log_dir = Path(env.get('MEDIAFORGE_LOG_DIR', str(defaults.log_dir))).expanduser()
    log_level = env.get('MEDIAFORGE_LOG_LEVEL', defaults.log_level).upper()
    if log_level not in logging.getLevelNamesMapping():
        raise ConfigurationError(f"Unknown log level: {log_level}", ['MEDIAFORGE_LOG_LEVEL'])

    timeout = _parse_positive_float(
        'MEDIAFORGE_DOWNLOAD_TIMEOUT', env.get('MEDIAFORGE_DOWNLOAD_TIMEOUT', '')
    )
    max_upload = defaults.max_upload_bytes
    if env.get('MEDIAFORGE_MAX_UPLOAD_BYTES'):
        max_upload = _parse_positive_int('MEDIAFORGE_MAX_UPLOAD_BYTES', env['MEDIAFORGE_MAX_UPLOAD_BYTES'])

    return AppConfig(
        log_dir=log_dir,
        log_level=log_level,
        download_timeout_seconds=timeout,
        accept_unknown_media=_parse_bool(env.get('MEDIAFORGE_ACCEPT_UNKNOWN', 'false')),
        max_upload_bytes=max_upload,
        server_host=env.get('MEDIAFORGE_HOST') or None,
    )
