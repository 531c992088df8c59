"""
Configuration Management for the cloud database upgrade
Centralizes all environment-based configuration and settings
"""

import os
import logging
from logging.handlers import RotatingFileHandler
from typing import List, Optional


def _safe_int(env_var: str, default: int, min_val: int = None, max_val: int = None) -> int:
    """
    Safely parse an integer from environment variable with validation.

    Args:
        env_var: Environment variable name
        default: Default value if not set
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)

    Returns:
        Parsed and validated integer

    Raises:
        ValueError: If value is not a valid integer or out of range
    """
    value_str = os.getenv(env_var)
    if value_str is None:
        return default

    try:
        value = int(value_str)
    except ValueError:
        raise ValueError(
            f"{env_var} must be a valid integer, got: '{value_str}'"
        )

    if min_val is not None and value < min_val:
        raise ValueError(
            f"{env_var} must be at least {min_val}, got: {value}"
        )

    if max_val is not None and value > max_val:
        raise ValueError(
            f"{env_var} must be at most {max_val}, got: {value}"
        )

    return value


def get_scripts_path() -> List[str]:
    """
    Extra directories searched for upgrade SQL scripts.

    CLOUD_SCRIPTS_PATH uses the platform path separator, like PATH.
    Empty entries are dropped.
    """
    raw = os.getenv('CLOUD_SCRIPTS_PATH', '')
    return [entry for entry in raw.split(os.pathsep) if entry.strip()]


def get_db_schema() -> Optional[str]:
    """Schema the platform tables live in (e.g. 'cloud'), or None for the default"""
    schema = os.getenv('CLOUD_DB_SCHEMA', '').strip()
    return schema or None


def setup_logging():
    """Configure upgrade logging with rotation"""
    log_dir = os.path.join(UpgradeConfig.DATA_DIR, 'logs')
    os.makedirs(log_dir, mode=0o700, exist_ok=True)

    root_logger = logging.getLogger()

    # Close and clear any existing handlers (e.g., installed by Alembic)
    # to ensure our logging configuration is used and prevent file descriptor leaks
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    log_level_str = UpgradeConfig.LOG_LEVEL
    allowed_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if log_level_str not in allowed_levels:
        print(f"WARNING: Invalid CLOUD_LOG_LEVEL '{log_level_str}'. Using INFO. Valid values: {allowed_levels}")
        log_level_str = 'INFO'

    log_level = getattr(logging, log_level_str)
    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_handler.setFormatter(console_formatter)

    file_handler = RotatingFileHandler(
        os.path.join(log_dir, 'upgrade.log'),
        maxBytes=UpgradeConfig.LOG_MAX_BYTES,
        backupCount=UpgradeConfig.LOG_BACKUPS,
        encoding='utf-8'
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(console_formatter)

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Statement echo is only useful when debugging SQLAlchemy itself
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.WARNING)


class UpgradeConfig:
    """Upgrade runner configuration"""

    from .paths import DATA_DIR, DATABASE_URL as DEFAULT_DATABASE_URL

    # Database settings
    DATABASE_URL = os.getenv('CLOUD_DATABASE_URL', DEFAULT_DATABASE_URL)
    DB_SCHEMA = get_db_schema()

    # Extra locations for db/schema-*.sql
    SCRIPTS_PATH = get_scripts_path()

    # Logging
    LOG_LEVEL = os.getenv('CLOUD_LOG_LEVEL', 'INFO').upper()
    LOG_MAX_BYTES = _safe_int('CLOUD_LOG_MAX_BYTES', 10 * 1024 * 1024, min_val=1024)
    LOG_BACKUPS = _safe_int('CLOUD_LOG_BACKUPS', 14, min_val=0, max_val=1000)

    @classmethod
    def validate(cls):
        """
        Validate configuration.

        Integer settings are already validated during loading via _safe_int().
        """
        allowed_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if cls.LOG_LEVEL not in allowed_levels:
            raise ValueError(
                f"Invalid CLOUD_LOG_LEVEL: '{cls.LOG_LEVEL}'. "
                f"Must be one of {allowed_levels}"
            )

        if not cls.DATABASE_URL:
            raise ValueError("CLOUD_DATABASE_URL must not be empty")
