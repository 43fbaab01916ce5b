"""
Application configuration module.

Settings are read from environment variables and ``.env``. A YAML or JSON
file named by ``CONFIG_PATH`` may provide defaults; environment variables
always take precedence over it.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseSettings, validator

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("memory", "sql")


class Settings(BaseSettings):
    """Application settings."""

    # Storage settings
    STORAGE_BACKEND: str = "memory"
    DATABASE_URL: str = "sqlite+aiosqlite:///./assessly.db"
    AUTO_CREATE_SCHEMA: bool = True
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30

    # Security settings
    JWT_SECRET_KEY: str = "dev-secret-key"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ATTEMPT_TOKEN_BYTES: int = 24

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_FILE: Optional[str] = None

    # API settings
    API_PREFIX: str = "/api/v1"
    ALLOW_ORIGINS: List[str] = ["*"]
    PROJECT_NAME: str = "Assessly"

    class Config:
        """Pydantic settings config."""
        env_file = ".env"
        case_sensitive = True

    @validator("STORAGE_BACKEND")
    def validate_storage_backend(cls, v):
        v = v.lower()
        if v not in STORAGE_BACKENDS:
            raise ValueError(f"Invalid storage backend: {v}. Must be one of {STORAGE_BACKENDS}")
        return v

    @validator("LOG_LEVEL")
    def validate_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @validator("ATTEMPT_TOKEN_BYTES")
    def validate_token_bytes(cls, v):
        if v < 16:
            raise ValueError("ATTEMPT_TOKEN_BYTES must be at least 16")
        return v


def _load_config_file(path: str) -> Dict[str, Any]:
    """
    Load settings defaults from a file.

    Args:
        path: Path to a YAML or JSON config file

    Returns:
        Loaded configuration dictionary (empty if the file is missing)

    Raises:
        ValueError: If the file format is unsupported or its content is not a mapping
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Config file not found: {path}")
        return {}

    with open(path, 'r') as f:
        if path.suffix.lower() in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        elif path.suffix.lower() == '.json':
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def load_settings(config_path: Optional[str] = None, **overrides: Any) -> Settings:
    """
    Build settings from defaults, an optional config file and the environment.

    Args:
        config_path: Path to config file (defaults to ``CONFIG_PATH``)
        **overrides: Explicit values that win over every other source

    Returns:
        Loaded settings
    """
    config_path = config_path or os.environ.get("CONFIG_PATH")
    values: Dict[str, Any] = {}
    if config_path:
        file_values = _load_config_file(config_path)
        # Environment variables take precedence over the file
        values.update({key: value for key, value in file_values.items() if key not in os.environ})
    values.update(overrides)
    return Settings(**values)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
