"""
Centralized Configuration for the Gamification Engine

This module provides the configuration system for the engine. Values come
from defaults, an optional YAML or JSON config file, and environment
variables, which take precedence over both. A ``.env`` file in the working
directory is loaded into the environment first.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Configure logging
logger = logging.getLogger(__name__)

STORE_BACKENDS = ("memory", "redis", "sql")


class GamificationConfig(BaseModel):
    """XP award transaction and store selection."""
    max_retries: int = Field(default=5)
    retry_backoff_seconds: float = Field(default=0.01)
    max_level: int = Field(default=10000)
    store_backend: str = Field(default="memory")
    redis_key_prefix: str = Field(default="gamification:user:")

    @field_validator('max_retries', 'max_level')
    @classmethod
    def validate_positive(cls, v):
        """Retry budget and level cap must allow at least one step"""
        if v < 1:
            raise ValueError(f"Must be at least 1, got {v}")
        return v

    @field_validator('retry_backoff_seconds')
    @classmethod
    def validate_backoff(cls, v):
        if v < 0:
            raise ValueError(f"Backoff cannot be negative, got {v}")
        return v

    @field_validator('store_backend')
    @classmethod
    def validate_backend(cls, v):
        """Validate store backend"""
        if v.lower() not in STORE_BACKENDS:
            raise ValueError(f"Invalid store backend: {v}. Must be one of {list(STORE_BACKENDS)}")
        return v.lower()


class RedisConfig(BaseModel):
    """Redis configuration"""
    host: str = Field(default="localhost")
    port: int = Field(default=6379)
    db: int = Field(default=0)
    password: Optional[str] = Field(default=None)
    use_ssl: bool = Field(default=False)

    @property
    def connection_string(self) -> str:
        """Get the Redis connection string"""
        protocol = "rediss" if self.use_ssl else "redis"
        auth = f":{self.password}@" if self.password else ""
        return f"{protocol}://{auth}{self.host}:{self.port}/{self.db}"


class DatabaseConfig(BaseModel):
    """Database configuration for the SQL store"""
    url: str = Field(default="sqlite+aiosqlite:///./gamification.db")
    echo: bool = Field(default=False)
    pool_size: int = Field(default=5)


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = Field(default="INFO")
    use_json: bool = Field(default=False)
    file_path: Optional[str] = Field(default=None)

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class APIConfig(BaseModel):
    """API configuration"""
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    prefix: str = Field(default="/api")


class AppConfig(BaseModel):
    """Main application configuration"""
    app_name: str = Field(default="Gamification Engine")
    version: str = Field(default="0.1.0")
    gamification: GamificationConfig = Field(default_factory=GamificationConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: APIConfig = Field(default_factory=APIConfig)


# Environment variable -> (section, key)
ENV_OVERRIDES: Dict[str, Tuple[str, str]] = {
    "GAMIFICATION_MAX_RETRIES": ("gamification", "max_retries"),
    "GAMIFICATION_RETRY_BACKOFF": ("gamification", "retry_backoff_seconds"),
    "GAMIFICATION_MAX_LEVEL": ("gamification", "max_level"),
    "GAMIFICATION_STORE": ("gamification", "store_backend"),
    "GAMIFICATION_REDIS_PREFIX": ("gamification", "redis_key_prefix"),
    "REDIS_HOST": ("redis", "host"),
    "REDIS_PORT": ("redis", "port"),
    "REDIS_DB": ("redis", "db"),
    "REDIS_PASSWORD": ("redis", "password"),
    "REDIS_USE_SSL": ("redis", "use_ssl"),
    "DATABASE_URL": ("database", "url"),
    "SQL_ECHO": ("database", "echo"),
    "DB_POOL_SIZE": ("database", "pool_size"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_JSON": ("logging", "use_json"),
    "LOG_FILE": ("logging", "file_path"),
    "API_HOST": ("api", "host"),
    "API_PORT": ("api", "port"),
    "API_PREFIX": ("api", "prefix"),
}


class ConfigLoader:
    """
    Configuration loader for the application.

    Loads configuration from:
    1. Default values
    2. Config file
    3. Environment variables (highest priority)
    """

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """
        Initialize the config loader.

        Args:
            config_path: Path to config file (YAML or JSON)
            environ: Environment mapping, defaults to ``os.environ``
        """
        self.environ = os.environ if environ is None else environ
        self.config_path = config_path or self.environ.get("CONFIG_PATH")
        self._config: Optional[AppConfig] = None

    def load(self) -> AppConfig:
        """
        Load configuration from all sources.

        Returns:
            Loaded configuration
        """
        if self._config is not None:
            return self._config

        file_config: Dict[str, Any] = {}
        if self.config_path:
            file_config = self._load_from_file(self.config_path)

        merged = self._apply_env(file_config)
        self._config = AppConfig(**merged)
        return self._config

    def _apply_env(self, base: Dict[str, Any]) -> Dict[str, Any]:
        merged = {section: dict(values) for section, values in base.items() if isinstance(values, dict)}
        for key, value in base.items():
            if not isinstance(value, dict):
                merged[key] = value

        for env_name, (section, key) in ENV_OVERRIDES.items():
            if env_name in self.environ:
                merged.setdefault(section, {})[key] = self.environ[env_name]
        return merged

    def _load_from_file(self, path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            path: Path to config file

        Returns:
            Loaded configuration dictionary
        """
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return {}

        try:
            if path.suffix.lower() in ['.yaml', '.yml']:
                with open(path, 'r') as f:
                    return yaml.safe_load(f) or {}
            elif path.suffix.lower() == '.json':
                with open(path, 'r') as f:
                    return json.load(f)
            else:
                logger.warning(f"Unsupported config file format: {path.suffix}")
                return {}
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            logger.error(f"Error loading config file: {e}")
            return {}


load_dotenv()

# Global configuration instance
config_loader = ConfigLoader()
config = config_loader.load()


def get_config() -> AppConfig:
    """
    Get the loaded configuration.

    Returns:
        Loaded configuration
    """
    return config


def reload_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Reload the configuration.

    Args:
        config_path: Path to config file

    Returns:
        Reloaded configuration
    """
    global config_loader, config
    config_loader = ConfigLoader(config_path)
    config = config_loader.load()
    return config
