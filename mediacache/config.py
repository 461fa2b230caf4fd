"""
Configuration management for mediacache.

Handles loading, validation, and access to cache configuration.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from mediacache.cache.base import ConfigurationError

# Global configuration instance
_config: Optional["CacheSettings"] = None


class LocalTierConfig(BaseModel):
    """In-process LRU tier configuration."""
    max_entries: int = Field(default=1000, gt=0)
    ttl_seconds: int = Field(default=1800, gt=0)
    cleanup_interval_seconds: int = Field(default=60, ge=0)  # 0 = no background sweep


class SharedTierConfig(BaseModel):
    """Shared (Redis) tier configuration."""
    endpoint: Optional[str] = None  # e.g. redis://localhost:6379/0; None disables the tier
    ttl_seconds: int = Field(default=1800, gt=0)
    prefix: str = "mediacache:"
    socket_timeout: float = Field(default=2.0, gt=0)
    compression_threshold: int = Field(default=1024, ge=0)  # bytes, 0 = disabled


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class CacheSettings(BaseModel):
    """Main mediacache configuration."""
    namespace: str = "tmdb"
    local_tier: LocalTierConfig = Field(default_factory=LocalTierConfig)
    shared_tier: SharedTierConfig = Field(default_factory=SharedTierConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: Optional[str] = None) -> CacheSettings:
    """
    Load configuration from file.

    Args:
        config_path: Path to config file. Defaults to mediacache.yaml in the
            current directory when present.

    Returns:
        Loaded and validated configuration.

    Raises:
        ConfigurationError: If the file or overrides hold invalid settings.
    """
    global _config

    if config_path is None:
        default_path = Path("mediacache.yaml")
        if default_path.exists():
            config_path = str(default_path)

    config_data: dict[str, Any] = {}

    if config_path and Path(config_path).exists():
        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    _deep_merge(config_data, _get_env_overrides())

    try:
        _config = CacheSettings(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid cache configuration: {e}") from e
    return _config


def get_config() -> CacheSettings:
    """
    Get the current configuration.

    Returns:
        Current configuration (loads default if not yet loaded).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> CacheSettings:
    """Reload configuration from disk."""
    global _config
    _config = None
    return load_config()


def _get_env_overrides() -> dict[str, Any]:
    """
    Get configuration overrides from environment variables.

    Values are passed through as raw strings; the target field's type decides
    the coercion, so MEDIACACHE_NAMESPACE=yes stays the string "yes" while
    MEDIACACHE_LOCAL_TTL=60 becomes an int.
    """
    overrides: dict[str, Any] = {}

    # Map of environment variables to config paths
    env_map = {
        "MEDIACACHE_NAMESPACE": ("namespace",),
        "MEDIACACHE_REDIS_URL": ("shared_tier", "endpoint"),
        "MEDIACACHE_SHARED_TTL": ("shared_tier", "ttl_seconds"),
        "MEDIACACHE_LOCAL_MAX_ENTRIES": ("local_tier", "max_entries"),
        "MEDIACACHE_LOCAL_TTL": ("local_tier", "ttl_seconds"),
        "MEDIACACHE_LOG_LEVEL": ("logging", "level"),
    }

    for env_var, (*sections, field) in env_map.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        target = overrides
        for section in sections:
            target = target.setdefault(section, {})
        target[field] = value

    return overrides


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    """Deep merge override into base dictionary."""
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


class _ConfigProxy:
    """
    Lazy view of the loaded settings.

    Allows modules to import `config` directly and access it like:
        from mediacache.config import config
        config.local_tier.max_entries

    Settings are loaded on first attribute access and every access reads
    the current instance, so reload_config() is picked up.
    """

    def __getattr__(self, name: str) -> Any:
        return getattr(get_config(), name)

    def __repr__(self) -> str:
        return f"<ConfigProxy for {get_config()!r}>"


config = _ConfigProxy()
