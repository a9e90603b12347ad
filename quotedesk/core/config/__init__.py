"""Configuration management module."""

from quotedesk.core.config.settings import (
    DEFAULT_ALLOWED_MEDIA_TYPES,
    AttachmentConfig,
    AutoSaveConfig,
    ConfigManager,
    LoggingConfig,
    QuoteDeskConfig,
    SessionConfig,
    StorageConfig,
    get_default_config,
    load_config_from_env,
)

__all__ = [
    "DEFAULT_ALLOWED_MEDIA_TYPES",
    "AttachmentConfig",
    "AutoSaveConfig",
    "ConfigManager",
    "LoggingConfig",
    "QuoteDeskConfig",
    "SessionConfig",
    "StorageConfig",
    "get_default_config",
    "load_config_from_env",
]
