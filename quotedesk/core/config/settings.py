"""Configuration management for quotedesk."""

import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from quotedesk.core.exceptions import ConfigurationError

DEFAULT_HOME = Path.home() / ".quotedesk"

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

DEFAULT_ALLOWED_MEDIA_TYPES: tuple[str, ...] = (
    "application/pdf",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/png",
    "image/gif",
    "text/plain",
)


@dataclass
class StorageConfig:
    """Durable store locations."""

    database_path: str = str(DEFAULT_HOME / "quotedesk.duckdb")
    mirror_path: str = str(DEFAULT_HOME / "sourcing_entries.json")


@dataclass
class AttachmentConfig:
    """Attachment validation and image transform settings."""

    max_size: int = 10 * 1024 * 1024
    allowed_media_types: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_MEDIA_TYPES))
    max_dimension: int = 1920
    quality: int = 80


@dataclass
class AutoSaveConfig:
    """Periodic save settings."""

    enabled: bool = True
    interval_seconds: float = 30.0


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "WARNING"
    file: str | None = None


@dataclass
class SessionConfig:
    """Editing session defaults."""

    user: str = "unknown"


@dataclass
class QuoteDeskConfig:
    """Top level configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    attachments: AttachmentConfig = field(default_factory=AttachmentConfig)
    autosave: AutoSaveConfig = field(default_factory=AutoSaveConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    def __post_init__(self) -> None:
        if self.attachments.max_size <= 0:
            raise ConfigurationError("attachments.max_size must be positive", {"value": self.attachments.max_size})
        if not 1 <= self.attachments.quality <= 100:
            raise ConfigurationError(
                "attachments.quality must be between 1 and 100", {"value": self.attachments.quality}
            )
        if self.logging.level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"Unknown logging.level '{self.logging.level}'", {"value": self.logging.level})
        if self.autosave.interval_seconds <= 0:
            raise ConfigurationError(
                "autosave.interval_seconds must be positive", {"value": self.autosave.interval_seconds}
            )

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "QuoteDeskConfig":
        """Build a configuration from a nested dictionary."""
        try:
            return cls(
                storage=StorageConfig(**config_dict.get("storage", {})),
                attachments=AttachmentConfig(**config_dict.get("attachments", {})),
                autosave=AutoSaveConfig(**config_dict.get("autosave", {})),
                logging=LoggingConfig(**config_dict.get("logging", {})),
                session=SessionConfig(**config_dict.get("session", {})),
            )
        except TypeError as exc:
            raise ConfigurationError(f"Unknown configuration key: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        """Convert to a nested dictionary."""
        return {
            "storage": asdict(self.storage),
            "attachments": asdict(self.attachments),
            "autosave": asdict(self.autosave),
            "logging": asdict(self.logging),
            "session": asdict(self.session),
        }


def _deep_update(d: dict[str, Any], u: dict[str, Any]) -> dict[str, Any]:
    for k, v in u.items():
        if isinstance(v, dict):
            d[k] = _deep_update(d.get(k, {}), v)
        else:
            d[k] = v
    return d


class ConfigManager:
    """Loads configuration from a TOML file and the environment."""

    def __init__(self, config_path: Path | None = None, use_env: bool = True):
        """Initialise the manager.

        Args:
            config_path: TOML file; ``~/.quotedesk/config.toml`` when None
            use_env: apply ``QUOTEDESK_*`` overrides on top of the file
        """
        self.config_path = config_path or DEFAULT_HOME / "config.toml"
        self.use_env = use_env
        self.config = self._load_config()

    def _load_config(self) -> QuoteDeskConfig:
        config_dict: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.warning("Failed to load config from {}: {}", self.config_path, e)
                config_dict = {}
        if self.use_env:
            _deep_update(config_dict, load_config_from_env())
        return QuoteDeskConfig.from_dict(config_dict)

    def get_config(self) -> QuoteDeskConfig:
        """Return the active configuration."""
        return self.config

    def update_config(self, **updates: Any) -> None:
        """Apply nested updates, e.g. ``update_config(autosave={"enabled": False})``."""
        config_dict = _deep_update(self.config.to_dict(), updates)
        self.config = QuoteDeskConfig.from_dict(config_dict)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_number(name: str, value: str, convert: type[int] | type[float]) -> int | float:
    try:
        return convert(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got '{value}'", {"variable": name}) from exc


def load_config_from_env() -> dict[str, Any]:
    """Read ``QUOTEDESK_*`` environment overrides into a nested dictionary."""
    config: dict[str, Any] = {}

    storage_config: dict[str, Any] = {}
    if os.getenv("QUOTEDESK_DATABASE_PATH"):
        storage_config["database_path"] = os.getenv("QUOTEDESK_DATABASE_PATH")
    if os.getenv("QUOTEDESK_MIRROR_PATH"):
        storage_config["mirror_path"] = os.getenv("QUOTEDESK_MIRROR_PATH")
    if storage_config:
        config["storage"] = storage_config

    attachment_config: dict[str, Any] = {}
    max_size = os.getenv("QUOTEDESK_ATTACHMENT_MAX_SIZE")
    if max_size is not None:
        attachment_config["max_size"] = _env_number("QUOTEDESK_ATTACHMENT_MAX_SIZE", max_size, int)
    if attachment_config:
        config["attachments"] = attachment_config

    autosave_config: dict[str, Any] = {}
    autosave_enabled = os.getenv("QUOTEDESK_AUTOSAVE_ENABLED")
    if autosave_enabled is not None:
        autosave_config["enabled"] = _env_bool(autosave_enabled)
    autosave_interval = os.getenv("QUOTEDESK_AUTOSAVE_INTERVAL")
    if autosave_interval is not None:
        autosave_config["interval_seconds"] = _env_number("QUOTEDESK_AUTOSAVE_INTERVAL", autosave_interval, float)
    if autosave_config:
        config["autosave"] = autosave_config

    logging_config: dict[str, Any] = {}
    if os.getenv("QUOTEDESK_LOGGING_LEVEL"):
        logging_config["level"] = os.getenv("QUOTEDESK_LOGGING_LEVEL")
    if os.getenv("QUOTEDESK_LOGGING_FILE"):
        logging_config["file"] = os.getenv("QUOTEDESK_LOGGING_FILE")
    if logging_config:
        config["logging"] = logging_config

    if os.getenv("QUOTEDESK_USER"):
        config["session"] = {"user": os.getenv("QUOTEDESK_USER")}

    return config


def get_default_config() -> QuoteDeskConfig:
    """Return the default configuration."""
    return QuoteDeskConfig()
