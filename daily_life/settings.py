"""
Global application settings and configuration management.

This module provides centralized configuration management using Pydantic Settings
with support for environment variables, YAML configuration files, and validation.
"""

from pathlib import Path
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml
from dotenv import load_dotenv

from .core.exceptions import ConfigurationError


class StorageSettings(BaseSettings):
    """Location and behaviour of the JSON data files."""

    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding entries and settings files"
    )
    entries_file: str = Field(default="entries.json", description="Entries collection file name")
    settings_file: str = Field(default="settings.json", description="Settings record file name")
    io_timeout: float = Field(
        default=5.0,
        gt=0.0,
        description="Seconds before a file read or write is abandoned"
    )

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    @field_validator("data_dir")
    def validate_data_dir(cls, v: Path) -> Path:
        """Expand and resolve the data directory."""
        if isinstance(v, str):
            v = Path(v)
        return v.expanduser().resolve()

    @property
    def entries_path(self) -> Path:
        return self.data_dir / self.entries_file

    @property
    def settings_path(self) -> Path:
        return self.data_dir / self.settings_file


class ServerSettings(BaseSettings):
    """HTTP server configuration."""

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=3001, ge=1, le=65535, description="Bind port")
    cors_origins: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins (JSON list in the environment, comma-separated in YAML)"
    )

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


class ClientSettings(BaseSettings):
    """Data service client configuration."""

    base_url: str = Field(
        default="http://localhost:3001/api",
        description="Base URL of the data server API"
    )
    timeout: float = Field(default=10.0, gt=0.0, description="Request timeout in seconds")

    model_config = SettingsConfigDict(env_prefix="CLIENT_")

    @field_validator("base_url")
    def validate_base_url(cls, v: str) -> str:
        """Strip the trailing slash so endpoints can be appended."""
        return v.rstrip("/")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    file: Optional[Path] = Field(
        default=Path("logs/daily_life.log"),
        description="Log file path"
    )

    model_config = SettingsConfigDict(env_prefix="LOG_")

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v

    @field_validator("file")
    def validate_log_file(cls, v: Optional[Path]) -> Optional[Path]:
        """Resolve the log file path."""
        if v is None:
            return None
        if isinstance(v, str):
            v = Path(v)
        return v.resolve()


class AppSettings(BaseSettings):
    """Main application settings."""

    name: str = Field(default="DailyLife", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")

    # Sub-configurations
    storage: StorageSettings = Field(default_factory=StorageSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "AppSettings":
        """Load settings from YAML file."""
        return cls(**_read_yaml(yaml_path))


def _read_yaml(yaml_path: Path) -> Dict[str, Any]:
    """Read a settings YAML file, lifting the optional ``app`` section to the top level."""
    if not yaml_path.exists():
        raise FileNotFoundError(f"Settings file not found: {yaml_path}")

    try:
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {yaml_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {yaml_path} must contain a mapping")

    app_section = data.pop("app", None)
    if isinstance(app_section, dict):
        data = {**app_section, **data}
    return data


def _explicit_values(model: BaseModel) -> Dict[str, Any]:
    """Collect the values that were set explicitly (e.g. from the environment)."""
    values: Dict[str, Any] = {}
    for name in type(model).model_fields:
        value = getattr(model, name)
        if isinstance(value, BaseModel):
            nested = _explicit_values(value)
            if nested:
                values[name] = nested
        elif name in model.model_fields_set:
            values[name] = value
    return values


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _first_location(error: ValidationError) -> Optional[str]:
    errors = error.errors()
    if not errors:
        return None
    return ".".join(str(part) for part in errors[0]["loc"])


def load_settings(
    yaml_path: Optional[Path] = None,
    env_file: Optional[Path] = None
) -> AppSettings:
    """
    Load application settings from multiple sources.

    Priority order:
    1. Environment variables
    2. YAML configuration file
    3. Default values

    Args:
        yaml_path: Path to YAML configuration file
        env_file: Path to environment file (.env)

    Returns:
        Configured AppSettings instance

    Raises:
        ConfigurationError: If a source holds an invalid value
    """
    # Load .env file explicitly
    if env_file and env_file.exists():
        load_dotenv(env_file)
    else:
        # Try to load from default .env location
        load_dotenv()

    try:
        # Start with defaults and environment variables
        settings = AppSettings()

        # Override with YAML configuration if provided
        if yaml_path and yaml_path.exists():
            yaml_data = _read_yaml(yaml_path)
            # Environment variables take precedence
            settings = AppSettings(**_deep_merge(yaml_data, _explicit_values(settings)))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e.error_count()} errors", config_key=_first_location(e)) from e

    return settings


# Global settings instance
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get global settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        # Try to load from default locations
        yaml_path = Path("configs/settings.yaml")
        env_path = Path(".env")
        _settings = load_settings(
            yaml_path=yaml_path if yaml_path.exists() else None,
            env_file=env_path if env_path.exists() else None
        )
    return _settings


def reload_settings(
    yaml_path: Optional[Path] = None,
    env_file: Optional[Path] = None
) -> AppSettings:
    """Reload settings from files (useful for testing or runtime config changes)."""
    global _settings
    _settings = load_settings(yaml_path=yaml_path, env_file=env_file)
    return _settings
