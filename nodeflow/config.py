"""Configuration management for the NodeFlow engine.

Every ``AppConfig`` field can be set through an environment variable named
after it with the ``NODEFLOW_`` prefix, e.g. ``NODEFLOW_DATABASE_URL``. List
fields take comma-separated values.
"""

import os
from enum import Enum
from typing import Any, Dict, List, Optional, get_origin

from pydantic import BaseModel, Field, field_validator

from .core.exceptions import ConfigurationError

ENV_PREFIX = "NODEFLOW_"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseType(str, Enum):
    """Supported database types."""
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


def _scheme(database_url: str) -> str:
    return database_url.split("://")[0].split("+")[0].lower()


class AppConfig(BaseModel):
    """Application configuration settings."""

    # Application
    app_name: str = Field(default="NodeFlow", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    reload: bool = Field(default=False, description="Enable auto-reload in development")

    # Database
    database_url: str = Field(default="sqlite:///./nodeflow.db", description="Database connection URL")
    database_echo: bool = Field(default=False, description="Enable SQLAlchemy query logging")

    # Engine
    trigger_category: str = Field(default="triggers", description="Definition category marking trigger nodes")
    default_handle: str = Field(default="body", description="Handle used when an edge names none")
    message_key: str = Field(default="message", description="Key of the message carried across nodes")
    correlation_keys: List[str] = Field(
        default=["leadId"],
        description="Additional keys carried across nodes next to the message"
    )
    interpolate_inputs: bool = Field(
        default=True,
        description="Resolve ${{...}} placeholders in node inputs before processing"
    )

    # Logging
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: Optional[str] = Field(default=None, description="Plain-text log format; None uses the default")
    log_file: Optional[str] = Field(default=None, description="Log file path")
    log_max_size: int = Field(default=10 * 1024 * 1024, description="Maximum log file size in bytes")
    log_backup_count: int = Field(default=5, description="Number of log backup files to keep")
    structured_logging: bool = Field(default=False, description="Emit log records as JSON")

    # HTTP
    enable_request_logging: bool = Field(default=True, description="Log every HTTP request")
    cors_origins: List[str] = Field(default=["*"], description="CORS allowed origins")
    cors_methods: List[str] = Field(default=["GET", "POST"], description="CORS allowed methods")

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("Database URL cannot be empty")
        supported = [t.value for t in DatabaseType]
        if _scheme(v) not in supported:
            raise ValueError(f"Unsupported database scheme: {_scheme(v)}. Supported: {supported}")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("trigger_category", "default_handle", "message_key")
    @classmethod
    def validate_names(cls, v):
        if not v or not v.strip():
            raise ValueError("Engine names cannot be empty")
        return v.strip()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @property
    def database_type(self) -> DatabaseType:
        return DatabaseType(_scheme(self.database_url))

    @property
    def is_sqlite(self) -> bool:
        return self.database_type == DatabaseType.SQLITE

    def get_uvicorn_config(self) -> Dict[str, Any]:
        """Keyword arguments for ``uvicorn.run``."""
        return {
            "host": self.host,
            "port": self.port,
            "reload": self.reload,
            "log_level": self.log_level.value.lower(),
            "access_log": self.debug
        }

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build a configuration from ``NODEFLOW_*`` environment variables.

        Unset variables keep the field default; pydantic converts the rest.
        """
        values: Dict[str, Any] = {}
        for name, field in cls.model_fields.items():
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            if get_origin(field.annotation) is list:
                values[name] = [item.strip() for item in raw.split(",") if item.strip()]
            else:
                values[name] = raw
        return cls(**values)


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Process-wide configuration, read from the environment on first use."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def load_config(config_file: Optional[str] = None) -> AppConfig:
    """Load a dotenv file (``.env`` by default) into the environment, then rebuild the configuration."""
    global _config
    from dotenv import load_dotenv

    path = config_file or ".env"
    if os.path.exists(path):
        load_dotenv(path)

    _config = AppConfig.from_env()
    return _config


def reset_config():
    global _config
    _config = None


def _ensure_directory(path: str, what: str, errors: List[str]) -> None:
    directory = os.path.dirname(path)
    if not directory or os.path.isdir(directory):
        return
    try:
        os.makedirs(directory, exist_ok=True)
    except OSError as e:
        errors.append(f"Cannot create {what} directory {directory}: {e}")


def validate_config(config: AppConfig) -> None:
    """Create missing sqlite and log directories; raise ConfigurationError if that fails."""
    errors: List[str] = []

    if config.is_sqlite:
        db_path = config.database_url.split(":///", 1)[-1]
        if db_path != ":memory:":
            _ensure_directory(db_path, "database", errors)
    if config.log_file:
        _ensure_directory(config.log_file, "log", errors)

    if errors:
        raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")


def get_testing_config(database_url: str = "sqlite:///:memory:") -> AppConfig:
    """Configuration for tests: debug on, quiet logging, no request log."""
    return AppConfig(
        debug=True,
        database_url=database_url,
        log_level=LogLevel.WARNING,
        enable_request_logging=False,
    )
