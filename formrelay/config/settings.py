"""
Server settings loader (proxy and local sheet handler)
"""
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

from formrelay.exceptions import ConfigurationError

DEFAULT_CONFIG_FILE = "formrelay.yaml"

DEV_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:5500",
    "http://localhost:5500",
]


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = "INFO"


class TimeoutConfig(BaseModel):
    """Outbound request timeouts in seconds"""
    forward: float = 30.0
    connection_test: float = 15.0


class Settings(BaseModel):
    """Server settings"""
    google_script_url: Optional[str] = None
    environment: str = "development"  # development or production
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = Field(default_factory=lambda: list(DEV_CORS_ORIGINS))
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)

    # Internal fields
    config_file: Optional[Path] = None

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def _env_overrides() -> Dict[str, Any]:
    """環境変数から設定の上書き値を集める"""
    overrides: Dict[str, Any] = {}

    if os.environ.get("GOOGLE_SCRIPT_URL"):
        overrides["google_script_url"] = os.environ["GOOGLE_SCRIPT_URL"]
    if os.environ.get("FORMRELAY_ENV"):
        overrides["environment"] = os.environ["FORMRELAY_ENV"]
    if os.environ.get("HOST"):
        overrides["host"] = os.environ["HOST"]
    if os.environ.get("PORT"):
        overrides["port"] = os.environ["PORT"]
    if os.environ.get("FORMRELAY_CORS_ORIGINS"):
        overrides["cors_origins"] = [
            origin.strip()
            for origin in os.environ["FORMRELAY_CORS_ORIGINS"].split(",")
            if origin.strip()
        ]
    return overrides


def load_settings(config_file: Optional[Path] = None) -> Settings:
    """Load settings from an optional YAML file, then environment variables.

    Args:
        config_file: YAML file path. Defaults to ``formrelay.yaml`` in the
            current directory when it exists.

    Returns:
        Settings with environment overrides applied

    Raises:
        ConfigurationError: If an explicit config file is missing or invalid
    """
    data: Dict[str, Any] = {}

    if config_file is None:
        candidate = Path.cwd() / DEFAULT_CONFIG_FILE
        config_file = candidate if candidate.exists() else None
    elif not config_file.exists():
        raise ConfigurationError(f"Configuration file not found: {config_file}")

    if config_file is not None:
        try:
            with open(config_file) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_file}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid config data in {config_file}")

    data.update(_env_overrides())

    log_level = os.environ.get("FORMRELAY_LOG_LEVEL")
    if log_level:
        data.setdefault("logging", {})
        data["logging"]["level"] = log_level

    settings = Settings(**data)
    settings.config_file = config_file
    return settings
