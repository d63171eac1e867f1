"""Configuration management for harvest.

Loads configuration from:
1. harvest.yaml in current directory
2. ~/.config/harvest/harvest.yaml
3. Environment variables (HARVEST_* prefix)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Real project slugs only; "terminal" and "unassigned" are never allowed.
DEFAULT_ALLOWED_SLUGS = [
    "ai-chad",
    "ai-jen",
    "ai-susan",
    "ai-clair",
    "ai-jason",
    "dev-studio",
    "kodiack-dashboard",
    "kodiack-studio",
    "nextbid",
    "premier-group",
]


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: Path = Field(default=Path("./data/harvest.db"))
    wal_mode: bool = True


class ExtractionConfig(BaseModel):
    """Session selection and extraction settings."""

    allowed_slugs: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_SLUGS))
    since: str = "3h"
    limit: int = Field(default=10, ge=1)
    status: str | None = Field(
        default="cleaned",
        description="Required session status; None selects any non-extracted session",
    )
    verify_transcripts: bool = Field(
        default=True,
        description="Require a stored clean transcript before a session is selected",
    )
    overfetch_factor: int = Field(default=3, ge=1)
    normalize_transcripts: bool = Field(
        default=False,
        description="Strip terminal escape sequences from transcripts before extraction",
    )
    extractor_name: str = "harvest-v1"


class ProjectsConfig(BaseModel):
    """Project resolution settings."""

    cache_ttl_seconds: float = Field(default=300.0, ge=0)


class ServerConfig(BaseModel):
    """Status server settings."""

    host: str = "127.0.0.1"
    port: int = 5408


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Path | None = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5


class Config(BaseSettings):
    """Main configuration for harvest."""

    model_config = SettingsConfigDict(
        env_prefix="HARVEST_",
        env_nested_delimiter="__",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    projects: ProjectsConfig = Field(default_factory=ProjectsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def find_config_file() -> Path | None:
    """Find the configuration file.

    Searches in order:
    1. ./harvest.yaml
    2. ~/.config/harvest/harvest.yaml
    """
    locations = [
        Path.cwd() / "harvest.yaml",
        Path.home() / ".config" / "harvest" / "harvest.yaml",
    ]

    for path in locations:
        if path.exists():
            return path

    return None


def load_config() -> Config:
    """Load configuration from file and environment.

    Returns:
        Config: The loaded configuration.
    """
    config_data: dict[str, Any] = {}

    config_file = find_config_file()
    if config_file:
        with open(config_file) as f:
            config_data = yaml.safe_load(f) or {}

    # Environment overrides for common settings
    env_overrides = {
        "HARVEST_DB_PATH": ("database", "path"),
        "HARVEST_STATUS_PORT": ("server", "port"),
        "HARVEST_LOG_FILE": ("logging", "file"),
    }

    for env_var, path in env_overrides.items():
        value = os.environ.get(env_var)
        if value:
            section, key = path
            if section not in config_data:
                config_data[section] = {}
            config_data[section][key] = value

    return Config(**config_data)


# Global config instance (lazy loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
