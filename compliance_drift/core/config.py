"""
Configuration management for the compliance drift engine using Pydantic settings.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatchingConfig(BaseModel):
    """Control matching settings."""

    weight_semantic: float = Field(default=0.7, description="Weight of embedding similarity")
    weight_tag: float = Field(default=0.3, description="Weight of topic tag overlap")
    min_score: float = Field(default=0.15, description="Minimum blended score kept")
    top_k: int = Field(default=5, description="Maximum controls per finding")
    max_workers: int = Field(default=4, description="Threads used for batch matching")
    batch_timeout: Optional[float] = Field(
        default=None,
        description="Seconds before an unfinished batch is reported as partial"
    )


class TaggingConfig(BaseModel):
    """Topic tagging settings."""

    top_n_topics: int = Field(default=3, description="Topics assigned per embedding")


class RemediationConfig(BaseModel):
    """Remediation table settings."""

    table_path: Optional[Path] = Field(
        default=None,
        description="YAML file mapping finding categories to remediation text"
    )


class Config(BaseSettings):
    """Main configuration class for the compliance drift engine."""

    # Application settings
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = Field(default=None)

    # Component configurations
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    tagging: TaggingConfig = Field(default_factory=TaggingConfig)
    remediation: RemediationConfig = Field(default_factory=RemediationConfig)

    model_config = SettingsConfigDict(
        env_prefix="COMPLIANCE_DRIFT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


# Global configuration instance
config: Optional[Config] = None


def load_config(path: Path) -> Config:
    """
    Load configuration from a YAML file.

    Values from the file take precedence over environment variables.

    Args:
        path: Path to a YAML document with the same shape as ``Config``

    Returns:
        Loaded configuration
    """
    with open(path, "r", encoding="utf-8") as f:
        data: Dict[str, Any] = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return Config(**data)


def get_config() -> Config:
    """Get the global configuration instance."""
    global config
    if config is None:
        config = Config()
    return config


def set_config(new_config: Config) -> Config:
    """Replace the global configuration instance."""
    global config
    config = new_config
    return config


def reload_config() -> Config:
    """Reload the configuration from environment variables."""
    global config
    config = Config()
    return config
