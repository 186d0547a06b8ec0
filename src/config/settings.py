"""
Configuration management for the tabular ML pipelines.
Uses Pydantic Settings for type-safe configuration with environment variable support.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")
    file_path: Optional[str] = Field(default=None)

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_log_format(cls, v):
        valid_formats = ["console", "json"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}")
        return v.lower()


class PipelineSettings(BaseSettings):
    """Defaults for loading data, fitting and storing models."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    seed: int = Field(default=0)
    data_dir: str = Field(default="Data")
    models_dir: str = Field(default="models")
    test_fraction: float = Field(default=0.2)
    max_text_features: int = Field(default=5000, ge=1)
    n_clusters: int = Field(default=3, ge=1)

    @field_validator("test_fraction")
    @classmethod
    def validate_test_fraction(cls, v):
        if not 0.0 < v < 1.0:
            raise ValueError("Test fraction must be between 0 and 1 (exclusive)")
        return v


class Settings(BaseSettings):
    """Main application settings combining all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="tabml")
    app_version: str = Field(default="0.1.0")

    # Sub-configurations
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)


# Global settings instance
settings = Settings()
