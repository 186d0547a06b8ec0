"""Configuration package."""

from .settings import LoggingSettings, PipelineSettings, Settings, settings

__all__ = ["LoggingSettings", "PipelineSettings", "Settings", "settings"]
