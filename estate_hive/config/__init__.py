"""Application configuration"""
from estate_hive.config.settings import settings, Settings, ConfigurationError

__all__ = ["settings", "Settings", "ConfigurationError"]
