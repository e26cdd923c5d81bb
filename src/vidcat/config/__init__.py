"""Configuration package for vidcat."""

from vidcat.config.settings import AIProvider, Settings, get_settings

__all__ = ["AIProvider", "Settings", "get_settings"]
