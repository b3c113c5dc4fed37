"""
Configuration module for the application.
Exports the settings instances for use throughout the application.
"""

from config.settings import settings
from config.redis_config import redis_settings

__all__ = ["settings", "redis_settings"]
