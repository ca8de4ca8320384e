"""Configuration management for the Plura API.

Provides infrastructure settings loaded from environment variables.
"""

from .app_settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
