"""Configuration models."""

from .api_settings import (
    APISettings,
    HttpSettings,
    IGDBSettings,
    MatchingSettings,
    OpenCriticSettings,
    RetrySettings,
    WikidataSettings,
)
from .app_settings import AppSettings, LoggingSettings
from .cache_settings import CacheSettings
from .settings import Settings

__all__ = [
    "APISettings",
    "AppSettings",
    "CacheSettings",
    "HttpSettings",
    "IGDBSettings",
    "LoggingSettings",
    "MatchingSettings",
    "OpenCriticSettings",
    "RetrySettings",
    "Settings",
    "WikidataSettings",
]
