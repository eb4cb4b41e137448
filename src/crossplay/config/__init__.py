"""Crossplay Configuration Module

Unified access to the configuration models and the settings loader:
- Settings: Main configuration facade
- Loader functions: get_config, load_settings, reload_config
- Domain models: App, Logging, API (per source), Cache settings
"""

from __future__ import annotations

from .models.settings import Settings

from .models import (
    APISettings,
    AppSettings,
    CacheSettings,
    HttpSettings,
    IGDBSettings,
    LoggingSettings,
    MatchingSettings,
    OpenCriticSettings,
    RetrySettings,
    WikidataSettings,
)

from .loader import get_config, load_settings, reload_config

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
    "get_config",
    "load_settings",
    "reload_config",
]
