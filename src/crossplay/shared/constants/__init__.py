"""
Crossplay Constants Module

Centralized constants for the resolution engine. All magic values are
defined here to keep a single source of truth.
"""

from .cache import MS_PER_DAY, CacheConfig
from .http_codes import ContentTypes, HTTPHeaders, HTTPStatusCodes
from .network import NetworkConfig
from .sources import (
    IGDBConfig,
    MatchingConfig,
    OpenCriticConfig,
    StoreSearchUrls,
    WikidataConfig,
)

__all__ = [
    "MS_PER_DAY",
    "CacheConfig",
    "ContentTypes",
    "HTTPHeaders",
    "HTTPStatusCodes",
    "IGDBConfig",
    "MatchingConfig",
    "NetworkConfig",
    "OpenCriticConfig",
    "StoreSearchUrls",
    "WikidataConfig",
]
