"""Resolution services: cache, pacing, matching, sources and the resolver."""

from .cache_store import SQLiteCacheStore
from .dispatch import MessageRouter
from .http_client import HttpClient
from .manual_overrides import ManualOverrides
from .name_matcher import (
    NameMatcher,
    calculate_similarity,
    create_slug,
    normalize_title,
    select_best_candidate,
)
from .rate_limiter import RequestScheduler, SourceRateLimiter
from .resolver import Resolver
from .token_manager import TwitchTokenManager

__all__ = [
    "HttpClient",
    "ManualOverrides",
    "MessageRouter",
    "NameMatcher",
    "RequestScheduler",
    "Resolver",
    "SQLiteCacheStore",
    "SourceRateLimiter",
    "TwitchTokenManager",
    "calculate_similarity",
    "create_slug",
    "normalize_title",
    "select_best_candidate",
]
