"""
Cache Configuration Constants

Key prefixes and TTL defaults for the resolution cache.
"""

MS_PER_SECOND = 1000
MS_PER_DAY = 24 * 60 * 60 * MS_PER_SECOND


class CacheConfig:
    """Resolution cache configuration constants."""

    DEFAULT_TTL_DAYS = 7
    DEFAULT_NEGATIVE_TTL_DAYS = 7
    DEFAULT_DB_FILENAME = "crossplay_cache.db"
    DEFAULT_DIRECTORY = "cache"

    # Key prefixes, one namespace per lookup kind
    AVAILABILITY_KEY_PREFIX = "crossplay_availability_"
    REVIEW_KEY_PREFIX = "crossplay_review_"

    TABLE_NAME = "cache_entries"
