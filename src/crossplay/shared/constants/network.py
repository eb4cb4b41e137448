"""
Network Configuration Constants

Timeouts, retry policy and per-source pacing defaults.
"""


class NetworkConfig:
    """Network configuration constants."""

    CONNECT_TIMEOUT = 10.0
    TOTAL_TIMEOUT = 20.0

    USER_AGENT = "Crossplay/0.6.0 (+https://github.com/crossplay/crossplay)"

    # Retry settings (rate-limit responses only)
    MAX_RETRIES = 3
    INITIAL_BACKOFF = 1.0
    MAX_BACKOFF = 60.0

    # Minimum interval between requests, per source (seconds)
    WIKIDATA_MIN_INTERVAL = 0.5
    IGDB_MIN_INTERVAL = 0.25
    OPENCRITIC_MIN_INTERVAL = 0.5

    # Message router
    DEFAULT_RESPONSE_TIMEOUT = 30.0
