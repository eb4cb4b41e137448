"""Cache configuration model."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from crossplay.shared.constants import CacheConfig


class CacheSettings(BaseModel):
    """Resolution cache location and TTL policy.

    Negative results ("queried, nothing there") get their own TTL so they
    can be re-checked sooner than positive ones; by default both are equal.
    """

    db_path: Path = Field(
        default=Path(CacheConfig.DEFAULT_DIRECTORY) / CacheConfig.DEFAULT_DB_FILENAME,
        description="SQLite cache file",
    )
    ttl_days: int = Field(default=CacheConfig.DEFAULT_TTL_DAYS, gt=0)
    negative_ttl_days: int = Field(default=CacheConfig.DEFAULT_NEGATIVE_TTL_DAYS, gt=0)


__all__ = ["CacheSettings"]
