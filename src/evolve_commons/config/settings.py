"""
Settings for evolve-commons.

Per-resource TTLs live here rather than in the cache store: the store defines
no defaults and every caller passes the TTL appropriate for its resource.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MINUTE_MS = 60 * 1000


class EvolveSettings(BaseSettings):
    """Cache, mutation and remote service settings."""

    model_config = SettingsConfigDict(
        env_prefix="EVOLVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Cache keys
    cache_namespace: str = Field(default="evolve", description="Prefix of every cache key")

    # TTLs in milliseconds
    ttl_feed_ms: int = Field(default=15 * MINUTE_MS, ge=0, description="Social/feed data TTL")
    ttl_journal_ms: int = Field(default=15 * MINUTE_MS, ge=0, description="Journal entries TTL")
    ttl_history_ms: int = Field(default=30 * MINUTE_MS, ge=0, description="Historical logs TTL")
    ttl_plan_ms: int = Field(default=60 * MINUTE_MS, ge=0, description="Generated plans TTL")
    ttl_profile_ms: int = Field(default=5 * MINUTE_MS, ge=0, description="User profile TTL")
    ttl_daily_logs_ms: int = Field(default=15 * MINUTE_MS, ge=0, description="Daily mood/symptom logs TTL")

    # Cache sizing
    max_item_bytes: Optional[int] = Field(default=500 * 1024, ge=1, description="Largest value that will be cached")
    max_total_bytes: Optional[int] = Field(default=5 * 1024 * 1024, ge=1, description="Cache size before cleanup")
    cache_single_flight: bool = Field(default=True, description="Share one populate call per key")

    # Mutations
    serialize_mutations: bool = Field(default=False, description="Run mutations per cache key one at a time")

    # Lists
    feed_page_size: int = Field(default=10, ge=1, le=1000)
    history_limit: int = Field(default=50, ge=1, le=1000)
    daily_log_limit: int = Field(default=90, ge=1, le=1000)

    # Persistent store
    redis_url: Optional[str] = Field(default=None, description="Redis URL for the persistent store")

    # Remote data service
    remote_base_url: Optional[str] = Field(default=None, description="Remote data service base URL")
    remote_api_key: Optional[SecretStr] = Field(default=None, description="Remote data service API key")
    remote_timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("cache_namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """Namespace must be lowercase ASCII without the key separator."""
        if not v or not v.isascii() or "_" in v or v != v.lower():
            raise ValueError("cache_namespace must be non-empty lowercase ASCII without '_'")
        return v


@lru_cache()
def get_settings() -> EvolveSettings:
    """Get cached settings instance."""
    return EvolveSettings()
