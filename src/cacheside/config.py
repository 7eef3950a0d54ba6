from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CACHESIDE_", env_file=".env", extra="ignore")

    app_name: str = "cacheside"

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")

    # Every physical store the keyspace may be sharded across (comma-separated URLs).
    # Empty means only redis_url.
    cache_endpoints: str = Field(default="", validation_alias="CACHE_ENDPOINTS")

    # Batching
    store_chunk_size: int = Field(default=200, validation_alias="CACHE_STORE_CHUNK_SIZE")
    lookup_chunk_size: int = Field(default=10000, validation_alias="CACHE_LOOKUP_CHUNK_SIZE")
    purge_batch_size: int = Field(default=10000, validation_alias="CACHE_PURGE_BATCH_SIZE")
    scan_count: int = Field(default=10000, validation_alias="CACHE_SCAN_COUNT")

    # Key namespaces
    lock_prefix: str = "cache-lock"
    tag_prefix: str = "tagset"

    # Observability
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")
    log_level: str = "INFO"
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")

    @property
    def cache_endpoint_urls(self) -> list[str]:
        """Redis URLs that pattern purges must visit."""
        urls = [url.strip() for url in self.cache_endpoints.split(",") if url.strip()]
        if urls:
            return urls
        return [self.redis_url] if self.redis_url else []


settings = Settings()
