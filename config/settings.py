from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Core/runtime
    db_path: str
    run_env: str
    log_level: str

    # Geo index
    geo_index_backend: str  # sqlite | meilisearch
    meili_url: str
    meili_api_key: str | None
    meili_index: str
    request_timeout_seconds: int
    max_retries: int
    search_hit_limit: int

    # Pagination
    stations_per_page: int
    companies_per_page: int

    # Hierarchy
    max_hierarchy_depth: int

    # Index propagation
    index_sync_batch_size: int = 100
    index_sync_immediate: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    backend = os.getenv("GEO_INDEX_BACKEND", "sqlite").lower()
    meili_url = os.getenv("MEILI_URL", "http://localhost:7700")

    if backend == "meilisearch" and not meili_url:
        raise RuntimeError("MEILI_URL required when GEO_INDEX_BACKEND=meilisearch")
    return Settings(
        db_path=os.getenv("DB_PATH", "stations.db"),
        run_env=os.getenv("RUN_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        geo_index_backend=backend,
        meili_url=meili_url,
        meili_api_key=os.getenv("MEILI_API_KEY"),
        meili_index=os.getenv("MEILI_INDEX", "stations"),
        request_timeout_seconds=int(os.getenv("REQUEST_TIMEOUT", "30")),
        max_retries=int(os.getenv("MAX_RETRIES", "3")),
        search_hit_limit=int(os.getenv("SEARCH_HIT_LIMIT", "1000")),
        stations_per_page=int(os.getenv("STATIONS_PER_PAGE", "10")),
        companies_per_page=int(os.getenv("COMPANIES_PER_PAGE", "10")),
        max_hierarchy_depth=int(os.getenv("MAX_HIERARCHY_DEPTH", "256")),
        index_sync_batch_size=int(os.getenv("INDEX_SYNC_BATCH_SIZE", "100")),
        index_sync_immediate=_as_bool(os.getenv("INDEX_SYNC_IMMEDIATE"), False),
    )
