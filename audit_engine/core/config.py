from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Audit engine settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "audit-engine"
    app_version: str = "0.1.0"
    environment: str = "local"

    database_url: str = "sqlite+aiosqlite:///./audit_engine.db"
    redis_url: str = ""
    json_logs: bool = False

    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = 0.0
    sentry_enable_logs: bool = False
    sentry_log_level: str = "error"

    aem_author_url: str = ""
    aem_author_token: str = ""
    aem_author_timeout_seconds: float = 10.0
    aem_max_pages: int = 10
    aem_pagination_delay_ms: int = 100

    similar_path_max_distance: int = 3

    mystique_queue_key: str = "audit:queue:spacecat-to-mystique"
    mystique_use_code_fix_flow: bool = False
    delivery_type: str = "aem_edge"
    # issue type -> PER_TYPE / PER_PAGE_PER_COMPONENT / PER_PAGE
    aggregation_granularity_overrides: dict[str, str] = {}

    fix_entity_reconcile_enabled: bool = True
    fix_entity_reconcile_interval_seconds: int = 3600
    live_check_timeout_seconds: float = 10.0


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
