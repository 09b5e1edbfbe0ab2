from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    environment: str = "development"
    debug: bool = True
    allowed_origins: str = "http://localhost:3000"

    # Record API (the store that owns onboarding trackers)
    record_api_url: str = "http://localhost:3000/api/v1/admin/onboarding"
    record_api_timeout_seconds: float = 10.0

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    snapshot_cache_ttl_seconds: int = 30
    session_ttl_seconds: int = 3600  # staged edits expire after 1 hour idle
    commit_lock_seconds: int = 30

    # Notices
    license_warning_days: int = 60

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "DRIVEDOCK_"}


settings = Settings()
