from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "postgresql+psycopg://faire@localhost:5432/faire_sync"

    faire_api_base_url: str = "https://www.faire.com/external-api/v2"
    faire_page_size: int = 50
    faire_page_delay: float = 0.3  # delay between page fetches (rate limit)
    faire_request_timeout: float = 60.0
    faire_connect_timeout: float = 10.0

    faire_retry_count: int = 4  # tenacity attempts per page
    faire_retry_max_wait: float = 30.0

    batch_commit_size: int = 200  # commit every N reconciled records
    store_concurrency: int = 1  # stores synced in parallel
    run_timeout_seconds: float = 0  # 0 = no deadline

    error_preview_count: int = 3
    sync_log_error_limit: int = 10

    log_level: str = "INFO"

    @field_validator("database_url")
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        if v and not v.startswith(("postgresql", "sqlite")):
            raise ValueError("database_url must start with 'postgresql' or 'sqlite'")
        return v

    @field_validator("faire_api_base_url")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("faire_api_base_url must start with 'http://' or 'https://'")
        return v.rstrip("/")

    @field_validator("faire_page_delay", "faire_retry_max_wait", "run_timeout_seconds")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("delays and timeouts must be >= 0")
        return v

    @field_validator("faire_page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if not 1 <= v <= 50:
            raise ValueError("faire_page_size must be between 1 and 50")
        return v

    @field_validator("batch_commit_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if not 1 <= v <= 2000:
            raise ValueError("batch_commit_size must be between 1 and 2000")
        return v

    @field_validator("store_concurrency", "faire_retry_count")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be >= 1")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)


def get_settings() -> Settings:
    return Settings()
