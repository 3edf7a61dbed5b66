from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "pdf_indexer"
    db_username: str = "pdf_indexer"
    db_password: str = "secret"

    enable_indexing: bool = True
    pdf_engine: str = "pdfplumber"

    max_normal_size_mb: int = 20
    hard_limit_mb: int = 50
    large_file_page_cap: int = 3
    normal_memory_limit_mb: int = 256
    large_memory_limit_mb: int = 512

    lock_ttl_seconds: int = 120
    batch_base_delay_seconds: int = 60
    batch_max_delay_seconds: int = 300
    max_consecutive_errors: int = 5
    max_document_failures: int = 3

    watchdog_interval_seconds: int = 300
    stall_threshold_seconds: int = 180
    watchdog_restart_delay_seconds: int = 10

    count_cache_ttl_seconds: int = 30
    progress_log_capacity: int = 50
    task_poll_interval_seconds: int = 5

    @property
    def max_normal_size_bytes(self) -> int:
        return self.max_normal_size_mb * 1024 * 1024

    @property
    def hard_limit_bytes(self) -> int:
        return self.hard_limit_mb * 1024 * 1024
