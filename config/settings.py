from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database (SQLite file next to the app by default; any async URL works)
    DATABASE_URL: str = "sqlite+aiosqlite:///./tracker.db"
    RUN_MIGRATIONS_ON_STARTUP: bool = True

    # Finnhub quote API — leave empty to run without live prices
    FINNHUB_API_KEY: str = ""
    FINNHUB_BASE_URL: str = "https://finnhub.io/api/v1"
    API_CALLS_PER_MINUTE: int = 25
    PRICE_MAX_CONCURRENT: int = 2
    PRICE_CACHE_TTL_SECONDS: int = 60
    PRICE_HTTP_TIMEOUT_SECONDS: float = 10.0

    # Cron jobs
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TIMEZONE: str = "America/New_York"
    BACKUP_DIR: str = "./backups"
    BACKUP_RETENTION: int = 14

    # CSV importer
    IMPORT_SESSION_TTL_SECONDS: int = 3600

    # App
    APP_NAME: str = "Portfolio Tracker"
    DEBUG: bool = False  # Safe default for production; set DEBUG=True in .env for local dev


settings = Settings()
