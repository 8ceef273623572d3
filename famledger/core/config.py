from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FAMLEDGER_", env_file=".env", extra="ignore")
    DATABASE_URL: str = "sqlite:///./famledger.db"

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_MIN: int = 60 * 24
    REFRESH_TOKEN_DAYS: int = 30
    LOG_LEVEL: str = "INFO"

    # optimistic balance writes
    LEDGER_MAX_RETRIES: int = 3
    LEDGER_RETRY_BACKOFF: float = 0.05
    HISTORY_LIMIT: int = 50

    DAILY_GRANT_TITLE: str = "每日元气+1"
    DAILY_GRANT_POINTS: int = 1
    CALENDAR_TIMEZONE: str = "UTC"
    DEFAULT_ADMIN_NAME: str = "管理员"


settings = Settings()
