from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="STAR_LEDGER_", env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./star_ledger.db"
    isolation_level: str = "SERIALIZABLE"
    echo_sql: bool = False

    retry_max_attempts: int = 3
    retry_base_delay: float = 0.05
    retry_max_delay: float = 1.0

    notifications_enabled: bool = True
    log_level: str = "INFO"


settings = Settings()
