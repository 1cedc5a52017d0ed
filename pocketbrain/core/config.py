from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://pocketbrain:pocketbrain@db:5432/pocketbrain"
    APP_ENV: str = "development"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    LOG_LEVEL: str = "INFO"
    # "text" or "json"; production always logs JSON.
    LOG_FORMAT: str = "text"

    # Currency stamped on a log when an amount arrives without one.
    DEFAULT_CURRENCY: str = "INR"

    # Retrieval
    SEARCH_RESULT_LIMIT: int = 5
    CHAT_RECENT_DAYS_WITH_HITS: int = 2
    CHAT_RECENT_DAYS_WITHOUT_HITS: int = 3
    CHAT_HISTORY_MESSAGES: int = 4

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
