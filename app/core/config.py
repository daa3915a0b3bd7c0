from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://timelogger:timelogger@db:5432/timelogger"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "*"

    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Worklog source. Per-source tokens live on the import_sources row;
    # base_url on the row overrides this default.
    TEMPO_BASE_URL: str = "https://api.tempo.io/4"
    TEMPO_PAGE_SIZE: int = 5000

    # Issue tracker used to enrich worklogs. Empty base URL disables enrichment.
    JIRA_BASE_URL: str = ""
    JIRA_EMAIL: str = ""
    JIRA_API_TOKEN: str = ""
    JIRA_ENRICHMENT_CONCURRENCY: int = 8

    # Target time-registration system.
    TIMELOG_BASE_URL: str = ""
    TIMELOG_API_KEY: str = ""

    REGEX_TIMEOUT_SECONDS: float = 1.0
    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
