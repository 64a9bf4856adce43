from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    SCHEDULE_API_BASE_URL: str = "https://schedule-spa-api-c7bmhvb4b0fgcrc9.canadacentral-01.azurewebsites.net/api"
    SCHEDULE_CALENDAR_ID: int = 2
    SCHEDULE_HTTP_TIMEOUT: float = 15.0

    BOOKING_GATEWAY: str = "http"  # "http" | "mock"
    DRAFT_ID_PREFIX: str = "draft-"

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"


settings = Settings()
