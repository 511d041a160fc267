from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "Marketplace Scheduling"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    MARKETPLACE_TIMEZONE: str = "UTC"
    AVAILABILITY_DEFAULT_DAYS: int = 14
    AVAILABILITY_MAX_DAYS: int = 90

    STORE_DATA_PATH: str = "./data/marketplace.json"

    NOTIFICATIONS_ENABLED: bool = False
    RESEND_API_KEY: str | None = None
    RESEND_FROM_EMAIL: str = "Marketplace <notifications@marketplace.local>"
    RESEND_API_URL: str = "https://api.resend.com/emails"


settings = Settings()
