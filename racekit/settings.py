from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Security
    RACEKIT_ADMIN_EMAIL: str = "admin@example.com"
    RACEKIT_ADMIN_PASSWORD: str = "change-me"
    RACEKIT_SECRET_KEY: str = "dev-secret-change-me"
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 12

    # Database
    RACEKIT_DB_URL: str = "sqlite:///./racekit.db"

    # Logging
    RACEKIT_DEBUG: bool = False
    RACEKIT_LOG_FILE: str | None = "racekit.log"

    # UI
    RESET_REDIRECT_SECONDS: int = 3

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

settings = Settings()
