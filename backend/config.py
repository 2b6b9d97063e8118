from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./seat_disposition.db"
    LOG_LEVEL: str = "INFO"

    # used when an enrollment does not carry its own total
    DEFAULT_TOTAL_POINTS: int = 60
    # remaining points below this trigger a forward reservation
    NEAR_COMPLETION_GAP: int = 10


settings = Settings()
