from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DEFAULT_MAX_LOSSES: int = 3
    GRAND_FINALS_ENABLED: bool = True
    DEFAULT_MODE: str = "TWO_V_TWO"
    INACTIVITY_TIMEOUT_HOURS: int = 12
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
