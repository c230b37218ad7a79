from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "CostFlow Estimator"
    DATABASE_URL: str = "sqlite:///./costflow.db"

    # Pricing table: http(s) URL or local path; packaged copy used when empty
    PRICING_SOURCE: str = ""
    PRICING_TIMEOUT_SECONDS: float = 10.0

    # Preference defaults
    DEFAULT_REGION: str = "national"
    DEFAULT_UNITS: str = "imperial"

    # Local storage
    STORAGE_NAMESPACE: str = "costflow"
    HISTORY_LIMIT: int = 25

    class Config:
        env_file = ".env"


settings = Settings()
