from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_NAME: str = "Moving Cost Estimator"

    # "edge" (hosted estimator function), "openai" (direct chat completions) or "none"
    ESTIMATOR_PROVIDER: str = "edge"
    ESTIMATOR_URL: Optional[str] = None
    ESTIMATOR_API_KEY: Optional[str] = None
    ESTIMATOR_TIMEOUT_SECONDS: float = 15.0
    ESTIMATOR_MAX_ATTEMPTS: int = 1

    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-4o-mini"

    GOOGLE_MAPS_API_KEY: Optional[str] = None
    DISTANCE_MATRIX_URL: str = "https://maps.googleapis.com/maps/api/distancematrix/json"

    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
