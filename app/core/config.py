from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "maturity-service"
    LOG_LEVEL: str = "INFO"

    AUTH_ENABLED: bool = False
    JWT_SECRET: str = "change_me"
    JWT_ALGORITHM: str = "HS256"

    # inference backend latency model
    SETTLE_DELAY_S: float = 2.0
    SCORING_TIMEOUT_S: Optional[float] = None
    RANDOM_SEED: Optional[int] = None

    SCORER: Literal["random", "image"] = "random"
    CONFIDENCE: Literal["random", "margin"] = "random"
    EXPLAINER: Literal["random", "weighted"] = "random"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
