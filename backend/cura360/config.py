"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./data/cura360.db"
    DATA_DIR: str = "./data"

    # Run the stage evaluator after every recorded treatment.
    AUTO_EVALUATE_STAGE: bool = True

    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = ["http://localhost:3000", "*"]

    model_config = {"env_prefix": "CURA360_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
