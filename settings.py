import random
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    '''
    Service settings, read from GA_DATA_* environment variables or .env.
    '''
    model_config = SettingsConfigDict(
        env_prefix="GA_DATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Resolved against the process working directory
    dataset_path: str = "assets/ga4_pages_and_screens.json"

    # Set to make the random key-event rates reproducible
    random_seed: Optional[int] = None

    cors_origins: List[str] = ["*"]
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    def make_rng(self) -> random.Random:
        return random.Random(self.random_seed)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
