from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Backing database for the key-value store (weight + history blobs)
    database_url: str = "sqlite+pysqlite:///walktrack.db"
    documents_dir: str = "documents"  # GPX exports land here

    default_weight_kg: float = 70.0

    # Walks at or below this distance are not recorded
    min_session_distance_m: float = 10.0
    # Position updates closer than this to the previous one are dropped
    distance_filter_m: float = 3.0
    tick_interval_s: float = 1.0

    log_level: str = "INFO"

    @field_validator("tick_interval_s")
    @classmethod
    def _positive_interval(cls, v):
        if v <= 0:
            raise ValueError("tick_interval_s must be > 0")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        if v in ("", None):
            return "INFO"
        return str(v).upper()
