"""Configuration for the MongoDB session used by doc_persistence.

Values are read from ``MONGO_*`` environment variables or a local ``.env``
file when the module is first imported. Applications that need a different
configuration build their own ``MongoSettings`` and pass it to
``MongoConnector.from_settings``.
"""
from loguru import logger
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

READ_PREF_PRIMARY = "primary"
READ_PREF_SECONDARY = "secondary"


class MongoSettings(BaseSettings):
    """Connection settings for the shared MongoDB client."""

    model_config = SettingsConfigDict(env_prefix="MONGO_", env_file=".env", extra="ignore")

    uri: str = "mongodb://localhost:27017"
    db_name: str = "app"
    read_preference: str = READ_PREF_PRIMARY
    server_selection_timeout_ms: int = 5000

    @field_validator("read_preference")
    @classmethod
    def _check_read_preference(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in (READ_PREF_PRIMARY, READ_PREF_SECONDARY):
            raise ValueError(f"unsupported read preference '{value}'")
        return value


def _default_settings() -> "MongoSettings":
    return MongoSettings()


settings: MongoSettings = _default_settings()
logger.info(
    f"MongoSettings initialized with db_name={settings.db_name} "
    f"read_preference={settings.read_preference}"
)
