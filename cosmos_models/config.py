"""
Configuration settings for cosmos-models.

Uses Pydantic Settings to load the database name, the name of the environment
variable holding the Cosmos connection string, auto-field defaults, and logging
options. The connection string itself is not a settings field: its variable
name is configurable, so it is resolved by the connection layer.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cosmos_models.domain.models import AutoFieldPolicy
from cosmos_models.infrastructure.connection import (
    DEFAULT_CONNECTION_STRING_ENV,
    ConnectionConfig,
)


class Settings(BaseSettings):
    # Database
    database: str = Field("app", alias="COSMOS_DATABASE")
    connection_string_setting: str = Field(
        DEFAULT_CONNECTION_STRING_ENV, alias="COSMOS_CONNECTION_STRING_SETTING"
    )

    # Model defaults
    generate_id: bool = Field(True, alias="COSMOS_GENERATE_ID")
    generate_timestamps: bool = Field(True, alias="COSMOS_GENERATE_TIMESTAMPS")
    max_item_count: Optional[int] = Field(None, alias="COSMOS_MAX_ITEM_COUNT", gt=0)
    operation_timeout_seconds: Optional[float] = Field(
        None, alias="COSMOS_OPERATION_TIMEOUT", gt=0
    )

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(connection_string_env_name=self.connection_string_setting)

    def auto_field_policy(self) -> AutoFieldPolicy:
        return AutoFieldPolicy(
            generate_id=self.generate_id,
            generate_timestamps=self.generate_timestamps,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
