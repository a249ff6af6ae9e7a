"""
Application configuration using Pydantic settings.

Every setting comes from the environment (or a local .env file). The
booking policy knobs live next to the storage connection details so a
deployment can be fully described by its environment.

With SNOWFLAKE_MOCK_MODE=true the service keeps everything in process
memory and needs no Snowflake credentials at all.
"""

from functools import lru_cache
from typing import Optional

import pytz
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..infrastructure.snowflake.client import SnowflakeConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Comma-separated strings are used for list settings (API_KEYS,
    CORS_ORIGINS); see the *_list properties for the parsed values.
    """

    # API
    api_title: str = "Coachbook API"
    api_version: str = "v1"
    api_keys: str = Field(
        default="dev-key-1,dev-key-2",
        description="Comma-separated API keys accepted in X-API-Key. Several keys allow rotation.",
    )
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated allowed CORS origins, or * during development.",
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    # Booking policy
    require_future_sessions: bool = Field(
        default=True,
        description="Reject bookings and reschedules that do not start after the current time.",
    )
    default_time_zone: str = Field(
        default="UTC",
        description="IANA zone given to availability records created without one.",
    )

    # Document storage
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Keep sessions and availability in memory instead of Snowflake.",
    )
    snowflake_account: str = ""
    snowflake_user: str = ""
    snowflake_password: str = ""
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="PEM private key file for key-pair auth; preferred over a password.",
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="Same key, base64-encoded, for platforms that only offer env vars.",
    )
    snowflake_database: str = "COACHBOOK"
    snowflake_schema: str = "SCHEDULING"
    snowflake_warehouse: str = "COMPUTE_WH"
    snowflake_role: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("default_time_zone")
    @classmethod
    def check_default_time_zone(cls, value: str) -> str:
        if value not in pytz.all_timezones_set:
            raise ValueError(f"Unknown time zone: {value}")
        return value

    @property
    def api_keys_list(self) -> list[str]:
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def snowflake_config(self) -> SnowflakeConfig:
        """Connection parameters for the document store."""
        return SnowflakeConfig(
            account=self.snowflake_account,
            user=self.snowflake_user,
            password=self.snowflake_password or None,
            private_key_path=self.snowflake_private_key_path,
            private_key_base64=self.snowflake_private_key_base64,
            database=self.snowflake_database,
            schema=self.snowflake_schema,
            warehouse=self.snowflake_warehouse,
            role=self.snowflake_role,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Names of required settings that are unset.

        Snowflake credentials are only required outside mock mode, which
        plain field validation cannot express.
        """
        missing = []

        if not self.api_keys_list:
            missing.append("API_KEYS")

        if self.snowflake_mock_mode:
            return missing

        if not self.snowflake_account:
            missing.append("SNOWFLAKE_ACCOUNT")
        if not self.snowflake_user:
            missing.append("SNOWFLAKE_USER")
        has_key = self.snowflake_private_key_path or self.snowflake_private_key_base64
        if not self.snowflake_password and not has_key:
            missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings, loaded once per process.

    Tests either override this dependency or call
    get_settings.cache_clear() after changing the environment.
    """
    return Settings()
