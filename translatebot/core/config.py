"""Translate bot configuration"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)


def _split_csv(value: object) -> object:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class TranslateBotSettings(BaseSettings):
    """Translate bot settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Twitch OAuth
    twitch_client_id: str = Field(..., min_length=1, description="Twitch OAuth Client ID")
    twitch_client_secret: str = Field(..., min_length=1, description="Twitch OAuth Client Secret")
    twitch_access_token: str = Field(..., min_length=1, description="Bootstrap user access token")
    twitch_refresh_token: str = Field(..., min_length=1, description="Bootstrap refresh token")

    # Bot identity
    twitch_channels: Annotated[list[str], NoDecode] = Field(
        ..., description="Channels to join (comma separated)"
    )
    twitch_bot_id: str = Field(default="", description="Bot user ID (resolved from token if empty)")
    twitch_bot_owner: str = Field(default="", description="Bot owner username")

    # Storage
    config_dir: Path = Field(default=Path("./channel_configs"), description="Storage directory")

    # Translation cache
    cache_size: int = Field(default=100, ge=0, description="Max cached translations")
    cache_ttl: float = Field(default=3600.0, gt=0, description="Cache entry TTL in seconds")
    cache_sweep_interval: float = Field(default=3600.0, gt=0)

    # Message handling
    max_message_length: int = Field(default=500, gt=0)
    min_message_length: int = Field(default=5, ge=0)
    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    target_language: str = Field(default="en")
    translation_timeout: float = Field(default=5.0, gt=0)
    moderation_patterns: Annotated[list[str], NoDecode] = Field(default_factory=list)

    # Rate limiting (per minute)
    rate_limit_messages: int = Field(default=20, ge=0, description="Global limit")
    rate_limit_translations: int = Field(default=10, ge=0, description="Per-channel limit")

    # Token refresh
    refresh_before_expiry: float = Field(default=900.0, ge=0, description="Seconds")
    token_check_interval: float = Field(default=3600.0, gt=0, description="Seconds")

    # Global ignore list seed
    global_ignore_list: Annotated[list[str], NoDecode] = Field(default_factory=list)

    # Monitoring
    metrics_interval: float = Field(default=300.0, gt=0)

    # Environment
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("twitch_channels", "moderation_patterns", mode="before")
    @classmethod
    def split_lists(cls, v: object) -> object:
        return _split_csv(v)

    @field_validator("global_ignore_list", mode="before")
    @classmethod
    def split_ignore_list(cls, v: object) -> object:
        v = _split_csv(v)
        if isinstance(v, list):
            return [str(name).lower() for name in v]
        return v

    @field_validator("twitch_channels")
    @classmethod
    def validate_channels(cls, v: list[str]) -> list[str]:
        """Require at least one channel"""
        channels = [c.lstrip("#").lower() for c in v if c.lstrip("#")]
        if not channels:
            raise ValueError("TWITCH_CHANNELS must list at least one channel")
        return channels

    @field_validator("target_language")
    @classmethod
    def validate_target_language(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper


@lru_cache
def get_settings() -> TranslateBotSettings:
    """Get cached settings instance"""
    return TranslateBotSettings()  # type: ignore[call-arg]


def validate_env_vars() -> TranslateBotSettings:
    """Validate required environment variables.

    Raises ``ValueError`` with the pydantic error summary so the caller can
    abort before any connection is attempted.
    """
    try:
        settings = get_settings()
    except Exception as e:
        bot_logger = logging.getLogger("Bot")
        bot_logger.error(f"Environment validation failed: {e}")
        raise ValueError(str(e)) from e

    logger.info("All required environment variables validated successfully")
    return settings
