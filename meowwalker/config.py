"""
Type-safe configuration using Pydantic Settings
Validates environment variables and provides sensible defaults
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class BotConfig(BaseSettings):
    """
    Bot configuration with validation
    Automatically loads from environment variables and .env file
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Required settings
    telegram_bot_token: str = Field(
        ..., description="Telegram Bot API token from @BotFather"
    )

    # Chat that receives visit reminders (falls back to the chat registered via /start)
    owner_chat_id: Optional[int] = Field(
        None, description="Telegram chat ID that receives reminders"
    )

    # Database settings
    db_file: str = Field("meowwalker.db", description="SQLite database file path")

    # Reminder loop settings
    reminder_check_interval: int = Field(
        60,
        ge=5,
        le=600,
        description="Interval in seconds between reminder checks (default: 60)",
    )
    timezone: str = Field(
        "Asia/Shanghai", description="Wall-clock time zone of the appointments"
    )

    # AMap web service settings
    amap_api_key: str = Field("", description="AMap web service key")
    amap_base_url: str = Field(
        "https://restapi.amap.com", description="AMap REST API base URL"
    )
    amap_city: str = Field("全国", description="City filter for address suggestions")
    amap_verify_key: bool = Field(
        True, description="Probe the AMap key when the first connection is made"
    )
    geocoding_timeout: float = Field(
        20.0,
        gt=0,
        description="Hard timeout in seconds for a distance lookup",
    )

    currency_symbol: str = Field("¥", description="Symbol shown in front of prices")

    @field_validator("telegram_bot_token")
    @classmethod
    def validate_telegram_token(cls, v: str) -> str:
        """Validate Telegram bot token format"""
        if not v or v == "your_bot_token_here":
            raise ValueError(
                "TELEGRAM_BOT_TOKEN must be set to a valid token from @BotFather"
            )
        if ":" not in v:
            raise ValueError(
                "TELEGRAM_BOT_TOKEN appears to be invalid (should contain ':')"
            )
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject unknown IANA zone names early"""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


# Singleton instance
_config: Optional[BotConfig] = None


def get_config() -> BotConfig:
    """
    Get or create the global configuration instance

    Returns:
        BotConfig: Validated configuration

    Raises:
        ValidationError: If configuration is invalid
    """
    global _config
    if _config is None:
        _config = BotConfig()
    return _config
