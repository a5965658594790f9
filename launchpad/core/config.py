"""Configuration management for the campaign launch workflow.

Provides Pydantic-based configuration classes for type-safe, validated configuration
management using environment variables.
"""

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class MetaAdsConfig(BaseSettings):
    """Meta (Facebook/Instagram) Marketing API configuration."""

    app_id: str = Field(default="", description="Meta app ID")
    app_secret: str = Field(default="", description="Meta app secret")
    access_token: str = Field(default="", description="System user access token")
    ad_account_id: str = Field(default="", description="Ad account ID, with or without the 'act_' prefix")
    page_id: str = Field(default="", description="Facebook page the ads are published from")
    api_version: str = Field(default="v18.0", description="Graph API version")
    special_ad_categories: list[str] = Field(default_factory=list, description="Declared special ad categories")

    model_config = SettingsConfigDict(env_prefix="META_", case_sensitive=False)

    @field_validator("ad_account_id")
    @classmethod
    def normalize_ad_account_id(cls, v):
        """Store the account ID with the 'act_' prefix the Graph API expects."""
        if not v:
            return v
        return v if v.startswith("act_") else f"act_{v}"

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token and self.ad_account_id)


class GoogleAdsConfig(BaseSettings):
    """Google Ads API configuration."""

    client_id: str = Field(default="", description="OAuth client ID")
    client_secret: str = Field(default="", description="OAuth client secret")
    developer_token: str = Field(default="", description="Google Ads developer token")
    refresh_token: str = Field(default="", description="OAuth refresh token for the advertiser account")
    customer_id: str = Field(default="", description="Customer ID campaigns are created under")
    login_customer_id: str | None = Field(default=None, description="Manager account ID, if any")
    api_version: str = Field(default="v17", description="Google Ads API version")

    model_config = SettingsConfigDict(env_prefix="GOOGLE_ADS_", case_sensitive=False)

    @field_validator("customer_id", "login_customer_id")
    @classmethod
    def strip_dashes(cls, v):
        """Accept customer IDs in the 123-456-7890 format shown in the Ads UI."""
        if not v:
            return v
        return v.replace("-", "").strip()

    @property
    def is_configured(self) -> bool:
        return bool(
            self.developer_token and self.customer_id and self.refresh_token and self.client_id and self.client_secret
        )


class LaunchConfig(BaseSettings):
    """Review and launch behaviour."""

    channel_timeout_seconds: float = Field(default=60.0, description="Per-channel creation timeout")
    dry_run: bool = Field(default=False, description="Log platform calls instead of making them")
    estimated_review_window: str = Field(default="2-4 business hours", description="Shown to submitters")
    frontend_url: str = Field(default="http://localhost:3000", description="Base URL for landing page links")
    default_cta: str = Field(default="Learn More", description="Call to action used when a creative has none")

    model_config = SettingsConfigDict(env_prefix="LAUNCH_", case_sensitive=False)

    @field_validator("channel_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("channel_timeout_seconds must be positive")
        return v


class NotificationConfig(BaseSettings):
    """Outbound notification delivery."""

    webhook_url: str | None = Field(default=None, description="Webhook receiving workflow events")
    max_retries: int = Field(default=3, description="Delivery attempts per event")
    timeout_seconds: int = Field(default=10, description="Request timeout per attempt")

    model_config = SettingsConfigDict(env_prefix="NOTIFY_", case_sensitive=False)


class DatabaseConfig(BaseSettings):
    """Database configuration."""

    url: str | None = Field(default=None, description="Database connection URL")

    model_config = SettingsConfigDict(env_prefix="DATABASE_", case_sensitive=False)


class AppConfig(BaseSettings):
    """Main application configuration."""

    debug: bool = Field(default=False, description="Enable debug mode")
    environment: str = Field(default="development", description="Environment: production, staging, or development")

    # BaseSettings subclasses read from environment; mypy doesn't understand this pattern
    meta: MetaAdsConfig = Field(default_factory=MetaAdsConfig)
    google_ads: GoogleAdsConfig = Field(default_factory=GoogleAdsConfig)
    launch: LaunchConfig = Field(default_factory=LaunchConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)


# Global configuration instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None


def validate_configuration() -> AppConfig:
    """Load configuration and report channels that can't launch.

    Missing channel credentials are not fatal: the adapter is still built and
    every launch records that channel as not configured.

    Raises:
        pydantic.ValidationError: If a setting has an invalid value
    """
    config = get_config()

    if not config.meta.is_configured:
        logger.warning("Meta Ads credentials incomplete (META_ACCESS_TOKEN, META_AD_ACCOUNT_ID)")
    elif not config.meta.page_id:
        logger.warning("META_PAGE_ID not set; Meta ads and lead forms can't be created")

    if not config.google_ads.is_configured:
        logger.warning(
            "Google Ads credentials incomplete (GOOGLE_ADS_DEVELOPER_TOKEN, GOOGLE_ADS_CUSTOMER_ID, "
            "GOOGLE_ADS_REFRESH_TOKEN, GOOGLE_ADS_CLIENT_ID, GOOGLE_ADS_CLIENT_SECRET)"
        )

    if config.launch.dry_run:
        logger.warning("LAUNCH_DRY_RUN is enabled; no platform campaigns will be created")

    return config
