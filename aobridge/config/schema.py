"""Pydantic configuration models for aobridge.

All config is loaded from ~/.aobridge/config.json and can be overridden
via AOBRIDGE_ prefixed environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, field_serializer
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.main import JsonConfigSettingsSource


class TelegramConfig(BaseModel):
    """Telegram bot credentials and file intake settings."""

    token: SecretStr = SecretStr("")
    start_on_boot: bool = Field(
        default=True,
        description="Start polling on server startup when a token is configured.",
    )
    upload_dir: Path = Field(
        default=Path("uploads"),
        description="Directory where received files are downloaded before upload.",
    )
    download_timeout: float = Field(
        default=60.0,
        gt=0,
        le=3600,
        description="Seconds allowed for resolving and downloading one file.",
    )
    allow_from: list[str] = Field(
        default_factory=list,
        description="Usernames or user IDs allowed to send files. Empty list allows everyone.",
    )
    webhook_secret: SecretStr = SecretStr("")

    @field_serializer("token", "webhook_secret", when_used="json")
    @staticmethod
    def _serialize_secret(v: SecretStr) -> str:
        return v.get_secret_value()


class StorageConfig(BaseModel):
    """ArDrive Turbo connection details for permanent storage uploads.

    The bridge holds no wallet key. `upload_url` must point at a signing
    proxy in front of the Turbo bundler that signs data items for
    `wallet_address`.
    """

    payment_url: str = "https://payment.ardrive.io"
    upload_url: str = Field(
        default="https://upload.ardrive.io",
        description="Signing proxy that accepts raw bytes plus an x-tags header.",
    )
    gateway_url: str = "https://arweave.net"
    wallet_address: str = Field(
        default="",
        description="Address whose Turbo credit balance pays for uploads.",
    )
    token_type: str = Field(
        default="ethereum",
        description="Turbo token type of the funding wallet (ethereum, arweave, solana).",
    )
    app_name: str = Field(
        default="AO-Process-Builder",
        description="Value of the App-Name tag attached to every upload.",
    )
    currency: str = "usd"
    timeout: float = Field(default=120.0, gt=0, le=3600)


class AOConfig(BaseModel):
    """Settings for the aos command line used to message AO processes."""

    aos_command: str = "aos"
    timeout: float = Field(default=60.0, gt=0, le=600)


class PriceConfig(BaseModel):
    """Token price lookup endpoint (Supabase edge functions)."""

    base_url: str = "https://kzmzniagsfcfnhgsjkpv.supabase.co/functions/v1"
    api_key: SecretStr = SecretStr("")
    timeout: float = Field(default=15.0, gt=0, le=120)

    @field_serializer("api_key", when_used="json")
    @staticmethod
    def _serialize_api_key(v: SecretStr) -> str:
        return v.get_secret_value()


class TwitterConfig(BaseModel):
    """RapidAPI credentials for the Twitter monitor."""

    rapidapi_key: SecretStr = SecretStr("")
    rapidapi_host: str = "twitter241.p.rapidapi.com"
    timeout: float = Field(default=15.0, gt=0, le=120)
    tweet_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Pause between the user lookup and the timeline request.",
    )

    @field_serializer("rapidapi_key", when_used="json")
    @staticmethod
    def _serialize_rapidapi_key(v: SecretStr) -> str:
        return v.get_secret_value()


class GatewayConfig(BaseModel):
    """Network settings for the REST API server."""

    host: str = "127.0.0.1"
    port: int = Field(default=3001, ge=1, le=65535)
    cors_allowed_origins: list[str] = Field(default_factory=lambda: ["*"])
    max_request_body_bytes: int = Field(default=52_428_800, ge=1024, le=524_288_000)


class BridgeConfig(BaseSettings):
    """Root configuration for the aobridge server.

    Loaded from ~/.aobridge/config.json with AOBRIDGE_ env var overrides.
    Nested keys use __ as delimiter (e.g. AOBRIDGE_TELEGRAM__TOKEN).
    """

    model_config = SettingsConfigDict(
        env_prefix="AOBRIDGE_",
        env_nested_delimiter="__",
        json_file=Path("~/.aobridge/config.json").expanduser(),
        json_file_encoding="utf-8",
        extra="ignore",
    )

    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    ao: AOConfig = Field(default_factory=AOConfig)
    prices: PriceConfig = Field(default_factory=PriceConfig)
    twitter: TwitterConfig = Field(default_factory=TwitterConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Enable JSON file loading alongside env vars and init kwargs."""
        return (
            init_settings,
            env_settings,
            JsonConfigSettingsSource(settings_cls),
        )
