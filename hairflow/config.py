from __future__ import annotations

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings

DEFAULT_TOSS_CONFIRM_URL = "https://api.tosspayments.com/v1/payments/confirm"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    jwt_secret: str = Field("test-jwt-secret", alias="JWT_SECRET")
    jwt_audience: str = Field("authenticated", alias="JWT_AUDIENCE")
    trusted_proxies: list[str] = Field(
        default_factory=lambda: ["127.0.0.1", "testclient"]
    )

    database_url: str = Field("sqlite:////tmp/hairflow_test.db", alias="DATABASE_URL")
    db_create_all: bool = Field(False, alias="DB_CREATE_ALL")

    redis_url: str = Field("redis://localhost:6379", alias="REDIS_URL")
    rate_limit_ip_per_min: int = 60
    rate_limit_user_per_min: int = 120

    s3_bucket: str = "customer-photos"
    s3_endpoint: str | None = None
    s3_region: str = "us-east-1"
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_public_url: str | None = None

    openai_model: str = Field("gpt-4o", alias="OPENAI_MODEL")
    openai_image_model: str = Field("dall-e-3", alias="OPENAI_IMAGE_MODEL")
    openai_timeout: float = Field(90.0, alias="OPENAI_TIMEOUT")

    free_daily_limit: int = 3
    paid_daily_limit: int = 999999
    usage_timezone: str = Field(
        "UTC",
        alias="USAGE_TIMEZONE",
        description="Timezone whose calendar date bounds the daily quota",
    )
    usage_strict_cap: bool = Field(
        False,
        alias="USAGE_STRICT_CAP",
        description="Reserve quota atomically before calling the model",
    )

    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_image_types: list[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/webp"]
    )

    toss_secret_key: str | None = Field(None, alias="TOSS_SECRET_KEY")
    toss_confirm_url: str = Field(DEFAULT_TOSS_CONFIRM_URL, alias="TOSS_CONFIRM_URL")
    subscription_days: int = 30
    basic_plan_price: int = 19900
    pro_plan_price: int = 99000

    model_config = ConfigDict(
        extra="ignore",
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
    )
