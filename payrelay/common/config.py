"""Environment-driven settings for the relay process.

Loaded once at import time. Razorpay credentials are mandatory: a process
without them raises `StartupConfigError` before the app is built.
"""

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from payrelay.common.errors import StartupConfigError


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "payrelay"
    app_env: str = Field(default="development", validation_alias=AliasChoices("APP_ENV", "NODE_ENV"))
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"
    log_file: str = "logs/server.log"
    razorpay_key_id: str = Field(min_length=1)
    razorpay_key_secret: str = Field(min_length=1, repr=False)
    razorpay_base_url: str = "https://api.razorpay.com/v1"
    gateway_timeout_seconds: float = 15.0
    gateway_list_timeout_seconds: float = 10.0
    enforce_capture_amount_match: bool = False
    cors_allow_origins: list[str] = ["*"]
    otel_exporter_otlp_endpoint: str | None = None
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    @field_validator("razorpay_key_id", "razorpay_key_secret", mode="before")
    @classmethod
    def _strip_credentials(cls, value):
        # Deploy tooling tends to leave trailing newlines in secret values.
        if isinstance(value, str):
            return value.strip()
        return value


def load_settings(**overrides) -> CommonSettings:
    """Build settings, converting validation failures into a startup error."""

    try:
        return CommonSettings(**overrides)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]).upper() for err in exc.errors() if err["loc"]})
        raise StartupConfigError(f"invalid or missing configuration: {', '.join(fields)}") from exc


settings = load_settings()
