"""Environment-driven settings for the payment relay.

Loaded once at process start and passed into `create_app`. See `.env.example`
for the variables it reads.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROCESSOR_BASE_URLS: dict[str, str] = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}


class RelaySettings(BaseSettings):
    """Typed, immutable view of runtime configuration."""

    service_name: str = "payment-relay"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001
    environment: Literal["sandbox", "live"] = "sandbox"
    paypal_client_id: str
    paypal_secret_key: str
    static_dir: Path = Field(default_factory=Path.cwd)
    upstream_timeout_seconds: float | None = None
    receipt_webhook_url: str | None = None
    otel_exporter_otlp_endpoint: str | None = None
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    @property
    def processor_base_url(self) -> str:
        return PROCESSOR_BASE_URLS[self.environment]


def load_settings() -> RelaySettings:
    """Read settings from the environment; raises when credentials are missing."""

    return RelaySettings()
