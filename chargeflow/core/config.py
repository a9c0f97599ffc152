"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./chargeflow.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class SecuritySettings(BaseModel):
    api_key: str = Field(default="pk_test_chargeflow_local", min_length=8)
    require_api_key: bool = False
    webhook_secret: str = Field(default="whsec_change_me", min_length=8)
    # shared with the PIX provider that posts settlement notifications
    settlement_secret: str = Field(default="pspsec_change_me", min_length=8)
    settlement_signature_header: str = "X-Settlement-Signature"
    settlement_tolerance_seconds: int = 300


class WebhookSettings(BaseModel):
    timeout_seconds: float = 30.0
    max_attempts: int = Field(default=3, ge=1)
    initial_backoff_seconds: float = 2.0
    backoff_multiplier: float = 2.0
    signature_header: str = "X-Chargeflow-Signature"
    user_agent: str = "Chargeflow-Webhooks/1.0"


class LifecycleSettings(BaseModel):
    pix_settlement_seconds: int = 10
    card_processing_seconds: int = 5
    card_settlement_seconds: int = 30
    poll_interval_seconds: float = 5.0
    worker_enabled: bool = True


class MerchantSettings(BaseModel):
    merchant_id: str = "merchant_default"
    name: str = "Chargeflow Merchant"
    city: str = "Sao Paulo"
    public_base_url: str = "http://localhost:8000"
    pix_key: str = "6958fb4a-050b-4e31-a594-f7fb90f7b5f3"
    pix_key_type: Literal["cpf", "cnpj", "email", "phone", "random"] = "random"
    bank_name: str = "Banco Itau"
    bank_code: str = "341"
    agency: str = "1234"
    account_number: str = "56789-0"
    account_type: str = "checking"


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Chargeflow"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    webhooks: WebhookSettings = WebhookSettings()
    lifecycle: LifecycleSettings = LifecycleSettings()
    merchant: MerchantSettings = MerchantSettings()

    # per-method overrides of the default fee schedule, e.g.
    # RATE_OVERRIDES='{"pix": {"percentage_rate": "0.79"}}'
    rate_overrides: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def webhook_secret(self) -> str:
        return self.security.webhook_secret

    @property
    def livemode(self) -> bool:
        return "_live_" in self.security.api_key


@lru_cache()
def get_settings() -> Settings:
    return Settings()
