"""Application configuration using pydantic settings with structured sections."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./voice_ledger.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None
    busy_timeout_seconds: float = 30.0


class SecuritySettings(BaseModel):
    secret_key: str = Field(default="change-me", min_length=8)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    admin_roles: list[str] = ["admin"]


class PaymentSettings(BaseModel):
    webhook_secret: Optional[str] = None
    signature_tolerance_seconds: int = 300
    currency: str = "usd"


class TelephonySettings(BaseModel):
    auth_token: Optional[str] = None
    # Only honoured outside production.
    allow_unsigned_callbacks: bool = False
    public_base_url: Optional[str] = None


class LedgerSettings(BaseModel):
    overdraft_policy: Literal["strict", "grace", "capped"] = "strict"
    grace_limit_cents: int = Field(default=0, ge=0)
    max_retries: int = Field(default=5, ge=0)
    retry_backoff_seconds: float = Field(default=0.05, ge=0)
    event_timeout_seconds: float = Field(default=10.0, gt=0)
    reservation_timeout_seconds: int = Field(default=600, gt=0)
    currency: str = "USD"


class PricingSettings(BaseModel):
    unit_seconds: int = Field(default=60, gt=0)
    default_billing_increment_seconds: int = Field(default=60, gt=0)
    default_markup_percent: Decimal = Field(default=Decimal("0"), ge=0)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


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
    project_name: str = "Voice Ledger"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    payments: PaymentSettings = PaymentSettings()
    telephony: TelephonySettings = TelephonySettings()
    ledger: LedgerSettings = LedgerSettings()
    pricing: PricingSettings = PricingSettings()
    logging: LoggingSettings = LoggingSettings()

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
    def secret_key(self) -> str:
        return self.security.secret_key

    @property
    def algorithm(self) -> str:
        return self.security.algorithm

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def accepts_unsigned_callbacks(self) -> bool:
        return self.telephony.allow_unsigned_callbacks and not self.is_production


@lru_cache()
def get_settings() -> Settings:
    return Settings()
