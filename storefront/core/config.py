"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # PayHere hosted checkout
    payhere_merchant_id: str
    payhere_merchant_secret: str
    payhere_checkout_url: str = "https://sandbox.payhere.lk/pay/checkout"
    currency: str = "LKR"

    # Database
    database_url: str
    database_echo: bool = False

    # Public URLs used for gateway return/cancel/notify
    frontend_url: str = "http://localhost:5173"
    backend_url: str = "http://localhost:8000"

    # Pricing policy (applied to previews, order snapshots and server checks)
    tax_rate: float = 0.10
    service_fee_rate: float = 0.05
    adjustment_rate: float = 0.0
    delivery_fee: float = 0.0

    # Card orders left in awaiting-payment longer than this are flagged
    awaiting_payment_timeout_minutes: int = 30
    reconciliation_interval_seconds: int = 300

    # Server cart copies not synced for this long are dropped by the sweep
    session_cart_ttl_minutes: int = 120

    # Offers
    offers_seed_file: str | None = None

    # Restaurant
    restaurant_name: str = "Hotel Restaurant"

    # Logging
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
