from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database
    database_url: str = "sqlite:///./rewards.db"

    # Logging
    log_level: str = "info"
    log_format: str = "console"  # "json" in production

    # BTCPay Server
    btcpay_server_url: str | None = None
    btcpay_store_id: str | None = None
    btcpay_api_key: str | None = None
    btcpay_pull_payment_id: str | None = None  # legacy shared pull payment
    btcpay_force_static_pull_payment: bool = False
    btcpay_timeout_seconds: float = 10.0

    # Withdrawals
    withdrawal_bolt11_expiration_seconds: int = 3600  # 1 hour
    withdrawal_expiration_seconds: int = 86400  # 24 hours

    # Proof of Work
    pow_challenge_ttl_seconds: int = 300  # 5 minutes
    pow_max_difficulty: int = 6
    pow_yield_interval: int = Field(1000, ge=1)

    # Claim anti-abuse
    claim_rate_window_seconds: int = 3600
    claim_rate_max_attempts: int = 10
    claim_attempt_retention_seconds: int = 86400

    # Rate Limiting
    rate_limit_challenges: str = "10/minute"
    rate_limit_claims: str = "5/minute"
    rate_limit_withdrawals: str = "5/minute"

    # Admin endpoints
    internal_api_key: str | None = None

    # Scheduler
    cleanup_interval_hours: int = 1

    # CORS
    cors_origins: list[str] | str = ["http://localhost:5173", "http://127.0.0.1:5173"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("btcpay_server_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        if isinstance(v, str):
            v = v.strip().rstrip("/")
            return v or None
        return v


settings = Settings()
