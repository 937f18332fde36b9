"""Configuration settings for the payment gate."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from paygate.payments.networks import PaymentConfig, build_payment_defaults


class Settings(BaseSettings):
    """Process-wide payment defaults loaded from X402_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="X402_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars not in model
        frozen=True,
    )

    # Default network key, looked up in NETWORK_CONFIGS
    network: str = "pharos-testnet"
    # Payee address; can be overridden per request
    recipient: str = "0x49e0329808559a9aa742a3cf01cec9b773a53834"
    payment_url: str | None = None

    # Optional overrides for the default network's table entry
    rpc_url: str | None = None
    explorer_base_url: str | None = None
    decimals: int | None = Field(default=None, ge=0)

    expires_seconds: int = 300

    # RPC behaviour
    rpc_timeout: float = 30.0
    poll_attempts: int = 20
    poll_interval: float = 2.0  # seconds

    @field_validator("decimals", mode="before")
    @classmethod
    def blank_decimals_is_unset(cls, value):
        # X402_DECIMALS="" falls back to the network's decimals
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def payment_defaults(self) -> PaymentConfig:
        """Build the default PaymentConfig for the configured network."""
        return build_payment_defaults(
            network=self.network,
            recipient=self.recipient,
            expires_in_seconds=self.expires_seconds,
            payment_url=self.payment_url,
            rpc_url=self.rpc_url,
            explorer_base_url=self.explorer_base_url,
            decimals=self.decimals,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
