"""Runtime configuration for lnbridge.

Pydantic-based settings, read from the environment or a ``.env`` file.

Environment Variables:
- LNBRIDGE_CONNECTION_STRING: full connection string (wins over the fields below)
- LNBRIDGE_LNBANK_SERVER: base URL of the BTCPay Server hosting LNbank
- LNBRIDGE_LNBANK_API_TOKEN: LNbank access token
- LNBRIDGE_NETWORK: mainnet, testnet, signet or regtest (default: mainnet)
- LNBRIDGE_REQUEST_TIMEOUT_SECONDS: HTTP timeout (default: 30)
- LNBRIDGE_LISTENER_OPEN_TIMEOUT_SECONDS: push channel open timeout (default: 10)
- LNBRIDGE_LOG_LEVEL / LNBRIDGE_JSON_LOGS: logging output
"""

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lnbridge.domain.enums import Network


class Settings(BaseSettings):
    """lnbridge settings.

    Example:
        >>> settings = Settings(lnbank_server="https://btcpay.example", lnbank_api_token="t")
        >>> settings.network
        <Network.MAINNET: 'mainnet'>
    """

    model_config = SettingsConfigDict(
        env_prefix="LNBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    connection_string: SecretStr | None = Field(
        default=None,
        description="Connection string, e.g. type=lnbank;server=https://host;api-token=...",
    )

    lnbank_server: str | None = Field(
        default=None,
        description="Base URL of the BTCPay Server instance running LNbank",
    )

    lnbank_api_token: SecretStr | None = Field(
        default=None,
        description="LNbank access token",
    )

    network: Network = Field(
        default=Network.MAINNET,
        description="Bitcoin network the node operates on",
    )

    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Timeout for a single HTTP request to the backend",
    )

    listener_open_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout for opening the push channel and completing its handshake",
    )

    log_level: str = Field(default="INFO", description="Logging level")

    json_logs: bool = Field(default=False, description="Render logs as JSON")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {', '.join(valid_levels)}")
        return v_upper

    @field_validator("lnbank_server")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        return v.rstrip("/") if v else v


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached settings and read them again."""
    get_settings.cache_clear()
    return get_settings()
