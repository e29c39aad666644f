"""
SDK configuration.

Values are read from environment variables prefixed with HAP_ (or a .env
file), e.g. HAP_ENDPOINT, HAP_API_KEY, HAP_MAX_RETRIES.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1_000
DEFAULT_CIRCUIT_BREAKER_THRESHOLD = 5
DEFAULT_CIRCUIT_BREAKER_RESET_MS = 60_000


class Settings(BaseSettings):
    """
    Configuration for providers and the remote client.

    Attributes:
        endpoint: Clarification service base URL
        api_key: Bearer credential for the service
        timeout_ms: Per-attempt timeout
        max_retries: Retries after the first attempt
        retry_delay_ms: Base delay for exponential backoff
        circuit_breaker_threshold: Consecutive failed calls before opening
        circuit_breaker_reset_ms: Time the breaker stays open before a probe
        blueprint_source: Directory or URL for local blueprints; selects
            the local provider when set
        log_level: Level applied by configure_logging()
    """

    model_config = SettingsConfigDict(env_prefix="HAP_", env_file=".env", extra="ignore")

    endpoint: str = ""
    api_key: str = Field(default="", repr=False)
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    retry_delay_ms: int = Field(default=DEFAULT_RETRY_DELAY_MS, ge=0)
    circuit_breaker_threshold: int = Field(default=DEFAULT_CIRCUIT_BREAKER_THRESHOLD, ge=1)
    circuit_breaker_reset_ms: int = Field(default=DEFAULT_CIRCUIT_BREAKER_RESET_MS, ge=0)
    blueprint_source: str | None = None
    log_level: str = "INFO"


settings = Settings()
