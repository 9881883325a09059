import logging
import re
from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings

from mpesa_c2b.services.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Variables the process refuses to start without
STARTUP_REQUIRED = (
    "consumer_key",
    "consumer_secret",
    "short_code",
    "confirmation_url",
    "validation_url",
)


class Settings(BaseSettings):
    consumer_key: str | None = None
    consumer_secret: str | None = None
    mpesa_base_url: str | None = "https://sandbox.safaricom.co.ke"
    short_code: str | None = None
    confirmation_url: str | None = None
    validation_url: str | None = None
    response_type: Literal["Completed", "Cancelled"] = "Completed"
    account_reference_pattern: str | None = None
    token_single_flight: bool = False
    http_timeout: float = 30.0
    allowed_origins: str = "*"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000

    model_config = {"env_file": ".env", "extra": "ignore"}

    @field_validator("account_reference_pattern")
    @classmethod
    def _compiles(cls, value: str | None) -> str | None:
        if value:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"invalid regular expression: {e}")
        return value

    def missing(self, *names: str) -> list[str]:
        """Return the environment variable names of unset or empty fields."""
        return [name.upper() for name in names if not getattr(self, name)]


def check_required_settings(settings: Settings) -> None:
    missing = settings.missing(*STARTUP_REQUIRED)
    if missing:
        logger.critical(f"Missing required environment variables: {', '.join(missing)}")
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}",
            missing=missing,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
