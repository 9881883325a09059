import logging
import re
from typing import Any

import httpx

from mpesa_c2b.core.config import Settings
from mpesa_c2b.schemas.daraja import RegisterUrlRequest
from mpesa_c2b.services.daraja_auth import AuthClient
from mpesa_c2b.services.errors import (
    ConfigurationError,
    UpstreamHttpError,
    UpstreamProtocolError,
    ValidationError,
)

logger = logging.getLogger(__name__)

REGISTER_PATH = "/mpesa/c2b/v1/registerurl"

REGISTRATION_REQUIRED = ("short_code", "confirmation_url", "validation_url", "mpesa_base_url")

CALLBACK_URL_PATTERN = re.compile(r"https://([\w-]+\.)+[\w-]+(/[\w\- ./?%&=]*)?", re.ASCII)


def is_valid_callback_url(url: str) -> bool:
    return CALLBACK_URL_PATTERN.fullmatch(url) is not None


async def register_urls(settings: Settings, auth_client: AuthClient) -> dict[str, Any]:
    """Register the confirmation and validation URLs for the configured short code.

    Configuration and URL shape are checked before any network call. Errors
    from the token exchange propagate unchanged; failures of the register
    call itself raise ``UpstreamHttpError`` or ``UpstreamProtocolError``.
    """
    missing = settings.missing(*REGISTRATION_REQUIRED)
    if missing:
        logger.error(f"Register URL error: missing environment variables {', '.join(missing)}")
        raise ConfigurationError(missing=missing)

    for url in (settings.confirmation_url, settings.validation_url):
        if not is_valid_callback_url(url):
            logger.error(f"Register URL error: rejected callback URL {url!r}")
            raise ValidationError(f"URLs must be HTTPS and properly formatted: {url}")

    token = await auth_client.get_access_token()

    body = RegisterUrlRequest(
        ShortCode=settings.short_code,
        ResponseType=settings.response_type,
        ConfirmationURL=settings.confirmation_url,
        ValidationURL=settings.validation_url,
    )
    base_url = settings.mpesa_base_url.rstrip("/")

    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
            r = await client.post(
                f"{base_url}{REGISTER_PATH}",
                json=body.model_dump(),
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
            )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.error(f"Register URL error: {e!r}")
        raise UpstreamHttpError(str(e)) from e

    if r.is_error:
        logger.error(f"Register URL error: Daraja returned {r.status_code}: {r.text}")
        raise UpstreamHttpError(
            f"registerurl returned {r.status_code}", status_code=r.status_code, body=r.text
        )

    try:
        data = r.json()
    except ValueError:
        logger.error(f"Register URL error: non-JSON response: {r.text}")
        raise UpstreamProtocolError("registerurl response is not JSON")

    logger.info(f"URLs registered successfully: {data}")
    return data
