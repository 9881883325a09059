import asyncio
import base64
import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Callable

import httpx

from mpesa_c2b.core.config import Settings
from mpesa_c2b.schemas.daraja import TokenResponse
from mpesa_c2b.services.errors import (
    AuthenticationError,
    ConfigurationError,
    UpstreamProtocolError,
)

logger = logging.getLogger(__name__)

OAUTH_PATH = "/oauth/v1/generate"

# Daraja tokens live 60 minutes; stop using them 10 minutes early
TOKEN_TTL = timedelta(minutes=50)


def utcnow() -> datetime:
    return datetime.now(UTC)


class TokenCache:
    """Holds a single bearer token and the instant it stops being served."""

    def __init__(self, clock: Callable[[], datetime] = utcnow, ttl: timedelta = TOKEN_TTL):
        self.clock = clock
        self.ttl = ttl
        self.token: str | None = None
        self.expires_at: datetime | None = None

    def get(self) -> str | None:
        if self.token and self.expires_at and self.clock() < self.expires_at:
            return self.token
        return None

    def store(self, token: str) -> None:
        self.token = token
        self.expires_at = self.clock() + self.ttl

    def clear(self) -> None:
        self.token = None
        self.expires_at = None


def basic_auth(consumer_key: str, consumer_secret: str) -> str:
    return base64.b64encode(f"{consumer_key}:{consumer_secret}".encode()).decode()


class AuthClient:
    """Client-credentials OAuth against Daraja with an in-memory token cache.

    With ``single_flight`` enabled, callers that miss the cache while a
    refresh is already running wait for that refresh instead of issuing
    their own upstream call.
    """

    def __init__(
        self,
        consumer_key: str | None,
        consumer_secret: str | None,
        base_url: str | None,
        cache: TokenCache | None = None,
        timeout: float = 30.0,
        single_flight: bool = False,
    ):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.base_url = (base_url or "").rstrip("/")
        self.cache = cache or TokenCache()
        self.timeout = timeout
        self.single_flight = single_flight
        self._inflight: asyncio.Future | None = None

    @classmethod
    def from_settings(cls, settings: Settings, cache: TokenCache | None = None) -> "AuthClient":
        return cls(
            consumer_key=settings.consumer_key,
            consumer_secret=settings.consumer_secret,
            base_url=settings.mpesa_base_url,
            cache=cache,
            timeout=settings.http_timeout,
            single_flight=settings.token_single_flight,
        )

    async def get_access_token(self) -> str:
        token = self.cache.get()
        if token:
            logger.debug("Using cached Daraja access token")
            return token
        payload = await self.refresh()
        return payload["access_token"]

    async def refresh(self) -> dict[str, Any]:
        """Fetch a new token, cache it and return the raw OAuth payload."""
        if not self.single_flight:
            return await self._refresh()

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh())
            self._inflight.add_done_callback(self._clear_inflight)
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, future: asyncio.Future) -> None:
        if self._inflight is future:
            self._inflight = None

    async def _refresh(self) -> dict[str, Any]:
        if not (self.consumer_key and self.consumer_secret and self.base_url):
            raise ConfigurationError(
                "Missing required environment variables for authentication"
            )

        try:
            payload = await self._request_token()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Auth Error: Daraja returned {e.response.status_code}: {e.response.text}"
            )
            raise AuthenticationError(status_code=e.response.status_code) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Auth Error: {e!r}")
            raise AuthenticationError() from e
        except UpstreamProtocolError as e:
            logger.error(f"Auth Error: {e}")
            raise AuthenticationError() from e

        self.cache.store(payload["access_token"])
        logger.info(f"Daraja access token refreshed, cached until {self.cache.expires_at}")
        return payload

    async def _request_token(self) -> dict[str, Any]:
        headers = {
            "Authorization": f"Basic {basic_auth(self.consumer_key, self.consumer_secret)}",
            "Content-Type": "application/json",
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(
                f"{self.base_url}{OAUTH_PATH}",
                params={"grant_type": "client_credentials"},
                headers=headers,
            )
        r.raise_for_status()

        try:
            payload = r.json()
            TokenResponse.model_validate(payload)
        except ValueError:
            raise UpstreamProtocolError(f"Invalid response from M-Pesa OAuth API: {r.text}")
        return payload
