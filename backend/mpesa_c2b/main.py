import json
import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mpesa_c2b.core.config import Settings, check_required_settings, get_settings
from mpesa_c2b.schemas.c2b import ConfirmationResponse, ValidationResponse
from mpesa_c2b.services import c2b, errors
from mpesa_c2b.services.daraja_auth import AuthClient
from mpesa_c2b.services.register import register_urls

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        check_required_settings(get_settings())
    except errors.ConfigurationError:
        raise SystemExit(1)
    logger.info("M-Pesa C2B gateway started")
    yield
    logger.info("M-Pesa C2B gateway shutting down")


app = FastAPI(
    title="M-Pesa C2B Gateway",
    description="Daraja OAuth, C2B URL registration and C2B webhooks",
    version="1.0.0",
    lifespan=lifespan,
)

settings = get_settings()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    allow_credentials=True,
)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return error_response(status.HTTP_404_NOT_FOUND, "Route not found")
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Something broke!")


# ---------- dependencies ----------
@lru_cache
def get_auth_client() -> AuthClient:
    return AuthClient.from_settings(get_settings())


def get_validation_policy(settings: Settings = Depends(get_settings)) -> c2b.ValidationPolicy:
    if settings.account_reference_pattern:
        return c2b.account_reference_policy(settings.account_reference_pattern)
    return c2b.accept_all


def get_confirmation_sink() -> c2b.ConfirmationSink:
    return c2b.log_confirmation


async def read_json(request: Request) -> Any:
    """Parse the request body; an empty body counts as an empty object."""
    raw = await request.body()
    if not raw.strip():
        return {}
    return json.loads(raw)


@app.get("/health", include_in_schema=False)
async def health():
    return {"status": "ok"}


# ---------- daraja ----------
@app.get("/daraja/token")
async def daraja_token(auth_client: AuthClient = Depends(get_auth_client)):
    try:
        return await auth_client.refresh()
    except errors.GatewayError as e:
        logger.error(f"Error getting access token: {e}")
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to retrieve access token"
        )


# ---------- registration ----------
@app.post("/api/register/url")
async def register_url(
    settings: Settings = Depends(get_settings),
    auth_client: AuthClient = Depends(get_auth_client),
):
    try:
        return await register_urls(settings, auth_client)
    except errors.ConfigurationError as e:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, e.public_message)
    except errors.ValidationError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, e.public_message)
    except (errors.AuthenticationError, errors.UpstreamHttpError) as e:
        if e.status_code == status.HTTP_401_UNAUTHORIZED:
            return error_response(
                status.HTTP_401_UNAUTHORIZED, "Authentication failed with M-Pesa API"
            )
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to register URLs with M-Pesa"
        )
    except errors.GatewayError:
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to register URLs with M-Pesa"
        )


# ---------- c2b webhooks ----------
@app.post("/api/c2b/validation", response_model=ValidationResponse)
async def c2b_validation(
    request: Request, policy: c2b.ValidationPolicy = Depends(get_validation_policy)
):
    # Daraja treats anything but 200 as a failed delivery
    try:
        payload = await read_json(request)
        logger.info(f"Validation Request: {json.dumps(payload, indent=2)}")
        return c2b.validate_transaction(payload, policy)
    except Exception as e:
        logger.error(f"Validation Error: {e!r}")
        return c2b.rejected(c2b.OTHER_ERROR)


@app.post("/api/c2b/confirmation", response_model=ConfirmationResponse)
async def c2b_confirmation(
    request: Request, sink: c2b.ConfirmationSink = Depends(get_confirmation_sink)
):
    try:
        payload = await read_json(request)
        logger.info(f"Confirmation Request: {json.dumps(payload, indent=2)}")
        return c2b.confirm_transaction(payload, sink)
    except Exception as e:
        logger.error(f"Confirmation Error: {e!r}")
        return ConfirmationResponse()


def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
