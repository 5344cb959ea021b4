"""On-Behalf-Of exchange endpoints for front-end channels."""

import logging

import httpx
from fastapi import APIRouter
from starlette.responses import JSONResponse, PlainTextResponse

from certsso.api.deps import Exchanger, Settings, UserToken
from certsso.core.errors import (
    ConfigurationError,
    CredentialFetchError,
    ExchangeFailedError,
    MalformedResponseError,
    OboError,
)
from certsso.oidc.types import ExchangeResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/obo", tags=["obo"])

HTTP_BAD_REQUEST = 400
HTTP_SERVER_ERROR = 500
HTTP_BAD_GATEWAY = 502
HTTP_UNAVAILABLE = 503

DISABLED_MESSAGE = (
    "Certificate-based authentication is not enabled. "
    "Set AZURE_USE_CERTIFICATE_AUTH=true to use this feature."
)
APOLOGY_MESSAGE = (
    "Sorry, I couldn't sign you in to Microsoft 365 right now. Please try again."
)
CONSENT_MESSAGE = (
    "Sorry, I need your permission to access Microsoft 365 on your behalf. "
    "Please sign in again and accept the requested permissions."
)


def _error_body(error: str, description: str) -> dict[str, str]:
    return {"error": error, "error_description": description}


def _error_response(exc: OboError) -> JSONResponse:
    """Map an exchange failure to an OAuth-style JSON error."""
    if isinstance(exc, ConfigurationError):
        return JSONResponse(
            _error_body("server_error", str(exc)), status_code=HTTP_SERVER_ERROR
        )
    if isinstance(exc, CredentialFetchError):
        return JSONResponse(
            _error_body("temporarily_unavailable", str(exc)),
            status_code=HTTP_UNAVAILABLE,
        )
    if isinstance(exc, ExchangeFailedError):
        status = HTTP_BAD_REQUEST if 400 <= exc.status_code < 500 else HTTP_BAD_GATEWAY
        return JSONResponse(
            _error_body(
                exc.error or "exchange_failed", exc.error_description or exc.body
            ),
            status_code=status,
        )
    if isinstance(exc, MalformedResponseError):
        return JSONResponse(
            _error_body("bad_gateway", str(exc)), status_code=HTTP_BAD_GATEWAY
        )
    return JSONResponse(
        _error_body("server_error", str(exc)), status_code=HTTP_SERVER_ERROR
    )


@router.post("/token", response_model=None)
async def exchange_token(
    user_token: UserToken,
    exchanger: Exchanger,
    settings: Settings,
) -> ExchangeResult | JSONResponse:
    """POST /obo/token -- exchange the bearer token for a downstream token."""
    if not settings.use_certificate_auth:
        return JSONResponse(
            _error_body("feature_disabled", DISABLED_MESSAGE),
            status_code=HTTP_UNAVAILABLE,
        )
    try:
        return await exchanger.exchange(user_token)
    except OboError as exc:
        return _error_response(exc)


@router.post("/token/text")
async def exchange_token_text(
    user_token: UserToken,
    exchanger: Exchanger,
    settings: Settings,
) -> PlainTextResponse:
    """POST /obo/token/text -- chat-facing variant that never fails loudly."""
    if not settings.use_certificate_auth:
        return PlainTextResponse(DISABLED_MESSAGE)
    try:
        result = await exchanger.exchange(user_token)
    except ExchangeFailedError as exc:
        logger.error("OBO exchange rejected: %s", exc.error)
        if exc.consent_required:
            return PlainTextResponse(CONSENT_MESSAGE)
        return PlainTextResponse(APOLOGY_MESSAGE)
    except (OboError, httpx.HTTPError):
        logger.exception("OBO exchange failed")
        return PlainTextResponse(APOLOGY_MESSAGE)
    return PlainTextResponse(
        f"Signed in. Access granted for {result.scope or 'the requested scope'}."
    )
