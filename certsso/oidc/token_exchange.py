"""On-Behalf-Of exchange authenticated with a certificate client assertion."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

import httpx
from pydantic import ValidationError

from certsso.core.errors import ExchangeFailedError, MalformedResponseError
from certsso.core.settings import (
    DEFAULT_AUTHORITY_HOST,
    DEFAULT_DOWNSTREAM_SCOPE,
    AzureSettings,
    require_setting,
)
from certsso.crypto.assertion import create_client_assertion
from certsso.oidc.types import ExchangeResult, OboTokenRequest
from certsso.vault.certificate_cache import CertificateCache

logger = logging.getLogger(__name__)


def token_endpoint_url(tenant_id: str, authority_host: str = DEFAULT_AUTHORITY_HOST) -> str:
    """Tenant-scoped v2.0 token endpoint; also the assertion audience."""
    return f"https://{authority_host}/{tenant_id}/oauth2/v2.0/token"


class TokenExchanger:
    """Exchanges a user's delegated token for a downstream access token."""

    def __init__(
        self,
        *,
        cache: CertificateCache,
        http_client: httpx.AsyncClient,
        client_id: str,
        tenant_id: str,
        authority_host: str = DEFAULT_AUTHORITY_HOST,
        scope: str = DEFAULT_DOWNSTREAM_SCOPE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._cache = cache
        self._http = http_client
        self._client_id = client_id
        self._tenant_id = tenant_id
        self._authority_host = authority_host
        self._scope = scope
        self._clock = clock or (lambda: datetime.now(UTC))

    @classmethod
    def from_settings(
        cls,
        azure: AzureSettings,
        *,
        cache: CertificateCache,
        http_client: httpx.AsyncClient,
    ) -> "TokenExchanger":
        return cls(
            cache=cache,
            http_client=http_client,
            client_id=azure.client_id,
            tenant_id=azure.tenant_id,
            authority_host=azure.authority_host,
            scope=azure.downstream_scope,
        )

    @property
    def cache(self) -> CertificateCache:
        return self._cache

    async def exchange(self, user_token: str) -> ExchangeResult:
        """Run the OBO grant for ``user_token``.

        Raises ConfigurationError, CredentialFetchError, ExchangeFailedError
        or MalformedResponseError. Transport errors from httpx propagate
        unchanged; no retry happens here.
        """
        if not user_token or not user_token.strip():
            raise ValueError("user_token must be a non-empty string")
        tenant_id = require_setting(self._tenant_id, "AZURE_TENANT_ID")
        client_id = require_setting(self._client_id, "AZURE_CLIENT_ID")

        logger.info("Exchanging user token for %s via OBO", self._scope)
        credential = await self._cache.get_credential()

        endpoint = token_endpoint_url(tenant_id, self._authority_host)
        assertion = create_client_assertion(
            credential,
            client_id,
            endpoint,
            now=self._clock(),
        )
        form = OboTokenRequest(
            client_id=client_id,
            client_assertion=assertion,
            assertion=user_token,
            scope=self._scope,
        )
        response = await self._http.post(endpoint, data=form.model_dump())
        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response) -> ExchangeResult:
        if not response.is_success:
            error = ExchangeFailedError(response.status_code, response.text)
            logger.error(
                "Token exchange failed. Status: %s, Error: %s, Description: %s",
                response.status_code,
                error.error,
                error.error_description,
            )
            if error.consent_required:
                logger.error("User consent required for scope %s", self._scope)
            raise error

        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResponseError("Token endpoint returned non-JSON body") from exc
        if not isinstance(body, dict) or not body.get("access_token"):
            logger.error("Token exchange returned no access token")
            raise MalformedResponseError("Token exchange returned no access token")
        try:
            result = ExchangeResult.model_validate(body)
        except ValidationError as exc:
            raise MalformedResponseError(f"Unexpected token response: {exc}") from exc

        logger.info("Successfully exchanged user token via OBO")
        return result
