"""Azure Key Vault download of the SSO certificate and its private key."""

import logging

from azure.core.credentials_async import AsyncTokenCredential
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError,
)
from azure.identity.aio import DefaultAzureCredential
from azure.keyvault.secrets.aio import SecretClient

from certsso.core.errors import CredentialFetchError
from certsso.core.settings import AzureSettings, require_setting
from certsso.crypto.certificates import credential_from_secret
from certsso.crypto.types import SigningCredential

logger = logging.getLogger(__name__)

HTTP_FORBIDDEN = 403


class KeyVaultCertificateSource:
    """Downloads a certificate with its private key via its backing secret.

    Key Vault exposes the private key of a certificate only through the
    secret of the same name (PKCS#12 or PEM, per the certificate policy).
    Authentication uses ambient platform identity (managed identity, CLI
    login, environment) through DefaultAzureCredential.
    """

    def __init__(
        self,
        vault_url: str,
        certificate_name: str,
        *,
        credential: AsyncTokenCredential | None = None,
    ) -> None:
        self._vault_url = vault_url
        self._certificate_name = certificate_name
        self._credential = credential
        self._owns_credential = credential is None
        self._client: SecretClient | None = None

    @classmethod
    def from_settings(cls, settings: AzureSettings) -> "KeyVaultCertificateSource":
        return cls(settings.key_vault_url, settings.sso_certificate_name)

    def _get_client(self, vault_url: str) -> SecretClient:
        if self._client is None:
            if self._credential is None:
                self._credential = DefaultAzureCredential()
            self._client = SecretClient(vault_url=vault_url, credential=self._credential)
        return self._client

    async def fetch(self) -> SigningCredential:
        """Download and parse the certificate. Raises CredentialFetchError."""
        vault_url = require_setting(self._vault_url, "AZURE_KEY_VAULT_URL")
        name = require_setting(self._certificate_name, "AZURE_SSO_CERTIFICATE_NAME")
        logger.info("Retrieving certificate '%s' from Key Vault '%s'", name, vault_url)

        client = self._get_client(vault_url)
        try:
            secret = await client.get_secret(name)
        except ResourceNotFoundError as exc:
            raise CredentialFetchError(
                f"Certificate '{name}' not found in {vault_url}"
            ) from exc
        except ClientAuthenticationError as exc:
            raise CredentialFetchError(
                f"Could not authenticate to {vault_url}: {exc.message}"
            ) from exc
        except HttpResponseError as exc:
            if exc.status_code == HTTP_FORBIDDEN:
                raise CredentialFetchError(
                    f"Access denied to certificate '{name}' in {vault_url}"
                ) from exc
            raise CredentialFetchError(
                f"Key Vault returned {exc.status_code} for '{name}': {exc.message}"
            ) from exc
        except AzureError as exc:
            raise CredentialFetchError(
                f"Key Vault request for '{name}' failed: {exc.message}"
            ) from exc

        if not secret.value:
            raise CredentialFetchError(f"Certificate '{name}' has no exportable key")
        try:
            credential = credential_from_secret(
                secret.value, secret.properties.content_type
            )
        except ValueError as exc:
            raise CredentialFetchError(
                f"Certificate '{name}' is not a usable signing certificate: {exc}"
            ) from exc

        logger.info(
            "Successfully retrieved certificate %s from Key Vault", credential.thumbprint
        )
        return credential

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
        if self._owns_credential and self._credential is not None:
            await self._credential.close()
            self._credential = None
