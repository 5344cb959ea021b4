"""Shared test fixtures for the certificate OBO service."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa

from certsso.crypto.certificates import build_credential
from certsso.crypto.types import SigningCredential
from fakes import (
    CLIENT_ID,
    TENANT_ID,
    FakeCertificateSource,
    MutableClock,
    TokenEndpointStub,
    make_certificate,
)


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for test settings."""
    monkeypatch.setenv("AZURE_TENANT_ID", TENANT_ID)
    monkeypatch.setenv("AZURE_CLIENT_ID", CLIENT_ID)
    monkeypatch.setenv("AZURE_KEY_VAULT_URL", "https://kv-test.vault.azure.net/")
    monkeypatch.setenv("AZURE_SSO_CERTIFICATE_NAME", "sso-cert")


@pytest.fixture(scope="session")
def rsa_certificate() -> tuple[rsa.RSAPrivateKey, x509.Certificate]:
    """One RSA keypair per session; generation is slow."""
    key, certificate = make_certificate("rsa")
    assert isinstance(key, rsa.RSAPrivateKey)
    return key, certificate


@pytest.fixture
def signing_credential(
    rsa_certificate: tuple[rsa.RSAPrivateKey, x509.Certificate],
) -> SigningCredential:
    key, certificate = rsa_certificate
    return build_credential(key, certificate)


@pytest.fixture
def fake_source(signing_credential: SigningCredential) -> FakeCertificateSource:
    return FakeCertificateSource(signing_credential)


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(datetime.now(UTC).replace(microsecond=0))


@pytest.fixture
def token_endpoint() -> TokenEndpointStub:
    return TokenEndpointStub()


@pytest.fixture
async def http_client(
    token_endpoint: TokenEndpointStub,
) -> AsyncIterator[httpx.AsyncClient]:
    """An httpx client whose every request hits the token endpoint stub."""
    transport = httpx.MockTransport(token_endpoint.handler)
    async with httpx.AsyncClient(transport=transport) as client:
        yield client
