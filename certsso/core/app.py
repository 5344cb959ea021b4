"""FastAPI application factory for the certificate OBO service."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from certsso.api.routes_exchange import router as exchange_router
from certsso.api.routes_health import router as health_router
from certsso.core.logging import configure_logging
from certsso.core.settings import AzureSettings, ServiceSettings
from certsso.oidc.token_exchange import TokenExchanger
from certsso.vault.certificate_cache import CertificateCache, CertificateSource
from certsso.vault.keyvault import KeyVaultCertificateSource


def create_app(
    *,
    certificate_source: CertificateSource | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    The certificate cache and HTTP client are owned by the app instance and
    closed on shutdown. Tests inject their own source and client.
    """
    azure = AzureSettings()
    service = ServiceSettings()
    configure_logging(service.log_level)

    source = certificate_source or KeyVaultCertificateSource.from_settings(azure)
    cache = CertificateCache(
        source,
        ttl=service.cache_ttl,
        respect_certificate_expiry=service.respect_certificate_expiry,
    )
    client = http_client or httpx.AsyncClient(timeout=service.http_timeout)
    exchanger = TokenExchanger.from_settings(azure, cache=cache, http_client=client)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await cache.close()
        await client.aclose()

    app = FastAPI(
        title="Certificate SSO On-Behalf-Of service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.azure_settings = azure
    app.state.service_settings = service
    app.state.exchanger = exchanger

    app.include_router(health_router)
    app.include_router(exchange_router)

    return app
