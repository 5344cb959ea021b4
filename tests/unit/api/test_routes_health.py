"""Tests for the liveness endpoint."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from certsso.core.app import create_app
from fakes import FakeCertificateSource


class TestHealthz:
    """Tests for GET /healthz."""

    async def test_reports_cache_state(
        self, fake_source: FakeCertificateSource, http_client: httpx.AsyncClient
    ) -> None:
        app = create_app(certificate_source=fake_source, http_client=http_client)
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            before = await ac.get("/healthz")
            assert before.status_code == 200
            assert before.json()["credential_cached"] is False

            await ac.post("/obo/token", headers={"Authorization": "Bearer u-token"})

            after = await ac.get("/healthz")
        body = after.json()
        assert body["status"] == "ok"
        assert body["credential_cached"] is True
        assert body["certificate_thumbprint"] == fake_source.credential.thumbprint
        assert fake_source.fetch_count == 1

    async def test_expired_entry_not_reported_as_cached(
        self,
        monkeypatch: pytest.MonkeyPatch,
        fake_source: FakeCertificateSource,
        http_client: httpx.AsyncClient,
    ) -> None:
        monkeypatch.setenv("OBO_CERTIFICATE_CACHE_TTL", "0")
        app = create_app(certificate_source=fake_source, http_client=http_client)
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            await ac.post("/obo/token", headers={"Authorization": "Bearer u-token"})
            resp = await ac.get("/healthz")
        assert fake_source.fetch_count == 1
        assert app.state.exchanger.cache.entry is not None
        assert resp.json()["credential_cached"] is False
        assert resp.json()["certificate_thumbprint"] is None
