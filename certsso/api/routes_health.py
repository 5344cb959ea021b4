"""Liveness endpoint."""

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel

from certsso.api.deps import Exchanger

router = APIRouter()


class HealthResponse(BaseModel):
    """GET /healthz response."""

    status: str = "ok"
    credential_cached: bool
    credential_expires_at: datetime | None = None
    certificate_thumbprint: str | None = None


@router.get("/healthz")
async def healthz(exchanger: Exchanger) -> HealthResponse:
    """Report liveness and the whether a cached credential is servable."""
    entry = exchanger.cache.servable_entry()
    if entry is None:
        return HealthResponse(credential_cached=False)
    return HealthResponse(
        credential_cached=True,
        credential_expires_at=entry.expires_at,
        certificate_thumbprint=entry.credential.thumbprint,
    )
