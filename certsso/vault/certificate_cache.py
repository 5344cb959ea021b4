"""Single-slot TTL cache for the signing certificate."""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol

from certsso.core.errors import CredentialFetchError, OboError
from certsso.core.settings import CERTIFICATE_CACHE_TTL_DEFAULT
from certsso.crypto.types import CacheEntry, SigningCredential

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


class CertificateSource(Protocol):
    """Anything that can download the signing certificate with its key."""

    async def fetch(self) -> SigningCredential: ...

    async def close(self) -> None: ...


class CertificateCache:
    """Serves one signing credential, refetching it after a fixed TTL.

    The TTL is independent of the certificate's own not-after date unless
    ``respect_certificate_expiry`` is set. Concurrent misses share a single
    in-flight fetch; the slot lock is never held across network I/O.
    """

    def __init__(
        self,
        source: CertificateSource,
        *,
        ttl: timedelta = timedelta(seconds=CERTIFICATE_CACHE_TTL_DEFAULT),
        respect_certificate_expiry: bool = False,
        clock: Clock = utcnow,
    ) -> None:
        self._source = source
        self._ttl = ttl
        self._respect_certificate_expiry = respect_certificate_expiry
        self._clock = clock
        self._entry: CacheEntry | None = None
        self._inflight: asyncio.Task[SigningCredential] | None = None
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def entry(self) -> CacheEntry | None:
        """The current slot, which may already be past its expiry."""
        return self._entry

    def servable_entry(self) -> CacheEntry | None:
        """The current slot if a call right now would be served from it."""
        entry = self._entry
        if entry is None or not self._is_servable(entry):
            return None
        return entry

    def _is_servable(self, entry: CacheEntry) -> bool:
        now = self._clock()
        if now >= entry.expires_at:
            return False
        if self._respect_certificate_expiry and entry.credential.is_expired(now):
            return False
        return True

    async def get_credential(self) -> SigningCredential:
        """Return the cached credential, fetching a new one on a miss."""
        entry = self._entry
        if entry is not None and self._is_servable(entry):
            logger.debug("Using cached certificate")
            return entry.credential

        async with self._lock:
            if self._closed:
                raise CredentialFetchError("Certificate cache is closed")
            entry = self._entry
            if entry is not None and self._is_servable(entry):
                return entry.credential
            if self._inflight is None:
                self._inflight = asyncio.create_task(self._refresh())
            task = self._inflight

        # A cancelled caller must not cancel the fetch other callers share.
        return await asyncio.shield(task)

    async def _refresh(self) -> SigningCredential:
        try:
            credential = await self._fetch()
            now = self._clock()
            if credential.is_expired(now):
                logger.warning(
                    "Certificate %s expired at %s",
                    credential.thumbprint,
                    credential.not_valid_after.isoformat(),
                )
            if self._closed:
                raise CredentialFetchError("Certificate cache is closed")
            credential = credential.model_copy(update={"fetched_at": now})
            self._entry = CacheEntry(credential=credential, expires_at=now + self._ttl)
            return credential
        finally:
            self._inflight = None

    async def _fetch(self) -> SigningCredential:
        try:
            return await self._source.fetch()
        except OboError:
            raise
        except Exception as exc:
            logger.exception("Failed to retrieve certificate from secret store")
            raise CredentialFetchError(
                f"Certificate fetch failed: {exc}"
            ) from exc

    def invalidate(self) -> None:
        """Drop the cached credential so the next call refetches."""
        self._entry = None

    async def close(self) -> None:
        """Cancel any in-flight fetch, drop the slot and release the source."""
        self._closed = True
        task = self._inflight
        if task is not None:
            task.cancel()
            await asyncio.wait({task})
        self.invalidate()
        await self._source.close()
