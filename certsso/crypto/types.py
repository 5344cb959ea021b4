"""Type definitions for signing credentials and client assertions."""

from datetime import datetime

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from pydantic import BaseModel, ConfigDict


class SigningCredential(BaseModel):
    """A certificate plus the private key used to sign client assertions."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    private_key: RSAPrivateKey | EllipticCurvePrivateKey
    certificate: x509.Certificate
    thumbprint: str
    x5t: str
    subject: str
    algorithm: str
    not_valid_after: datetime
    fetched_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        """Return True once the certificate itself is past not-after."""
        return now >= self.not_valid_after


class CacheEntry(BaseModel):
    """The single cached credential and the instant it stops being served."""

    model_config = ConfigDict(frozen=True)

    credential: SigningCredential
    expires_at: datetime


class AssertionClaims(BaseModel):
    """Claims of a client assertion JWT (RFC 7523)."""

    aud: str
    iss: str
    sub: str
    jti: str
    nbf: int
    exp: int
