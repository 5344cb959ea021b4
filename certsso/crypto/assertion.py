"""Client assertion JWTs signed with the application certificate."""

from datetime import UTC, datetime

import jwt
import uuid_utils

from certsso.crypto.types import AssertionClaims, SigningCredential

CLIENT_ASSERTION_TTL_SECONDS = 600


def build_assertion_claims(
    client_id: str,
    audience: str,
    *,
    now: datetime | None = None,
    ttl_seconds: int = CLIENT_ASSERTION_TTL_SECONDS,
) -> AssertionClaims:
    """Build a fresh claim set; every call gets a new jti."""
    issued = int((now or datetime.now(UTC)).timestamp())
    return AssertionClaims(
        aud=audience,
        iss=client_id,
        sub=client_id,
        jti=str(uuid_utils.uuid7()),
        nbf=issued,
        exp=issued + ttl_seconds,
    )


def sign_client_assertion(
    credential: SigningCredential, claims: AssertionClaims
) -> str:
    """Serialize claims as a compact JWS signed with the credential key.

    ``kid`` carries the hex thumbprint and ``x5t`` its base64url form so the
    identity provider can locate the registered certificate.
    """
    return jwt.encode(
        claims.model_dump(),
        credential.private_key,
        algorithm=credential.algorithm,
        headers={"kid": credential.thumbprint, "x5t": credential.x5t},
    )


def create_client_assertion(
    credential: SigningCredential,
    client_id: str,
    audience: str,
    *,
    now: datetime | None = None,
    ttl_seconds: int = CLIENT_ASSERTION_TTL_SECONDS,
) -> str:
    """Build and sign a client assertion in one step."""
    claims = build_assertion_claims(
        client_id, audience, now=now, ttl_seconds=ttl_seconds
    )
    return sign_client_assertion(credential, claims)
