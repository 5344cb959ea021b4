"""Tests for client assertion construction and signing."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from certsso.crypto.assertion import (
    CLIENT_ASSERTION_TTL_SECONDS,
    build_assertion_claims,
    create_client_assertion,
)
from certsso.crypto.certificates import build_credential
from certsso.crypto.types import SigningCredential
from fakes import CLIENT_ID, TOKEN_ENDPOINT, make_certificate


class TestBuildAssertionClaims:
    """Tests for the assertion claim set."""

    def test_issuer_and_subject_are_client_id(self) -> None:
        claims = build_assertion_claims(CLIENT_ID, TOKEN_ENDPOINT)
        assert claims.iss == CLIENT_ID
        assert claims.sub == CLIENT_ID
        assert claims.aud == TOKEN_ENDPOINT

    @pytest.mark.parametrize(
        "now",
        [
            datetime(1999, 12, 31, 23, 59, 59, tzinfo=UTC),
            datetime(2026, 10, 18, 8, 30, 15, 999_999, tzinfo=UTC),
            datetime(2038, 1, 19, 3, 14, 7, tzinfo=UTC),
        ],
    )
    def test_lifetime_is_ten_minutes(self, now: datetime) -> None:
        claims = build_assertion_claims(CLIENT_ID, TOKEN_ENDPOINT, now=now)
        assert claims.nbf == int(now.timestamp())
        assert claims.exp - claims.nbf == CLIENT_ASSERTION_TTL_SECONDS == 600

    def test_unique_jti(self) -> None:
        now = datetime.now(UTC)
        jtis = {
            build_assertion_claims(CLIENT_ID, TOKEN_ENDPOINT, now=now).jti
            for _ in range(200)
        }
        assert len(jtis) == 200


class TestCreateClientAssertion:
    """Tests for the signed compact JWS."""

    def test_compact_serialization(self, signing_credential: SigningCredential) -> None:
        token = create_client_assertion(signing_credential, CLIENT_ID, TOKEN_ENDPOINT)
        assert token.count(".") == 2

    def test_header_identifies_certificate(
        self, signing_credential: SigningCredential
    ) -> None:
        token = create_client_assertion(signing_credential, CLIENT_ID, TOKEN_ENDPOINT)
        header = jwt.get_unverified_header(token)
        assert header["alg"] == "RS256"
        assert header["kid"] == signing_credential.thumbprint
        assert header["x5t"] == signing_credential.x5t

    def test_signature_verifies_with_certificate(
        self, signing_credential: SigningCredential
    ) -> None:
        token = create_client_assertion(signing_credential, CLIENT_ID, TOKEN_ENDPOINT)
        claims = jwt.decode(
            token,
            signing_credential.certificate.public_key(),
            algorithms=["RS256"],
            audience=TOKEN_ENDPOINT,
            issuer=CLIENT_ID,
        )
        assert claims["sub"] == CLIENT_ID
        assert claims["exp"] - claims["nbf"] == 600

    def test_back_to_back_assertions_differ(
        self, signing_credential: SigningCredential
    ) -> None:
        now = datetime.now(UTC)
        first = create_client_assertion(
            signing_credential, CLIENT_ID, TOKEN_ENDPOINT, now=now
        )
        second = create_client_assertion(
            signing_credential, CLIENT_ID, TOKEN_ENDPOINT, now=now
        )
        first_jti = jwt.decode(first, options={"verify_signature": False})["jti"]
        second_jti = jwt.decode(second, options={"verify_signature": False})["jti"]
        assert first_jti != second_jti

    def test_ec_certificate_signs_es256(self) -> None:
        key, certificate = make_certificate("ec")
        credential = build_credential(key, certificate)
        token = create_client_assertion(credential, CLIENT_ID, TOKEN_ENDPOINT)
        assert jwt.get_unverified_header(token)["alg"] == "ES256"
        jwt.decode(
            token,
            certificate.public_key(),
            algorithms=["ES256"],
            audience=TOKEN_ENDPOINT,
        )

    def test_expired_assertion_rejected_by_verifier(
        self, signing_credential: SigningCredential
    ) -> None:
        stale = datetime.now(UTC) - timedelta(minutes=11)
        token = create_client_assertion(
            signing_credential, CLIENT_ID, TOKEN_ENDPOINT, now=stale
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            jwt.decode(
                token,
                signing_credential.certificate.public_key(),
                algorithms=["RS256"],
                audience=TOKEN_ENDPOINT,
            )
