"""Certificate loading, thumbprints and signing algorithm selection."""

import base64
import binascii
import re

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import pkcs12

from certsso.crypto.types import SigningCredential

PKCS12_CONTENT_TYPE = "application/x-pkcs12"
PEM_CONTENT_TYPE = "application/x-pem-file"

_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([A-Z0-9 ]+)-----.+?-----END \1-----",
    re.DOTALL,
)

_EC_ALGORITHMS = {
    "secp256r1": "ES256",
    "secp384r1": "ES384",
    "secp521r1": "ES512",
}


def _base64url(raw: bytes) -> str:
    """Encode bytes as base64url without padding."""
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _sha1_digest(certificate: x509.Certificate) -> bytes:
    # SHA-1 is what x5t and Entra ID certificate thumbprints are defined over.
    return certificate.fingerprint(hashes.SHA1())  # noqa: S303


def compute_thumbprint(certificate: x509.Certificate) -> str:
    """Upper-case hex SHA-1 thumbprint, as shown in the Azure portal."""
    return _sha1_digest(certificate).hex().upper()


def compute_x5t(certificate: x509.Certificate) -> str:
    """Base64url SHA-1 thumbprint for the JWS x5t header."""
    return _base64url(_sha1_digest(certificate))


def signing_algorithm(
    private_key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey,
) -> str:
    """Pick the JWS algorithm matching the key type."""
    if isinstance(private_key, rsa.RSAPrivateKey):
        return "RS256"
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        algorithm = _EC_ALGORITHMS.get(private_key.curve.name)
        if algorithm is not None:
            return algorithm
        raise ValueError(f"Unsupported elliptic curve: {private_key.curve.name}")
    raise ValueError(f"Unsupported private key type: {type(private_key).__name__}")


def _public_keys_match(
    private_key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey,
    certificate: x509.Certificate,
) -> bool:
    encoding = serialization.Encoding.DER
    fmt = serialization.PublicFormat.SubjectPublicKeyInfo
    return private_key.public_key().public_bytes(
        encoding, fmt
    ) == certificate.public_key().public_bytes(encoding, fmt)


def build_credential(
    private_key: object, certificate: x509.Certificate
) -> SigningCredential:
    """Validate a key/certificate pair and wrap it as a SigningCredential."""
    if not isinstance(private_key, rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey):
        raise ValueError(f"Unsupported private key type: {type(private_key).__name__}")
    if not _public_keys_match(private_key, certificate):
        raise ValueError("Private key does not match the certificate public key")
    return SigningCredential(
        private_key=private_key,
        certificate=certificate,
        thumbprint=compute_thumbprint(certificate),
        x5t=compute_x5t(certificate),
        subject=certificate.subject.rfc4514_string(),
        algorithm=signing_algorithm(private_key),
        not_valid_after=certificate.not_valid_after_utc,
    )


def load_pkcs12_credential(
    data: bytes, password: bytes | None = None
) -> SigningCredential:
    """Load a PFX/PKCS#12 bundle holding a certificate and its private key."""
    private_key, certificate, _chain = pkcs12.load_key_and_certificates(
        data, password
    )
    if private_key is None or certificate is None:
        raise ValueError("PKCS#12 bundle has no private key or certificate")
    return build_credential(private_key, certificate)


def load_pem_credential(data: bytes) -> SigningCredential:
    """Load a PEM bundle; the first certificate block is the leaf."""
    private_key = None
    certificate = None
    for match in _PEM_BLOCK.finditer(data):
        label = match.group(1)
        block = match.group(0)
        if label == b"CERTIFICATE" and certificate is None:
            certificate = x509.load_pem_x509_certificate(block)
        elif label.endswith(b"PRIVATE KEY") and private_key is None:
            private_key = serialization.load_pem_private_key(block, password=None)
    if private_key is None or certificate is None:
        raise ValueError("PEM bundle has no private key or certificate")
    return build_credential(private_key, certificate)


def credential_from_secret(
    value: str, content_type: str | None = None
) -> SigningCredential:
    """Decode the secret backing a Key Vault certificate."""
    if content_type == PEM_CONTENT_TYPE or value.lstrip().startswith("-----BEGIN"):
        return load_pem_credential(value.encode())
    try:
        raw = base64.b64decode("".join(value.split()), validate=True)
    except binascii.Error as exc:
        raise ValueError("Certificate secret is neither PEM nor base64 PKCS#12") from exc
    return load_pkcs12_credential(raw)
