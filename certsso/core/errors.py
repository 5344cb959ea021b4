"""Error taxonomy for the On-Behalf-Of exchange."""

import json

CONSENT_ERRORS = frozenset({"consent_required", "interaction_required"})
CONSENT_ERROR_CODE = 65001


def _str_or_none(value: object) -> str | None:
    # Gateways in front of the provider may return non-OAuth shapes.
    return value if isinstance(value, str) else None


class OboError(Exception):
    """Base class for every failure raised by the exchange path."""


class ConfigurationError(OboError):
    """A required setting is missing. Fix the deployment, do not retry."""

    def __init__(self, setting: str) -> None:
        super().__init__(f"{setting} configuration is missing")
        self.setting = setting


class CredentialFetchError(OboError):
    """The signing certificate could not be obtained from the secret store."""


class ExchangeFailedError(OboError):
    """The identity provider rejected the assertion or the grant."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Token exchange failed ({status_code}): {body}")
        self.status_code = status_code
        self.body = body
        self.error: str | None = None
        self.error_description: str | None = None
        self.error_codes: list[int] = []
        self.correlation_id: str | None = None
        self._parse_body(body)

    def _parse_body(self, body: str) -> None:
        try:
            payload = json.loads(body)
        except ValueError:
            return
        if not isinstance(payload, dict):
            return
        self.error = _str_or_none(payload.get("error"))
        self.error_description = _str_or_none(payload.get("error_description"))
        self.correlation_id = _str_or_none(payload.get("correlation_id"))
        codes = payload.get("error_codes")
        if isinstance(codes, list) and all(
            isinstance(c, int) and not isinstance(c, bool) for c in codes
        ):
            self.error_codes = codes

    @property
    def consent_required(self) -> bool:
        """True when the user (or an admin) must grant consent first."""
        if self.error in CONSENT_ERRORS:
            return True
        return CONSENT_ERROR_CODE in self.error_codes


class MalformedResponseError(OboError):
    """The provider answered 2xx with a body that carries no usable token."""
