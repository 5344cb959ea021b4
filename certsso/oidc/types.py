"""Type definitions for the On-Behalf-Of token request and response."""

from pydantic import BaseModel, ConfigDict

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
JWT_BEARER_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
ON_BEHALF_OF = "on_behalf_of"


class OboTokenRequest(BaseModel):
    """Form fields posted to the v2.0 token endpoint."""

    grant_type: str = JWT_BEARER_GRANT_TYPE
    client_id: str
    client_assertion_type: str = JWT_BEARER_ASSERTION_TYPE
    client_assertion: str
    assertion: str
    scope: str
    requested_token_use: str = ON_BEHALF_OF


class ExchangeResult(BaseModel):
    """Token endpoint success response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    ext_expires_in: int | None = None
    scope: str | None = None
    refresh_token: str | None = None
