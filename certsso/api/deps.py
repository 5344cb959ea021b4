"""FastAPI dependency injection for the exchange endpoints."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from certsso.core.settings import AzureSettings
from certsso.oidc.token_exchange import TokenExchanger

_security = HTTPBearer()


def get_exchanger(request: Request) -> TokenExchanger:
    """The app-owned exchanger built in create_app."""
    return request.app.state.exchanger


def get_azure_settings(request: Request) -> AzureSettings:
    return request.app.state.azure_settings


async def require_user_token(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_security)],
) -> str:
    """The caller's delegated token from the Authorization header."""
    return credentials.credentials


Exchanger = Annotated[TokenExchanger, Depends(get_exchanger)]
Settings = Annotated[AzureSettings, Depends(get_azure_settings)]
UserToken = Annotated[str, Depends(require_user_token)]
