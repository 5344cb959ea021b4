"""Application settings loaded from environment variables."""

from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict

from certsso.core.errors import ConfigurationError

DEFAULT_AUTHORITY_HOST = "login.microsoftonline.com"
DEFAULT_DOWNSTREAM_SCOPE = "https://graph.microsoft.com/.default"
CERTIFICATE_CACHE_TTL_DEFAULT = 3600


class AzureSettings(BaseSettings):
    """Tenant, app registration and Key Vault settings."""

    model_config = SettingsConfigDict(env_prefix="AZURE_")

    key_vault_url: str = ""
    sso_certificate_name: str = ""
    tenant_id: str = ""
    client_id: str = ""
    authority_host: str = DEFAULT_AUTHORITY_HOST
    downstream_scope: str = DEFAULT_DOWNSTREAM_SCOPE
    use_certificate_auth: bool = True


class ServiceSettings(BaseSettings):
    """Cache and runtime tuning."""

    model_config = SettingsConfigDict(env_prefix="OBO_")

    certificate_cache_ttl: int = CERTIFICATE_CACHE_TTL_DEFAULT
    respect_certificate_expiry: bool = False
    http_timeout: float | None = None
    log_level: str = "INFO"

    @property
    def cache_ttl(self) -> timedelta:
        """Certificate cache lifetime as a timedelta."""
        return timedelta(seconds=self.certificate_cache_ttl)


def require_setting(value: str, env_name: str) -> str:
    """Return a non-blank setting value or raise ConfigurationError."""
    if not value or not value.strip():
        raise ConfigurationError(env_name)
    return value.strip()
