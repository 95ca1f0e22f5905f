import base64
import os
from typing import Dict, Mapping, Optional


class Authenticator:
    """Adds credentials to outgoing request headers."""

    def authenticate(self, headers: Dict[str, str]) -> None:
        raise NotImplementedError


class NoAuthAuthenticator(Authenticator):
    def authenticate(self, headers: Dict[str, str]) -> None:
        return None


class BearerTokenAuthenticator(Authenticator):
    def __init__(self, bearer_token: str) -> None:
        if not bearer_token:
            raise ValueError("bearer_token is required for BearerTokenAuthenticator")
        self.bearer_token = bearer_token

    def set_bearer_token(self, bearer_token: str) -> None:
        """Update the token at runtime (useful for short-lived tokens)."""
        self.bearer_token = bearer_token

    def authenticate(self, headers: Dict[str, str]) -> None:
        headers["Authorization"] = f"Bearer {self.bearer_token}"


class BasicAuthenticator(Authenticator):
    """HTTP basic auth. An API key is sent as the password of the ``apikey`` user."""

    def __init__(self, username: str, password: str) -> None:
        if not username or not password:
            raise ValueError("username and password are required for BasicAuthenticator")
        self.username = username
        self.password = password

    @classmethod
    def from_api_key(cls, api_key: str) -> "BasicAuthenticator":
        return cls("apikey", api_key)

    def authenticate(self, headers: Dict[str, str]) -> None:
        token = base64.b64encode(f"{self.username}:{self.password}".encode("utf-8")).decode("ascii")
        headers["Authorization"] = f"Basic {token}"


class ServiceConfig:
    """Connection settings shared by every request a service client makes."""

    def __init__(
        self,
        *,
        service_url: str,
        authenticator: Optional[Authenticator] = None,
        headers: Optional[Mapping[str, str]] = None,
        disable_ssl_verification: bool = False,
        timeout: float = 15.0,
    ) -> None:
        """Initialize ServiceConfig.

        Args:
            service_url: Base URL of the service instance
            authenticator: Adds credentials to each request
            headers: Default headers sent with every request
            disable_ssl_verification: Skip TLS certificate checks (HTTP and websocket)
            timeout: HTTP request timeout in seconds
        """
        self.service_url = service_url.rstrip("/") if service_url else service_url
        self.authenticator = authenticator
        self.headers: Dict[str, str] = dict(headers or {})
        self.disable_ssl_verification = disable_ssl_verification
        self.timeout = timeout

    @classmethod
    def from_api_key(cls, api_key: str, service_url: str, **kwargs) -> "ServiceConfig":
        return cls(service_url=service_url, authenticator=BasicAuthenticator.from_api_key(api_key), **kwargs)

    @classmethod
    def from_bearer_token(cls, token: str, service_url: str, **kwargs) -> "ServiceConfig":
        return cls(service_url=service_url, authenticator=BearerTokenAuthenticator(token), **kwargs)

    @classmethod
    def from_environment(
        cls,
        service_name: str,
        *,
        default_url: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ServiceConfig":
        """Create ServiceConfig from ``<NAME>_*`` environment variables.

        For ``service_name="speech_to_text"`` the variables read are
        ``SPEECH_TO_TEXT_URL``, ``SPEECH_TO_TEXT_APIKEY``,
        ``SPEECH_TO_TEXT_BEARER_TOKEN`` and ``SPEECH_TO_TEXT_DISABLE_SSL``.
        A bearer token takes precedence over an API key.
        """
        env = os.environ if environ is None else environ
        prefix = service_name.upper().replace("-", "_")
        token = env.get(f"{prefix}_BEARER_TOKEN")
        api_key = env.get(f"{prefix}_APIKEY")
        if token:
            authenticator: Optional[Authenticator] = BearerTokenAuthenticator(token)
        elif api_key:
            authenticator = BasicAuthenticator.from_api_key(api_key)
        else:
            authenticator = None
        disable_ssl = env.get(f"{prefix}_DISABLE_SSL", "").lower() in ("1", "true", "yes")
        return cls(
            service_url=env.get(f"{prefix}_URL") or default_url or "",
            authenticator=authenticator,
            disable_ssl_verification=disable_ssl,
        )

    def validate(self) -> None:
        if not self.service_url:
            raise ValueError("service_url is required for ServiceConfig")
        if self.authenticator is None:
            raise ValueError("An authenticator must be provided (use NoAuthAuthenticator to send no credentials).")
