import asyncio
import copy
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, Dict, Iterable, Mapping, Optional
from urllib.parse import quote

import httpx
from loguru import logger

from .config import ServiceConfig
from .errors import MissingParameterError, SpeechServiceError, error_message_from_payload
from .version import __version__

USER_AGENT = f"cloud-speech-python/{__version__}"


@dataclass
class Request:
    """Everything needed to issue one call against a service."""

    method: str
    url: str
    path: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, Optional[str]] = field(default_factory=dict)
    json: Any = None
    content: Any = None
    data: Optional[Dict[str, Any]] = None
    files: Optional[Dict[str, Any]] = None


@dataclass
class DetailedResponse:
    result: Any
    status: int
    status_text: str
    headers: Dict[str, str]


def require_params(**params: Any) -> None:
    """Raise MissingParameterError naming every parameter that is None."""
    missing = [name for name, value in params.items() if value is None]
    if missing:
        raise MissingParameterError(missing)


def sdk_headers(service_name: str, service_version: str, operation_id: str) -> Dict[str, str]:
    return {
        "User-Agent": USER_AGENT,
        "X-IBMCloud-SDK-Analytics": (
            f"service_name={service_name};service_version={service_version};operation_id={operation_id}"
        ),
    }


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return [_query_value(item) for item in value]
    return value


def build_url(service_url: str, template: str, path: Mapping[str, Any]) -> str:
    """Join the service url with a ``{param}`` template, quoting each value."""
    rendered = template
    for name, value in path.items():
        rendered = rendered.replace("{" + name + "}", quote(str(value), safe=""))
    return service_url.rstrip("/") + rendered


class BaseService:
    """Issues requests for a service and wraps responses in DetailedResponse."""

    DEFAULT_SERVICE_URL: str = ""
    DEFAULT_SERVICE_NAME: str = ""

    def __init__(
        self,
        config: ServiceConfig,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        # Each client owns its config; setters must not reach other clients.
        config = copy.copy(config)
        config.headers = dict(config.headers)
        if not config.service_url:
            config.service_url = self.DEFAULT_SERVICE_URL
        config.validate()
        self.config = config
        verify = not config.disable_ssl_verification
        self._client = httpx.Client(timeout=config.timeout, transport=transport, verify=verify)
        self._async_client = httpx.AsyncClient(timeout=config.timeout, transport=async_transport, verify=verify)

    def close(self) -> None:
        self._client.close()
        if self._async_client.is_closed:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._async_client.aclose())
        # Inside a running loop callers must use aclose() or the async context manager.

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if not self._async_client.is_closed:
            await self._async_client.aclose()

    def set_service_url(self, service_url: str) -> None:
        self.config.service_url = service_url.rstrip("/")

    def set_default_headers(self, headers: Mapping[str, str]) -> None:
        self.config.headers = dict(headers)

    def _operation_headers(
        self,
        operation_id: str,
        defaults: Optional[Mapping[str, Optional[str]]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Optional[str]]:
        merged: Dict[str, Optional[str]] = dict(sdk_headers(self.DEFAULT_SERVICE_NAME, "v1", operation_id))
        merged.update(defaults or {})
        merged.update(headers or {})
        return merged

    def send(self, request: Request) -> DetailedResponse:
        url, kwargs = self._prepare(request)
        logger.debug("{} {}", request.method, url)
        try:
            response = self._client.request(request.method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise SpeechServiceError(f"Request to {url} failed: {exc}") from exc
        return self._process(response)

    async def send_async(self, request: Request) -> DetailedResponse:
        url, kwargs = self._prepare(request)
        logger.debug("{} {}", request.method, url)
        try:
            response = await self._async_client.request(request.method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise SpeechServiceError(f"Request to {url} failed: {exc}") from exc
        return self._process(response)

    def send_stream(self, request: Request) -> Iterable[bytes]:
        """Issue the request and yield the response body in chunks."""
        url, kwargs = self._prepare(request)
        logger.debug("{} {} (streaming)", request.method, url)
        try:
            with self._client.stream(request.method, url, **kwargs) as resp:
                if not resp.is_success:
                    resp.read()
                    self._raise_for_status(resp)
                for chunk in resp.iter_bytes():
                    if chunk:
                        yield chunk
        except httpx.HTTPError as exc:
            raise SpeechServiceError(f"Request to {url} failed: {exc}") from exc

    async def send_stream_async(self, request: Request) -> AsyncIterable[bytes]:
        """Async generator: issue the request and yield the response body in chunks."""
        url, kwargs = self._prepare(request)
        logger.debug("{} {} (streaming)", request.method, url)
        try:
            async with self._async_client.stream(request.method, url, **kwargs) as resp:
                if not resp.is_success:
                    await resp.aread()
                    self._raise_for_status(resp)
                async for chunk in resp.aiter_bytes():
                    if chunk:
                        yield chunk
        except httpx.HTTPError as exc:
            raise SpeechServiceError(f"Request to {url} failed: {exc}") from exc

    def _prepare(self, request: Request):
        url = build_url(self.config.service_url, request.url, request.path)
        headers: Dict[str, str] = {}
        headers.update(self.config.headers)
        headers.update({k: v for k, v in request.headers.items() if v is not None})
        self.config.authenticator.authenticate(headers)
        params = {k: _query_value(v) for k, v in request.params.items() if v is not None}
        kwargs: Dict[str, Any] = {"headers": headers}
        if params:
            kwargs["params"] = params
        if request.json is not None:
            kwargs["json"] = request.json
        if request.content is not None:
            kwargs["content"] = request.content
        if request.data is not None:
            kwargs["data"] = request.data
        if request.files is not None:
            kwargs["files"] = request.files
        return url, kwargs

    def _process(self, response: httpx.Response) -> DetailedResponse:
        logger.debug("{} {} -> {}", response.request.method, response.request.url, response.status_code)
        self._raise_for_status(response)
        return DetailedResponse(
            result=self._decode(response),
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        if "json" in response.headers.get("Content-Type", ""):
            return response.json()
        return response.content

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        message = response.text or response.reason_phrase
        details: Dict = {}
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            details = payload
            message = error_message_from_payload(payload, message)
        raise SpeechServiceError(message=message, status_code=response.status_code, details=details)
