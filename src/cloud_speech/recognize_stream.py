"""
Speech recognition over a single two-way websocket.

Audio chunks written to the stream are forwarded in order as binary
frames; recognition results come back as JSON text frames and are yielded
in order by ``results()``. Several JSON objects can arrive in one frame, so
frames are split before parsing.
"""
import json
import re
import ssl
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional
from urllib.parse import urlencode

from loguru import logger
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosedError

from .config import Authenticator

_WHITESPACE = re.compile(r"\s*")


class RecognizeStreamError(Exception):
    """Raised when the service reports an error or the socket drops mid-stream."""


def split_json_fragments(text: str) -> List[Any]:
    """Parse every JSON value in ``text``, e.g. ``{"a":1}{"b":2}`` -> two dicts."""
    decoder = json.JSONDecoder()
    values = []
    index = _WHITESPACE.match(text, 0).end()
    while index < len(text):
        value, index = decoder.raw_decode(text, index)
        values.append(value)
        index = _WHITESPACE.match(text, index).end()
    return values


def format_chunk(text: str) -> Any:
    """Return the latest JSON object in ``text``.

    A frame holding concatenated objects yields only the last one. When such
    a frame cannot be parsed the raw text is returned; a single malformed
    object raises ValueError.
    """
    try:
        values = split_json_fragments(text)
    except ValueError:
        if "}{" in text:
            return text
        raise
    if not values:
        raise ValueError("No JSON object in chunk")
    return values[-1]


def websocket_url(service_url: str, query: Mapping[str, Any]) -> str:
    base = re.sub(r"^http", "ws", service_url.rstrip("/"))
    params = {k: v for k, v in query.items() if v is not None}
    url = f"{base}/v1/recognize"
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


class RecognizeStream:
    """Duplex audio-in, results-out stream over a websocket.

    Usage::

        async with service.recognize_using_websocket(content_type="audio/wav") as stream:
            await stream.write(audio)
            await stream.end()
            async for result in stream.results():
                ...

    Args:
        url: Service URL (http(s) or ws(s)); ``/v1/recognize`` is appended
        authenticator: Adds credentials to the handshake headers
        content_type: Audio format sent in the start message
        disable_ssl_verification: Skip certificate checks on wss connections
        headers: Extra handshake headers
        model, language_customization_id, acoustic_customization_id,
        base_model_version: Query parameters of the recognize endpoint
        connector: Replacement for ``websockets`` connect (used in tests)
        **start_options: Extra fields for the start message
            (``interim_results``, ``timestamps``, ``word_confidence``, ...)
    """

    def __init__(
        self,
        url: str,
        *,
        authenticator: Optional[Authenticator] = None,
        content_type: Optional[str] = None,
        disable_ssl_verification: bool = False,
        headers: Optional[Mapping[str, str]] = None,
        model: Optional[str] = None,
        language_customization_id: Optional[str] = None,
        acoustic_customization_id: Optional[str] = None,
        base_model_version: Optional[str] = None,
        connector: Optional[Callable[..., Any]] = None,
        **start_options: Any,
    ) -> None:
        self.url = websocket_url(
            url,
            {
                "model": model,
                "language_customization_id": language_customization_id,
                "acoustic_customization_id": acoustic_customization_id,
                "base_model_version": base_model_version,
            },
        )
        self.authenticator = authenticator
        self.content_type = content_type
        self.disable_ssl_verification = disable_ssl_verification
        self.headers: Dict[str, str] = dict(headers or {})
        self.start_options = start_options
        self._connector = connector or connect
        self._ws = None
        self._ended = False

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def __aenter__(self) -> "RecognizeStream":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def connect(self) -> None:
        if self._ws is not None:
            return
        headers = dict(self.headers)
        if self.authenticator is not None:
            self.authenticator.authenticate(headers)
        kwargs: Dict[str, Any] = {"additional_headers": headers}
        if self.url.startswith("wss") and self.disable_ssl_verification:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            kwargs["ssl"] = context
        self._ws = await self._connector(self.url, **kwargs)
        logger.info("Recognize stream connected to {}", self.url)
        start = {"action": "start", "content-type": self.content_type}
        start.update(self.start_options)
        await self._ws.send(json.dumps({k: v for k, v in start.items() if v is not None}))

    async def write(self, chunk: bytes) -> None:
        """Send one chunk of audio."""
        if self._ended:
            raise RecognizeStreamError("Cannot write after end() was called")
        await self.connect()
        await self._ws.send(bytes(chunk))

    async def end(self) -> None:
        """Signal end of audio; results keep arriving until the service finishes."""
        if self._ended:
            return
        await self.connect()
        self._ended = True
        await self._ws.send(json.dumps({"action": "stop"}))

    async def results(self) -> AsyncIterator[Any]:
        """Yield recognition results in arrival order until the service is done."""
        await self.connect()
        listening = 0
        try:
            async for message in self._ws:
                if isinstance(message, bytes):
                    continue
                try:
                    fragments = split_json_fragments(message)
                except ValueError as exc:
                    # Same fallback as format_chunk: a broken concatenated frame passes through as text.
                    if "}{" not in message:
                        raise RecognizeStreamError(f"Invalid JSON from service: {message!r}") from exc
                    logger.debug("Passing through unparseable frame {!r}", message)
                    fragments = [message]
                for data in fragments:
                    if isinstance(data, dict) and "error" in data:
                        raise RecognizeStreamError(data["error"])
                    if isinstance(data, dict) and data.get("state") == "listening":
                        listening += 1
                        # The first "listening" acknowledges start, the second follows stop.
                        if listening >= 2:
                            await self.close()
                            return
                        continue
                    yield data
        except ConnectionClosedError as exc:
            raise RecognizeStreamError(f"Connection closed unexpectedly: {exc}") from exc

    async def close(self) -> None:
        if self._ws is None:
            return
        ws, self._ws = self._ws, None
        await ws.close()
        logger.info("Recognize stream closed")
