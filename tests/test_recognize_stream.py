import asyncio
import json

import pytest
from websockets.exceptions import ConnectionClosedError
from websockets.frames import Close

from cloud_speech import (
    BearerTokenAuthenticator,
    RecognizeStream,
    RecognizeStreamError,
    format_chunk,
    split_json_fragments,
)


class FakeSocket:
    """Stands in for a websockets client connection."""

    def __init__(self, incoming, fail_with=None):
        self.incoming = list(incoming)
        self.fail_with = fail_with
        self.sent = []
        self.closed = False

    async def send(self, message):
        self.sent.append(message)

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self._messages()

    async def _messages(self):
        for message in self.incoming:
            yield message
        if self.fail_with is not None:
            raise self.fail_with


class FakeConnector:
    def __init__(self, socket):
        self.socket = socket
        self.calls = []

    async def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.socket


def test_split_json_fragments_separates_concatenated_objects():
    assert split_json_fragments('{"a":1}{"b":2}') == [{"a": 1}, {"b": 2}]
    assert split_json_fragments('{"a":1}\n{"b":"}{"}') == [{"a": 1}, {"b": "}{"}]
    assert split_json_fragments('{"a":1}') == [{"a": 1}]
    assert split_json_fragments("") == []


def test_format_chunk_returns_latest_object():
    assert format_chunk('{"a":1}{"b":2}') == {"b": 2}
    assert format_chunk('{"a":1}') == {"a": 1}


def test_format_chunk_falls_back_to_raw_text():
    assert format_chunk('{"a":1}{broken') == '{"a":1}{broken'
    with pytest.raises(ValueError):
        format_chunk("{broken")


def test_stream_sends_start_audio_and_stop_in_order():
    socket = FakeSocket(
        [
            '{"state": "listening"}',
            '{"results": [{"final": false}], "result_index": 0}{"results": [{"final": true}], "result_index": 0}',
            '{"state": "listening"}',
        ]
    )
    connector = FakeConnector(socket)
    stream = RecognizeStream(
        "https://stt.example.com",
        authenticator=BearerTokenAuthenticator("token"),
        content_type="audio/wav",
        model="en-US_BroadbandModel",
        connector=connector,
        interim_results=True,
    )

    async def run():
        async with stream:
            await stream.write(b"chunk-1")
            await stream.write(b"chunk-2")
            await stream.end()
            return [result async for result in stream.results()]

    results = asyncio.run(run())

    url, kwargs = connector.calls[0]
    assert url == "wss://stt.example.com/v1/recognize?model=en-US_BroadbandModel"
    assert kwargs["additional_headers"]["Authorization"] == "Bearer token"
    assert "ssl" not in kwargs
    assert json.loads(socket.sent[0]) == {"action": "start", "content-type": "audio/wav", "interim_results": True}
    assert socket.sent[1:3] == [b"chunk-1", b"chunk-2"]
    assert json.loads(socket.sent[3]) == {"action": "stop"}
    assert [r["results"][0]["final"] for r in results] == [False, True]
    assert socket.closed
    assert not stream.connected


def test_stream_passes_through_unparseable_concatenated_frame():
    socket = FakeSocket(
        [
            '{"state": "listening"}',
            '{"results":[1]}{broken',
            '{"results": [{"final": true}], "result_index": 0}',
            '{"state": "listening"}',
        ]
    )
    stream = RecognizeStream("wss://stt.example.com", connector=FakeConnector(socket))

    async def run():
        await stream.end()
        return [result async for result in stream.results()]

    results = asyncio.run(run())

    assert results == ['{"results":[1]}{broken', {"results": [{"final": True}], "result_index": 0}]
    assert socket.closed


def test_stream_rejects_single_malformed_frame():
    socket = FakeSocket(['{"state": "listening"}', "{broken"])
    stream = RecognizeStream("wss://stt.example.com", connector=FakeConnector(socket))

    async def run():
        return [result async for result in stream.results()]

    with pytest.raises(RecognizeStreamError):
        asyncio.run(run())


def test_stream_surfaces_service_errors():
    socket = FakeSocket(['{"state": "listening"}', '{"error": "unable to transcode data stream"}'])
    stream = RecognizeStream("wss://stt.example.com", connector=FakeConnector(socket))

    async def run():
        await stream.write(b"audio")
        await stream.end()
        return [result async for result in stream.results()]

    with pytest.raises(RecognizeStreamError) as exc:
        asyncio.run(run())

    assert "unable to transcode" in str(exc.value)


def test_stream_surfaces_dropped_connection():
    socket = FakeSocket(
        ['{"state": "listening"}'],
        fail_with=ConnectionClosedError(Close(1011, "internal error"), None),
    )
    stream = RecognizeStream("wss://stt.example.com", connector=FakeConnector(socket))

    async def run():
        return [result async for result in stream.results()]

    with pytest.raises(RecognizeStreamError):
        asyncio.run(run())


def test_write_after_end_is_rejected():
    socket = FakeSocket([])
    stream = RecognizeStream("wss://stt.example.com", connector=FakeConnector(socket))

    async def run():
        await stream.end()
        await stream.write(b"late")

    with pytest.raises(RecognizeStreamError):
        asyncio.run(run())

    assert json.loads(socket.sent[-1]) == {"action": "stop"}


def test_disable_ssl_verification_passes_context():
    socket = FakeSocket([])
    connector = FakeConnector(socket)
    stream = RecognizeStream(
        "https://stt.example.com",
        disable_ssl_verification=True,
        headers={"X-Custom": "1"},
        connector=connector,
    )

    asyncio.run(stream.connect())

    _, kwargs = connector.calls[0]
    assert kwargs["ssl"].check_hostname is False
    assert kwargs["additional_headers"] == {"X-Custom": "1"}
    assert json.loads(socket.sent[0]) == {"action": "start"}
