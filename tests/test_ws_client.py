# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import pytest

from pyvero.lib.event.event_stream import MESSAGE_CHANNEL, EventStream
from pyvero.sdk import ws_client as ws_module
from pyvero.sdk.exceptions import VeroApiError
from pyvero.sdk.models import WsMessage
from pyvero.sdk.ws_client import WsClient, build_ws_url


class FakeSocket:
    def __init__(self, frames: list[str]) -> None:
        self.frames = frames
        self.closed = False

    def __aiter__(self) -> FakeSocket:
        return self

    async def __anext__(self) -> str:
        if not self.frames:
            raise StopAsyncIteration
        return self.frames.pop(0)

    async def close(self) -> None:
        self.closed = True


@pytest.mark.parametrize(
    "base, token, expected",
    [
        ("http://vero.local", "abc", "ws://vero.local/socket?token=abc"),
        ("https://vero.local:8443", "a b", "wss://vero.local:8443/socket?token=a+b"),
        ("http://10.0.0.5", None, "ws://10.0.0.5/socket"),
    ],
)
def test_build_ws_url(base: str, token: str | None, expected: str) -> None:
    assert build_ws_url(base, token) == expected


def test_dispatch_raw_emits_decoded_envelope() -> None:
    events = EventStream()
    seen: list[Any] = []
    events.on(MESSAGE_CHANNEL, seen.append)
    client = WsClient("ws://vero.local/socket", events)

    message = client.dispatch_raw(json.dumps({"event": "genlockStatus", "data": [{"locked": True}]}))

    assert isinstance(message, WsMessage)
    assert seen == [message]
    assert message.data == [{"locked": True}]


def test_dispatch_raw_drops_malformed_frames(caplog: pytest.LogCaptureFixture) -> None:
    events = EventStream()
    seen: list[Any] = []
    events.on(MESSAGE_CHANNEL, seen.append)
    client = WsClient("ws://vero.local/socket", events)

    with caplog.at_level(logging.ERROR, logger="WsClient"):
        assert client.dispatch_raw("{not json") is None
        assert client.dispatch_raw(json.dumps({"data": []})) is None

    assert seen == []
    assert "Invalid JSON frame" in caplog.text
    assert "Invalid event envelope" in caplog.text


@pytest.mark.asyncio
async def test_connect_failure_raises_api_error(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _refuse(url: str) -> Any:
        raise OSError("connection refused")

    monkeypatch.setattr(ws_module.websockets, "connect", _refuse)
    client = WsClient("ws://vero.local/socket", EventStream())

    with pytest.raises(VeroApiError):
        await client.connect()
    assert not client.connected


@pytest.mark.asyncio
async def test_read_loop_emits_frames_until_feed_ends(monkeypatch: pytest.MonkeyPatch) -> None:
    socket = FakeSocket([
        json.dumps({"event": "generatorStatus", "data": [{"channels": []}]}),
        "garbage",
        json.dumps({"event": "captureJobStatus", "data": {"id": "job", "state": "running"}}),
    ])

    async def _connect(url: str) -> FakeSocket:
        return socket

    monkeypatch.setattr(ws_module.websockets, "connect", _connect)
    events = EventStream()
    seen: list[WsMessage] = []
    events.on(MESSAGE_CHANNEL, seen.append)
    client = WsClient("ws://vero.local/socket?token=abc", events)

    await client.connect()
    for _ in range(5):
        await asyncio.sleep(0)

    assert [message.event for message in seen] == ["generatorStatus", "captureJobStatus"]
    assert seen[1].data == [{"id": "job", "state": "running"}]
    assert not client.connected

    await client.close()
    assert socket.closed
