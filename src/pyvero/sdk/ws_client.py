# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from pyvero.lib.event.event_stream import MESSAGE_CHANNEL, EventStream
from pyvero.sdk.exceptions import VeroApiError
from pyvero.sdk.models import WsMessage

SOCKET_PATH = "/socket"


def build_ws_url(base_url: str, token: str | None = None, path: str = SOCKET_PATH) -> str:
    """Map http(s)://host[:port] to ws(s)://host[:port]/socket?token=..."""
    parts = urlsplit(base_url)
    scheme = "wss" if parts.scheme == "https" else "ws"
    query = urlencode({"token": token}) if token else ""
    return urlunsplit((scheme, parts.netloc, path, query, ""))


class WsClient:
    """
    Event feed from the appliance.

    Each text frame is a JSON envelope ``{"event": ..., "data": [...]}``.
    Decoded envelopes are emitted as ``WsMessage`` on the ``message``
    channel of the shared ``EventStream``. Malformed frames are logged and
    dropped; a closed connection simply ends the feed, which waiters
    observe as silence.
    """

    def __init__(self, url: str, events: EventStream, channel: str = MESSAGE_CHANNEL) -> None:
        self.url = url
        self.events = events
        self.channel = channel
        self._ws: Any = None
        self._reader: asyncio.Task[None] | None = None
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def connected(self) -> bool:
        return self._reader is not None and not self._reader.done()

    async def connect(self) -> None:
        try:
            self._ws = await websockets.connect(self.url)
        except (OSError, WebSocketException) as exc:
            raise VeroApiError(f"WebSocket connection to {self.url} failed: {exc}") from exc

        self.logger.info("Event feed connected: %s", self.url.split("?", 1)[0])
        self._reader = asyncio.create_task(self._read_loop())

    async def _read_loop(self) -> None:
        try:
            async for raw in self._ws:
                self.dispatch_raw(raw)
        except ConnectionClosed as exc:
            self.logger.warning("Event feed closed: %s", exc)

    def dispatch_raw(self, raw: str | bytes) -> WsMessage | None:
        """Decode one frame and emit it; returns the message, or None when dropped."""
        try:
            decoded = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self.logger.error("Invalid JSON frame: %s", exc)
            return None

        try:
            message = WsMessage.model_validate(decoded)
        except ValidationError as exc:
            self.logger.error("Invalid event envelope: %s", exc.errors())
            return None

        self.events.emit(self.channel, message)
        return message

    async def close(self) -> None:
        if self._reader is not None:
            self._reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader
            self._reader = None

        if self._ws is not None:
            await self._ws.close()
            self._ws = None
            self.logger.info("Event feed disconnected")
