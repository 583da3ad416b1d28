# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import asyncio
import logging

from pyvero.lib.event.event_stream import EventStream
from pyvero.sdk.capture import CaptureApi
from pyvero.sdk.rest import RestTransport
from pyvero.sdk.settings_api import SettingsApi
from pyvero.sdk.signal_generator import SignalGeneratorApi
from pyvero.sdk.ws_client import WsClient, build_ws_url


class Vero:
    """
    Session with one appliance.

    ``login`` authenticates over REST and then opens the WebSocket event
    feed; every awaiter created through ``settings``, ``signal_generator``
    or ``capture`` listens on the shared ``events`` stream. Always call
    ``close`` (or use ``async with``) to release both connections.
    """

    def __init__(self, address: str, http_timeout: float = 30.0, verify_ssl: bool = False) -> None:
        self.events = EventStream()
        self.rest = RestTransport(address, timeout=http_timeout, verify_ssl=verify_ssl)
        self.ws_client: WsClient | None = None

        self.settings = SettingsApi(self.rest, self.events)
        self.signal_generator = SignalGeneratorApi(self.rest, self.events)
        self.capture = CaptureApi(self.rest, self.events)
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def address(self) -> str:
        return self.rest.base_url

    async def login(self, username: str, password: str) -> None:
        token = await asyncio.to_thread(self.rest.login, username, password)
        ws_client = WsClient(build_ws_url(self.rest.base_url, token), self.events)
        await ws_client.connect()
        self.ws_client = ws_client

    async def close(self) -> None:
        if self.ws_client is not None:
            await self.ws_client.close()
            self.ws_client = None
        self.rest.close()
        self.events.clear()

    async def __aenter__(self) -> Vero:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
