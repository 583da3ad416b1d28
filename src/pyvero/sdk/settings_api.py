# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import asyncio
import logging

from pyvero.lib.event.event_stream import EventStream
from pyvero.lib.event.event_waiter import EventWaiter
from pyvero.lib.types import EventPayload
from pyvero.sdk.events import SocketEvents
from pyvero.sdk.exceptions import WaitTimeoutError
from pyvero.sdk.models import GenlockSyncConfig
from pyvero.sdk.rest import RestTransport

GENLOCK_ROUTE = "/settings/genlock"


class SettingsApi:
    """Appliance-wide settings."""

    def __init__(self, rest: RestTransport, events: EventStream) -> None:
        self._rest = rest
        self._events = events
        self.logger = logging.getLogger(self.__class__.__name__)

    async def set_genlock_sync(self, config: GenlockSyncConfig, timeout_ms: int) -> EventPayload:
        """
        Select the genlock reference and wait until the appliance reports it locked.

        Raises
        ------
        WaitTimeoutError
            If no matching ``genlockStatus`` arrives within ``timeout_ms``.
        """
        family = str(config.family)

        def _locked(payload: EventPayload) -> bool:
            return isinstance(payload, dict) and payload.get("family") == family and payload.get("locked") is True

        waiter: EventWaiter[EventPayload] = EventWaiter(
            self._events, SocketEvents.GENLOCK_STATUS, timeout_ms, predicate=_locked
        )
        await asyncio.to_thread(self._rest.put, GENLOCK_ROUTE, config.to_wire())
        status = await waiter
        if status is None:
            raise WaitTimeoutError(f"Timeout waiting for genlock '{family}' to lock")

        self.logger.info("Genlock locked to %s", family)
        return status
