# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from pyvero.lib.event.event_stream import EventStream
from pyvero.lib.event.event_waiter import EventWaiter
from pyvero.lib.types import EventPayload
from pyvero.sdk.events import SocketEvents
from pyvero.sdk.models import (
    GeneratorChannelId,
    GeneratorProfile,
    GeneratorStatus,
    GeneratorStatusEntry,
    ProfileList,
)
from pyvero.sdk.rest import RestTransport

PROFILES_ROUTE = "/generator/profiles"


def find_channel_status(payload: EventPayload,
                        channel: GeneratorChannelId,
                        profile_id: str) -> GeneratorStatus | None:
    """
    Return the status of ``channel`` if it runs ``profile_id`` with at least
    one active sender.
    """
    try:
        entry = GeneratorStatusEntry.model_validate(payload)
    except ValidationError:
        return None

    for status in entry.channels:
        if status.channel == channel and status.profile_id == profile_id and status.active_senders():
            return status
    return None


class ProfilesApi:

    def __init__(self, rest: RestTransport) -> None:
        self._rest = rest

    async def get_all(self) -> ProfileList:
        body = await asyncio.to_thread(self._rest.get, PROFILES_ROUTE)
        return ProfileList.model_validate(body or {})


class SignalGeneratorApi:
    """Signal generator channels and their profiles."""

    def __init__(self, rest: RestTransport, events: EventStream) -> None:
        self._rest = rest
        self._events = events
        self.profiles = ProfilesApi(rest)
        self.logger = logging.getLogger(self.__class__.__name__)

    async def start(self, channel: GeneratorChannelId, profile: GeneratorProfile) -> None:
        self.logger.info("Starting profile '%s' on %s", profile.meta.description or profile.id, channel)
        await asyncio.to_thread(self._rest.put, f"/generator/{channel}/start", profile.to_wire())

    def make_awaiter(self,
                     channel: GeneratorChannelId,
                     profile_id: str,
                     timeout_ms: int) -> EventWaiter[GeneratorStatus]:
        """
        Arm a wait for ``channel`` to report ``profile_id`` with active senders.

        Create it before calling ``start`` so the first status is not missed.
        """
        return EventWaiter(
            self._events,
            SocketEvents.GENERATOR_STATUS,
            timeout_ms,
            predicate=lambda payload: find_channel_status(payload, channel, profile_id) is not None,
            transform=lambda payload: find_channel_status(payload, channel, profile_id),
        )
