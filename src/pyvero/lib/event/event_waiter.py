# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Generator
from enum import Enum
from typing import Any, Generic, TypeVar

from pyvero.lib.event.event_stream import MESSAGE_CHANNEL, EventSource
from pyvero.lib.types import EventPayload

T = TypeVar("T")

PayloadPredicate = Callable[[EventPayload], bool]


class WaitState(Enum):
    PENDING     = "pending"
    RESOLVED    = "resolved"
    TIMED_OUT   = "timed_out"
    CANCELLED   = "cancelled"


def _envelope_fields(message: Any) -> tuple[Any, Any]:
    """Read ``event`` and ``data`` from a model or a plain dict envelope."""
    if isinstance(message, dict):
        return message.get("event"), message.get("data")
    return getattr(message, "event", None), getattr(message, "data", None)


class EventWaiter(Generic[T]):
    """
    Bounded wait for the first matching event on an event source.

    The waiter subscribes and starts its timer in the constructor, so it can
    be armed before the command whose effect it observes is sent::

        waiter = EventWaiter(events, "generatorStatus", 2000)
        await start_generator()
        payload = await waiter      # payload, or None after 2000 ms

    Only envelopes whose ``event`` equals ``event_name`` and whose first
    ``data`` element passes ``predicate`` resolve the wait; the result is
    that element, passed through ``transform`` when given. An envelope with
    no data carries no payload and never matches, which keeps ``None``
    reserved for the timeout.

    Exactly one of the match, the timer or cancellation of the awaiting
    task settles the waiter. Whichever comes first cancels the timer and
    removes the listener; anything arriving afterwards is ignored.
    """

    def __init__(self,
                 source: EventSource,
                 event_name: str,
                 timeout_ms: int,
                 predicate: PayloadPredicate | None = None,
                 transform: Callable[[EventPayload], T] | None = None,
                 channel: str = MESSAGE_CHANNEL) -> None:
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int):
            raise ValueError(f"timeout_ms must be an integer, got {timeout_ms!r}")
        if timeout_ms < 0:
            raise ValueError(f"timeout_ms must be non-negative, got {timeout_ms}")

        self.logger = logging.getLogger(self.__class__.__name__)
        self.event_name = event_name
        self.timeout_ms = timeout_ms
        self._source = source
        self._channel = channel
        self._predicate = predicate
        self._transform = transform
        self._state = WaitState.PENDING

        loop = asyncio.get_running_loop()
        self._future: asyncio.Future[T | None] = loop.create_future()
        self._future.add_done_callback(self._on_future_done)

        self._handler = self._on_message
        self._source.on(self._channel, self._handler)
        self._timer = loop.call_later(timeout_ms / 1000.0, self._on_timeout)

    @property
    def state(self) -> WaitState:
        return self._state

    def done(self) -> bool:
        return self._state is not WaitState.PENDING

    def __await__(self) -> Generator[Any, None, T | None]:
        return self._future.__await__()

    def _still_pending(self) -> bool:
        # The done callback runs one iteration after a cancel; settle here first.
        if self._state is WaitState.PENDING and self._future.cancelled():
            self._settle(WaitState.CANCELLED)
        return self._state is WaitState.PENDING

    def _on_message(self, message: Any) -> None:
        if not self._still_pending():
            return

        event, data = _envelope_fields(message)
        if event != self.event_name or not data:
            return

        payload = data[0]
        if self._predicate is not None and not self._predicate(payload):
            return

        result = self._transform(payload) if self._transform is not None else payload
        self._settle(WaitState.RESOLVED)
        self._future.set_result(result)

    def _on_timeout(self) -> None:
        if not self._still_pending():
            return
        self.logger.debug("No '%s' event within %d ms", self.event_name, self.timeout_ms)
        self._settle(WaitState.TIMED_OUT)
        self._future.set_result(None)

    def _on_future_done(self, future: asyncio.Future[T | None]) -> None:
        # Only reachable while pending when the awaiting task was cancelled.
        if future.cancelled() and self._state is WaitState.PENDING:
            self._settle(WaitState.CANCELLED)

    def _settle(self, state: WaitState) -> None:
        self._state = state
        self._timer.cancel()
        self._source.off(self._channel, self._handler)


async def wait_for_event(source: EventSource,
                         event_name: str,
                         timeout_ms: int,
                         predicate: PayloadPredicate | None = None,
                         channel: str = MESSAGE_CHANNEL) -> EventPayload | None:
    """Return the first matching payload of ``event_name``, or None after ``timeout_ms``."""
    return await EventWaiter(source, event_name, timeout_ms, predicate=predicate, channel=channel)
